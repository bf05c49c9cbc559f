# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Este archivo define las interfaces (protocolos) que todos los repositorios
# deben implementar. Esto permite:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios dependen de interfaces, NO de implementaciones concretas
#    - Cambiar JSON → otra base documental solo requiere nueva implementación
#
# 2. TESTING
#    - Fácil crear dobles que implementen estas interfaces
#
# 3. DOCUMENTACIÓN
#    - Contratos claros de qué hace cada repositorio
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IRepository(Protocol):
    """
    Interfaz base para todos los repositorios.
    Define las operaciones mínimas que cualquier repositorio debe soportar.
    """

    def reload(self) -> None:
        """Recarga datos desde el almacenamiento."""
        ...

    def snapshot(self) -> Any:
        """Copia del contenido actual (para compensar transacciones)."""
        ...

    def restore(self, data: Any) -> None:
        """Reescribe el contenido con un snapshot."""
        ...


@runtime_checkable
class IInventoryRepository(IRepository, Protocol):
    """
    Interfaz para el repositorio de productos (Stock Ledger).
    """

    def load(self) -> Dict[Any, Dict[str, Any]]:
        """Carga todo el inventario."""
        ...

    def get_product(self, pid: Any) -> Optional[Dict[str, Any]]:
        """Obtiene un producto por ID."""
        ...

    def product_exists(self, pid: Any) -> bool:
        """Verifica si un producto existe."""
        ...

    def create_product(self, pid: Any, data: Dict[str, Any]) -> None:
        """Crea un nuevo producto."""
        ...

    def update_product(self, pid: Any, data: Dict[str, Any]) -> bool:
        """Actualiza un producto."""
        ...

    def get_all_products(self) -> List[Dict[str, Any]]:
        """Lista todos los productos con su ID."""
        ...

    def get_next_id(self) -> int:
        """Siguiente ID numérico libre."""
        ...


@runtime_checkable
class IExitOrderRepository(IRepository, Protocol):
    """
    Interfaz para el repositorio de órdenes de salida.
    """

    def insert(self, order: Dict[str, Any]) -> str:
        """Inserta una orden nueva, retorna su ID."""
        ...

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene una orden por ID."""
        ...

    def update_order(self, order_id: str, order: Dict[str, Any]) -> None:
        """Reemplaza una orden existente."""
        ...

    def find_active_by_route(self, route_id: str) -> Optional[Dict[str, Any]]:
        """Orden activa de una ruta."""
        ...

    def list_orders(
        self,
        status: Optional[str] = None,
        route_id: Optional[str] = None,
        date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Lista filtrada, más recientes primero."""
        ...


@runtime_checkable
class IMovementRepository(IRepository, Protocol):
    """
    Interfaz para el registro de movimientos de stock (solo agregar).
    """

    def append(self, record: Dict[str, Any]) -> None:
        """Agrega un movimiento."""
        ...

    def load(self) -> List[Dict[str, Any]]:
        """Todos los movimientos, más recientes primero."""
        ...

    def find_by_product(self, product_id: Any) -> List[Dict[str, Any]]:
        """Movimientos de un producto (cronológico)."""
        ...

    def find_by_exit_order(self, exit_order_id: str) -> List[Dict[str, Any]]:
        """Movimientos de una orden de salida (cronológico)."""
        ...


@runtime_checkable
class ICounterRepository(IRepository, Protocol):
    """
    Interfaz para los contadores de secuencia.
    """

    def increment(self, field: str, document: str = 'main') -> int:
        """Consume y avanza un contador de forma atómica."""
        ...

    def peek(self, field: str, document: str = 'main') -> int:
        """Próximo valor sin consumirlo."""
        ...
