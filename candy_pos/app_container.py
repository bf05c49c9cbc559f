# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada test arma su contenedor sobre una carpeta temporal)
#   - Cambiar repositorios sin tocar servicios
#
# GRAFO:
#   CounterRepository ─► SequenceService ─┬─► MovementService ─► StockLedger ─┐
#   MovementRepository ───────────────────┘                                  │
#   InventoryRepository ─────────────────────────────────────► StockLedger   │
#   ExitOrderRepository ─────────────────────────────────────► ExitOrderService
# ==============================================================================

import os
from typing import Optional

from candy_pos.repositories import (
    CounterRepository,
    ExitOrderRepository,
    InventoryRepository,
    MovementRepository,
)
from candy_pos.services import (
    BackupService,
    ExitOrderService,
    MovementService,
    SequenceService,
    StockLedger,
    get_stock_policy,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Cada instancia mantiene una única instancia de cada repositorio y
    servicio (creadas bajo demanda). get_instance() expone un contenedor
    global para la app; los tests crean los suyos.

    Uso:
        container = AppContainer(base_path='/path/to/data')
        engine = container.exit_order_service
    """

    _instance: Optional['AppContainer'] = None

    def __init__(
        self,
        base_path: str = None,
        stock_policy: str = 'clamp',
        enforce_single_active_per_route: bool = True
    ):
        """
        Inicializa el contenedor.

        Args:
            base_path: Carpeta de los documentos JSON (se crea si no existe)
            stock_policy: Nombre de la política de stock ('clamp' o 'reject')
            enforce_single_active_per_route: Una sola orden activa por ruta

        Raises:
            ValueError: Si la política no existe
        """
        self._base_path = base_path or os.path.dirname(os.path.abspath(__file__))
        os.makedirs(self._base_path, exist_ok=True)

        self._stock_policy = get_stock_policy(stock_policy)
        self._enforce_single_active_per_route = enforce_single_active_per_route

        # Repositorios (lazy loading)
        self._inventory_repo: Optional[InventoryRepository] = None
        self._order_repo: Optional[ExitOrderRepository] = None
        self._movement_repo: Optional[MovementRepository] = None
        self._counter_repo: Optional[CounterRepository] = None

        # Servicios (lazy loading)
        self._sequence_service: Optional[SequenceService] = None
        self._movement_service: Optional[MovementService] = None
        self._stock_ledger: Optional[StockLedger] = None
        self._exit_order_service: Optional[ExitOrderService] = None
        self._backup_service: Optional[BackupService] = None

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def inventory_repo(self) -> InventoryRepository:
        """Repositorio de productos (singleton)."""
        if self._inventory_repo is None:
            self._inventory_repo = InventoryRepository(self._base_path)
        return self._inventory_repo

    @property
    def order_repo(self) -> ExitOrderRepository:
        """Repositorio de órdenes de salida (singleton)."""
        if self._order_repo is None:
            self._order_repo = ExitOrderRepository(self._base_path)
        return self._order_repo

    @property
    def movement_repo(self) -> MovementRepository:
        """Repositorio de movimientos (singleton)."""
        if self._movement_repo is None:
            self._movement_repo = MovementRepository(self._base_path)
        return self._movement_repo

    @property
    def counter_repo(self) -> CounterRepository:
        """Repositorio de contadores (singleton)."""
        if self._counter_repo is None:
            self._counter_repo = CounterRepository(self._base_path)
        return self._counter_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def sequence_service(self) -> SequenceService:
        if self._sequence_service is None:
            self._sequence_service = SequenceService(self.counter_repo)
        return self._sequence_service

    @property
    def movement_service(self) -> MovementService:
        if self._movement_service is None:
            self._movement_service = MovementService(
                self.movement_repo,
                self.sequence_service
            )
        return self._movement_service

    @property
    def stock_ledger(self) -> StockLedger:
        """Stock de bodega con la política configurada (singleton)."""
        if self._stock_ledger is None:
            self._stock_ledger = StockLedger(
                self.inventory_repo,
                self.movement_service,
                policy=self._stock_policy
            )
        return self._stock_ledger

    @property
    def exit_order_service(self) -> ExitOrderService:
        """Motor de órdenes de salida (singleton)."""
        if self._exit_order_service is None:
            self._exit_order_service = ExitOrderService(
                self.order_repo,
                self.stock_ledger,
                self.sequence_service,
                enforce_single_active_per_route=self._enforce_single_active_per_route
            )
        return self._exit_order_service

    @property
    def backup_service(self) -> BackupService:
        if self._backup_service is None:
            self._backup_service = BackupService(self._base_path)
        return self._backup_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para recargar datos modificados fuera de la app.
        """
        self._inventory_repo = None
        self._order_repo = None
        self._movement_repo = None
        self._counter_repo = None

        self._sequence_service = None
        self._movement_service = None
        self._stock_ledger = None
        self._exit_order_service = None
        self._backup_service = None

    @classmethod
    def get_instance(cls, base_path: str = None, **options) -> 'AppContainer':
        """
        Obtiene el contenedor global.

        Args:
            base_path: Carpeta de datos (solo se usa en la primera llamada)
            options: stock_policy / enforce_single_active_per_route

        Returns:
            Instancia del contenedor
        """
        if cls._instance is None:
            cls._instance = cls(base_path, **options)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina el contenedor global (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None, **options) -> AppContainer:
    """Obtiene el contenedor de dependencias global."""
    return AppContainer.get_instance(base_path, **options)
