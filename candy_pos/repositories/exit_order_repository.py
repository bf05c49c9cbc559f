# ==============================================================================
# REPOSITORIO DE ÓRDENES DE SALIDA
# ==============================================================================
# Encapsula todo el acceso a exit_orders.json
# Las órdenes se almacenan como diccionario: {order_id: {orden}}
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from candy_pos.exceptions import DuplicateIdentifier
from candy_pos.repositories.base import DictRepository


class ExitOrderRepository(DictRepository):
    """
    Repositorio para órdenes de salida.

    Formato de datos en exit_orders.json:
    {
        "EO-20250110-001": {
            "id": "EO-20250110-001",
            "routeId": "R1",
            "status": "active",
            "createdAt": "2025-01-10T08:15:00+00:00",
            "items": [...],
            ...
        }
    }

    El repositorio no valida reglas de negocio (p. ej. una sola orden activa
    por ruta): eso lo hace ExitOrderService.
    """

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de órdenes de salida.

        Args:
            base_path: Carpeta donde viven los documentos JSON
        """
        file_path = os.path.join(base_path, 'exit_orders.json')
        super().__init__(file_path)

    def insert(self, order: Dict[str, Any]) -> str:
        """
        Inserta una orden nueva.

        Raises:
            DuplicateIdentifier: Si ya existe una orden con ese ID
        """
        order_id = str(order.get('id', ''))
        with self._file_lock:
            orders = self.get_all()
            if order_id in orders:
                raise DuplicateIdentifier(f"La orden {order_id} ya existe")
            orders[order_id] = order
            self.save_all(orders)
        return order_id

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene una orden por su ID o None."""
        return self.get_by_id(order_id)

    def update_order(self, order_id: str, order: Dict[str, Any]) -> None:
        """Reemplaza el documento completo de una orden."""
        self.update(order_id, order)

    def find_active_by_route(self, route_id: str) -> Optional[Dict[str, Any]]:
        """
        Busca la orden activa de una ruta.

        Returns:
            La orden activa más reciente de la ruta o None
        """
        active = self.list_orders(status='active', route_id=route_id)
        return active[0] if active else None

    def list_orders(
        self,
        status: Optional[str] = None,
        route_id: Optional[str] = None,
        date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Lista órdenes filtradas, más recientes primero.

        Args:
            status: Filtrar por estado
            route_id: Filtrar por ruta
            date: Filtrar por fecha de creación (YYYY-MM-DD)

        Returns:
            Lista de órdenes ordenadas por createdAt descendente
        """
        orders = list(self.get_all().values())

        if status:
            orders = [o for o in orders if o.get('status') == status]
        if route_id:
            orders = [o for o in orders if str(o.get('routeId')) == str(route_id)]
        if date:
            orders = [o for o in orders if o.get('date') == date]

        # El consecutivo del ID desempata órdenes creadas en el mismo instante
        return sorted(
            orders,
            key=lambda o: (o.get('createdAt') or '', _id_sequence(o.get('id')), o.get('id') or ''),
            reverse=True
        )


def _id_sequence(order_id: Any) -> int:
    """Consecutivo numérico de 'EO-20250110-1000' (-1 si no tiene)."""
    try:
        return int(str(order_id).rsplit('-', 1)[-1])
    except ValueError:
        return -1
