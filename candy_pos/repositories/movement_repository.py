# ==============================================================================
# REPOSITORIO DE MOVIMIENTOS DE STOCK
# ==============================================================================
# Encapsula todo el acceso a stock_movements.json
# Los movimientos se almacenan como lista en orden de creación: [{mov1}, ...]
# Es un registro de solo-agregar: no hay update ni delete.
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from .base import ListRepository


class MovementRepository(ListRepository):
    """
    Repositorio del registro de movimientos de stock.

    Formato de datos en stock_movements.json:
    [
        {
            "id": 1,
            "productId": 1,
            "productName": "Gomitas surtidas",
            "type": "exit",
            "quantity": -10,
            "notes": "Orden de Salida EO-20250110-001 - Ruta: Centro",
            "date": "2025-01-10T08:15:00+00:00",
            "exitOrderId": "EO-20250110-001",
            "previousStock": 40,
            "newStock": 30
        }
    ]

    A diferencia del log de auditoría, aquí no hay límite de registros:
    el historial de stock debe poder reconstruirse completo.
    """

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de movimientos.

        Args:
            base_path: Carpeta donde viven los documentos JSON
        """
        file_path = os.path.join(base_path, 'stock_movements.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los movimientos.

        Returns:
            Lista de movimientos (más recientes primero)
        """
        return sorted(self.get_all(), key=lambda m: m.get('id', 0), reverse=True)

    def find_by_product(self, product_id: Any) -> List[Dict[str, Any]]:
        """Movimientos de un producto en orden cronológico."""
        return sorted(
            self.find_all_by('productId', product_id),
            key=lambda m: m.get('id', 0)
        )

    def find_by_exit_order(self, exit_order_id: str) -> List[Dict[str, Any]]:
        """Movimientos generados por una orden de salida."""
        return sorted(
            self.find_all_by('exitOrderId', exit_order_id),
            key=lambda m: m.get('id', 0)
        )

    def search(
        self,
        movement_type: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Búsqueda de movimientos con filtros opcionales.

        Las fechas se comparan como texto ISO (YYYY-MM-DD... es ordenable).

        Args:
            movement_type: Tipo de movimiento (exit, return, entrada, ...)
            from_date: Fecha inicio (inclusive)
            to_date: Fecha fin (inclusive, compara solo el prefijo de día)

        Returns:
            Lista de movimientos más recientes primero
        """
        movements = self.load()
        if movement_type:
            movements = [m for m in movements if m.get('type') == movement_type]
        if from_date:
            movements = [m for m in movements if (m.get('date') or '') >= from_date]
        if to_date:
            movements = [m for m in movements if (m.get('date') or '')[:len(to_date)] <= to_date]
        return movements
