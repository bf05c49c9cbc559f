# ==============================================================================
# SERVICIO DE MOVIMIENTOS DE STOCK
# ==============================================================================
# Registro de solo-agregar de cada cambio de stock, con su causa y referencia.
# Formatea las notas humanizadas y permite reconstruir el historial de un
# producto o los movimientos de una orden de salida.
# ==============================================================================

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from candy_pos.models import MovementType, StockMovement
from candy_pos.repositories.movement_repository import MovementRepository
from candy_pos.services.sequence_service import SequenceService


class MovementService:
    """
    Servicio para registro y consulta de movimientos de stock.

    Centraliza:
    - Registro de movimientos con ID secuencial
    - Notas humanizadas para órdenes de salida
    - Historial por producto y por orden

    La regla de oro: si cambia el stock → siempre hay un movimiento.
    """

    def __init__(
        self,
        movement_repo: MovementRepository,
        sequence_service: SequenceService
    ):
        """
        Inicializa el servicio de movimientos.

        Args:
            movement_repo: Repositorio de movimientos
            sequence_service: Generador de IDs
        """
        self.movement_repo = movement_repo
        self.sequence_service = sequence_service

    # =========================================================================
    # REGISTRO DE MOVIMIENTOS
    # =========================================================================

    def record(
        self,
        product_id: Any,
        product_name: str,
        movement_type: str,
        quantity: int,
        notes: str = '',
        exit_order_id: Optional[str] = None,
        previous_stock: Optional[int] = None,
        new_stock: Optional[int] = None
    ) -> StockMovement:
        """
        Agrega un movimiento al registro.

        Args:
            product_id: Producto afectado
            product_name: Nombre del producto (se congela en el registro)
            movement_type: exit, return, entrada, salida o ajuste
            quantity: Delta con signo
            notes: Causa legible
            exit_order_id: Orden de salida relacionada
            previous_stock: Stock antes del cambio
            new_stock: Stock después del cambio

        Returns:
            El movimiento registrado
        """
        if isinstance(movement_type, MovementType):
            movement_type = movement_type.value

        movement = StockMovement(
            id=self.sequence_service.next_movement_id(),
            product_id=product_id,
            product_name=product_name,
            type=movement_type,
            quantity=quantity,
            notes=notes,
            date=datetime.now(timezone.utc).isoformat(),
            exit_order_id=exit_order_id,
            previous_stock=previous_stock,
            new_stock=new_stock,
        )
        self.movement_repo.append(movement.to_dict())
        return movement

    # =========================================================================
    # NOTAS HUMANIZADAS
    # =========================================================================

    @staticmethod
    def exit_note(order_id: str, route_label: str) -> str:
        return f"Orden de Salida {order_id} - Ruta: {route_label}"

    @staticmethod
    def return_note(order_id: str, route_label: str) -> str:
        return f"Devolución de Orden de Salida {order_id} - Ruta: {route_label}"

    @staticmethod
    def cancel_note(order_id: str, route_label: str) -> str:
        return f"Cancelación de Orden de Salida {order_id} - Ruta: {route_label}"

    @staticmethod
    def adjustment_note(adjustment_type: str) -> str:
        return f"Ajuste de inventario ({adjustment_type})"

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_product_movements(self, product_id: Any) -> List[Dict[str, Any]]:
        """Movimientos de un producto en orden cronológico."""
        return self.movement_repo.find_by_product(product_id)

    def get_order_movements(self, exit_order_id: str) -> List[Dict[str, Any]]:
        """Movimientos generados por una orden de salida."""
        return self.movement_repo.find_by_exit_order(exit_order_id)

    def search(
        self,
        movement_type: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Movimientos filtrados, más recientes primero."""
        return self.movement_repo.search(movement_type, from_date, to_date)

    def net_change(self, product_id: Any) -> int:
        """
        Suma de los deltas aplicados realmente a un producto.

        Usa newStock - previousStock cuando está disponible, así un descuento
        recortado a cero cuenta lo que de verdad salió de bodega.
        """
        total = 0
        for m in self.get_product_movements(product_id):
            prev, new = m.get('previousStock'), m.get('newStock')
            if prev is not None and new is not None:
                total += new - prev
            else:
                total += int(m.get('quantity', 0) or 0)
        return total
