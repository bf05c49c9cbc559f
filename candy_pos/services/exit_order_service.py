# ==============================================================================
# SERVICIO DE ÓRDENES DE SALIDA
# ==============================================================================
# Centraliza el ciclo de vida de una orden de salida:
#
#   create ──► active ──► completed   (sobrantes vuelven a bodega)
#                    └──► cancelled   (solo sin ventas; todo vuelve a bodega)
#
# Cada operación que mueve stock se ejecuta con atomic_stock_transition():
# primero los cambios de stock y sus movimientos, al final la orden. Si algo
# falla, StoreTransaction restaura los documentos tocados.
#
# Las operaciones públicas NUNCA lanzan errores de negocio: devuelven
#   {'success': True, ...} o {'success': False, 'error': ..., 'errorType': ...}
# ==============================================================================

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from candy_pos.exceptions import (
    ActiveOrderExists,
    CancellationNotAllowed,
    CandyPosError,
    InsufficientRemaining,
    OrderNotActive,
    OrderNotFound,
    ValidationError,
)
from candy_pos.models import (
    ExitOrder,
    ExitOrderItem,
    ExitOrderStatus,
    MovementType,
    StockDelta,
)
from candy_pos.performance_logger import profile_function
from candy_pos.repositories.exit_order_repository import ExitOrderRepository
from candy_pos.repositories.transaction import StoreTransaction
from candy_pos.services.sequence_service import SequenceService
from candy_pos.services.stock_ledger import StockLedger, is_valid_product_id, parse_money

logger = logging.getLogger(__name__)


# Etiquetas para mensajes al usuario
STATUS_LABELS = {
    ExitOrderStatus.ACTIVE.value: 'activa',
    ExitOrderStatus.COMPLETED.value: 'completada',
    ExitOrderStatus.CANCELLED.value: 'cancelada',
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExitOrderService:
    """
    Motor de órdenes de salida.

    Responsabilidades:
    - Crear órdenes descontando stock de bodega
    - Registrar ventas reportadas por el vendedor (solo contabilidad interna)
    - Completar (devolver sobrantes) o cancelar (devolver todo)
    - Consultas y proyección de productos vendibles para el POS de ruta
    """

    def __init__(
        self,
        order_repo: ExitOrderRepository,
        stock_ledger: StockLedger,
        sequence_service: SequenceService,
        enforce_single_active_per_route: bool = True
    ):
        """
        Inicializa el servicio de órdenes de salida.

        Args:
            order_repo: Repositorio de órdenes
            stock_ledger: Stock de bodega (con su registro de movimientos)
            sequence_service: Generador de IDs
            enforce_single_active_per_route: Rechazar una segunda orden activa
                para la misma ruta
        """
        self.order_repo = order_repo
        self.stock_ledger = stock_ledger
        self.sequence_service = sequence_service
        self.enforce_single_active_per_route = enforce_single_active_per_route

    # =========================================================================
    # RESULTADOS
    # =========================================================================

    @staticmethod
    def _ok(**payload) -> Dict[str, Any]:
        result = {'success': True}
        result.update(payload)
        return result

    @staticmethod
    def _fail(error: CandyPosError) -> Dict[str, Any]:
        return {
            'success': False,
            'error': error.message,
            'errorType': error.error_type,
        }

    # =========================================================================
    # TRANSICIÓN ATÓMICA
    # =========================================================================

    def _transaction(self) -> StoreTransaction:
        return StoreTransaction(
            self.stock_ledger.inventory_repo,
            self.stock_ledger.movement_service.movement_repo,
            self.order_repo,
        )

    def atomic_stock_transition(
        self,
        order_mutation: Callable[[], None],
        stock_deltas: List[StockDelta]
    ) -> List[int]:
        """
        Aplica cambios de stock y la mutación de la orden como una unidad.

        Orden de escritura: cada delta con su movimiento primero, la orden al
        final. Un fallo a mitad deja la orden sin cambios (y el stock
        restaurado); nunca una orden cerrada con el stock sin devolver.

        Args:
            order_mutation: Persiste el nuevo estado de la orden
            stock_deltas: Cambios de stock a aplicar

        Returns:
            Nuevo stock de cada delta, en el mismo orden
        """
        with self._transaction():
            new_stocks = [
                self.stock_ledger.adjust_stock(
                    d.product_id,
                    d.delta,
                    d.movement_type,
                    notes=d.notes,
                    exit_order_id=d.exit_order_id,
                    product_name=d.product_name,
                )
                for d in stock_deltas
            ]
            order_mutation()
        return new_stocks

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    @profile_function(name="Crear orden de salida")
    def create_order(
        self,
        route_id: str,
        items: List[Dict[str, Any]],
        vendor_name: str = '',
        route_name: str = ''
    ) -> Dict[str, Any]:
        """
        Crea una orden de salida y descuenta su mercadería de bodega.

        Args:
            route_id: Ruta a la que se asigna
            items: [{productId, quantity, price?, cost?, productName?|name?}]
            vendor_name: Vendedor responsable
            route_name: Nombre legible de la ruta

        Returns:
            {'success': True, 'orderId': ..., 'order': {...}} o error
        """
        try:
            order = self._create(route_id, items, vendor_name, route_name)
        except CandyPosError as e:
            logger.warning("No se creó la orden para la ruta %s: %s", route_id, e.message)
            return self._fail(e)

        logger.info(
            "Orden de salida creada: %s (ruta %s, %d unidades, $%.2f)",
            order.id, order.route_id, order.total_items, order.total_value
        )
        return self._ok(orderId=order.id, order=order.to_dict())

    def _create(
        self,
        route_id: str,
        items: List[Dict[str, Any]],
        vendor_name: str,
        route_name: str
    ) -> ExitOrder:
        route_id = str(route_id or '').strip()
        if not route_id:
            raise ValidationError("Por favor selecciona una ruta")
        lines = self._validate_new_items(items)

        with self._transaction():
            if self.enforce_single_active_per_route:
                existing = self.order_repo.find_active_by_route(route_id)
                if existing:
                    raise ActiveOrderExists(
                        f"La ruta {route_name or route_id} ya tiene la orden activa "
                        f"{existing.get('id')}. Complétala o cancélala primero."
                    )

            order_items = []
            for line in lines:
                product = self.stock_ledger.get_product(line['productId'])
                order_items.append(ExitOrderItem(
                    product_id=product.id,
                    product_name=line['productName'] or product.name,
                    quantity=line['quantity'],
                    price=product.price if line['price'] is None else line['price'],
                    cost=product.cost if line['cost'] is None else line['cost'],
                ))

            now = _now()
            order = ExitOrder(
                id=self.sequence_service.next_exit_order_id(now),
                route_id=route_id,
                route_name=route_name or '',
                vendor_name=vendor_name or '',
                status=ExitOrderStatus.ACTIVE,
                date=now.date().isoformat(),
                created_at=now.isoformat(),
                items=order_items,
                updated_at=now.isoformat(),
            )
            order.recalculate_totals()

            note = self.stock_ledger.movement_service.exit_note(order.id, route_name or route_id)
            deltas = [
                StockDelta(item.product_id, item.product_name, -item.quantity,
                           MovementType.EXIT, note, order.id)
                for item in order.items
            ]
            self.atomic_stock_transition(
                lambda: self.order_repo.insert(order.to_dict()),
                deltas
            )
        return order

    def _validate_new_items(self, items: Any) -> List[Dict[str, Any]]:
        """
        Valida y normaliza las líneas de una orden nueva.

        Raises:
            ValidationError: Lista vacía, producto repetido, cantidad o precio inválidos
        """
        if not items or not isinstance(items, list):
            raise ValidationError("No has seleccionado ningún producto")

        lines = []
        seen = set()
        for raw in items:
            if not isinstance(raw, dict):
                raise ValidationError("Formato de producto inválido")

            pid = raw.get('productId')
            if not is_valid_product_id(pid):
                raise ValidationError("Cada producto debe indicar un productId válido")
            if str(pid) in seen:
                raise ValidationError(f"El producto {pid} está repetido en la orden")
            seen.add(str(pid))

            quantity = raw.get('quantity')
            if not _is_int(quantity) or quantity <= 0:
                raise ValidationError(
                    f"Cantidad inválida para el producto {pid}: debe ser un entero mayor a 0"
                )

            line = {
                'productId': pid,
                'productName': raw.get('productName') or raw.get('name') or '',
                'quantity': quantity,
            }
            for money_field in ('price', 'cost'):
                value = raw.get(money_field)
                line[money_field] = None if value is None else parse_money(
                    value, f"El campo {money_field} del producto {pid}"
                )
            lines.append(line)
        return lines

    # =========================================================================
    # VENTAS DE RUTA
    # =========================================================================

    @profile_function(name="Registrar ventas de orden")
    def record_sales(self, order_id: str, sold_items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Registra ventas reportadas por el vendedor.

        Los deltas se suman a lo ya vendido; no toca el stock de bodega.
        Si alguna línea excede lo que queda, no se aplica ninguna.

        Args:
            order_id: ID de la orden
            sold_items: [{productId, quantity}]

        Returns:
            {'success': True, 'order': {...}} o error
        """
        try:
            order = self._record_sales(order_id, sold_items)
        except CandyPosError as e:
            logger.warning("Ventas no registradas en %s: %s", order_id, e.message)
            return self._fail(e)

        logger.info(
            "Ventas registradas en %s: %d vendidas, %d restantes",
            order.id, order.sold_items, order.remaining_items
        )
        return self._ok(order=order.to_dict())

    def _record_sales(self, order_id: str, sold_items: Any) -> ExitOrder:
        requested = self._aggregate_sales(sold_items)

        with StoreTransaction(self.order_repo):
            order = self._load_active(order_id)

            # Validar todas las líneas antes de mutar
            for pid, quantity in requested.values():
                item = order.find_item(pid)
                if item is None:
                    raise ValidationError(f"El producto {pid} no pertenece a la orden {order.id}")
                if quantity > item.remaining:
                    raise InsufficientRemaining(
                        f"No se pueden registrar {quantity} unidades de {item.product_name}: "
                        f"solo quedan {item.remaining} en la orden"
                    )

            for pid, quantity in requested.values():
                order.find_item(pid).sold += quantity

            order.recalculate_totals()
            order.updated_at = _now().isoformat()
            self.order_repo.update_order(order.id, order.to_dict())
        return order

    @staticmethod
    def _aggregate_sales(sold_items: Any) -> 'OrderedDict[str, tuple]':
        """
        Agrupa por producto las cantidades vendidas de una misma llamada.

        Raises:
            ValidationError: Lista vacía o cantidades inválidas
        """
        if not sold_items or not isinstance(sold_items, list):
            raise ValidationError("No hay ventas para registrar")

        requested = OrderedDict()
        for raw in sold_items:
            if not isinstance(raw, dict) or not is_valid_product_id(raw.get('productId')):
                raise ValidationError("Cada venta debe indicar un productId válido")
            pid = raw['productId']
            quantity = raw.get('quantity')
            if not _is_int(quantity) or quantity <= 0:
                raise ValidationError(
                    f"Cantidad vendida inválida para el producto {pid}: debe ser un entero mayor a 0"
                )
            key = str(pid)
            previous = requested.get(key, (pid, 0))[1]
            requested[key] = (pid, previous + quantity)
        return requested

    # =========================================================================
    # CIERRE DE ÓRDENES
    # =========================================================================

    @profile_function(name="Completar orden de salida")
    def complete_order(self, order_id: str) -> Dict[str, Any]:
        """
        Completa una orden: devuelve a bodega todo lo no vendido.

        Returns:
            {'success': True, 'orderId': ..., 'returnedItems': n, 'order': {...}} o error
        """
        try:
            order, returned = self._close(order_id, ExitOrderStatus.COMPLETED)
        except CandyPosError as e:
            logger.warning("No se completó la orden %s: %s", order_id, e.message)
            return self._fail(e)

        logger.info("Orden completada: %s (%d unidades devueltas)", order.id, returned)
        return self._ok(orderId=order.id, returnedItems=returned, order=order.to_dict())

    @profile_function(name="Cancelar orden de salida")
    def cancel_order(self, order_id: str) -> Dict[str, Any]:
        """
        Cancela una orden sin ventas: devuelve a bodega todo lo asignado.

        Returns:
            {'success': True, 'orderId': ..., 'returnedItems': n, 'order': {...}} o error
        """
        try:
            order, returned = self._close(order_id, ExitOrderStatus.CANCELLED)
        except CandyPosError as e:
            logger.warning("No se canceló la orden %s: %s", order_id, e.message)
            return self._fail(e)

        logger.info("Orden cancelada: %s (%d unidades devueltas)", order.id, returned)
        return self._ok(orderId=order.id, returnedItems=returned, order=order.to_dict())

    def _close(self, order_id: str, new_status: ExitOrderStatus) -> tuple:
        """
        Lleva una orden activa a un estado terminal devolviendo stock.

        completed devuelve remaining; cancelled devuelve quantity completa y
        solo se permite si no hubo ventas.
        """
        with self._transaction():
            order = self._load_active(order_id)
            movements = self.stock_ledger.movement_service
            route_label = order.route_name or order.route_id

            if new_status == ExitOrderStatus.CANCELLED:
                if order.sold_items > 0:
                    raise CancellationNotAllowed(
                        'No se puede cancelar una orden con ventas registradas. '
                        'Use "Completar" en su lugar.'
                    )
                note = movements.cancel_note(order.id, route_label)
                returns = [(item, item.quantity) for item in order.items]
            else:
                note = movements.return_note(order.id, route_label)
                returns = [(item, item.remaining) for item in order.items]

            deltas = []
            for item, quantity in returns:
                if quantity <= 0:
                    continue
                if not self.stock_ledger.product_exists(item.product_id):
                    logger.warning(
                        "Producto %s ya no existe; no se devuelven %d unidades de la orden %s",
                        item.product_id, quantity, order.id
                    )
                    continue
                deltas.append(StockDelta(
                    item.product_id, item.product_name, quantity,
                    MovementType.RETURN, note, order.id
                ))

            now = _now().isoformat()

            def mark_closed():
                order.status = new_status
                order.updated_at = now
                if new_status == ExitOrderStatus.COMPLETED:
                    order.completed_at = now
                else:
                    order.cancelled_at = now
                self.order_repo.update_order(order.id, order.to_dict())

            self.atomic_stock_transition(mark_closed, deltas)
        return order, sum(d.delta for d in deltas)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def _load_order(self, order_id: str) -> ExitOrder:
        data = self.order_repo.get(order_id) if order_id else None
        if not data:
            raise OrderNotFound('Orden no encontrada')
        return ExitOrder.from_dict(data)

    def _load_active(self, order_id: str) -> ExitOrder:
        order = self._load_order(order_id)
        if not order.is_active:
            raise OrderNotActive(
                f"La orden {order.id} ya está {STATUS_LABELS.get(order.status.value, order.status.value)}"
            )
        return order

    def get_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Lista órdenes, más recientes primero.

        Args:
            filters: {status?, routeId?, date?}

        Raises:
            StoreUnavailable: Si el documento de órdenes no se puede leer
        """
        filters = filters or {}
        orders = self.order_repo.list_orders(
            status=filters.get('status') or None,
            route_id=filters.get('routeId') or filters.get('route_id') or None,
            date=filters.get('date') or None,
        )
        return [ExitOrder.from_dict(o).to_dict() for o in orders]

    def get_order_by_id(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Orden por ID o None."""
        data = self.order_repo.get(order_id) if order_id else None
        return ExitOrder.from_dict(data).to_dict() if data else None

    def get_active_order_by_route(self, route_id: str) -> Optional[Dict[str, Any]]:
        """Orden activa de una ruta o None."""
        data = self.order_repo.find_active_by_route(route_id)
        return ExitOrder.from_dict(data).to_dict() if data else None

    def get_sellable_products(self, order_id: str) -> List[Dict[str, Any]]:
        """
        Productos que el vendedor aún puede vender desde una orden activa.

        Returns:
            [{productId, name, price, cost, availableQuantity, exitOrderId}]
            (vacío si la orden no existe o ya está cerrada)
        """
        data = self.order_repo.get(order_id) if order_id else None
        if not data:
            return []
        order = ExitOrder.from_dict(data)
        if not order.is_active:
            return []
        return [
            {
                'productId': item.product_id,
                'name': item.product_name,
                'price': item.price,
                'cost': item.cost,
                'availableQuantity': item.remaining,
                'exitOrderId': order.id,
            }
            for item in order.items
            if item.remaining > 0
        ]

    def get_order_movements(self, order_id: str) -> List[Dict[str, Any]]:
        """Movimientos de stock generados por una orden."""
        return self.stock_ledger.movement_service.get_order_movements(order_id)

    def get_stats(self, today: Optional[str] = None) -> Dict[str, Any]:
        """
        Indicadores del tablero de órdenes de salida.

        Args:
            today: Fecha YYYY-MM-DD (hoy en UTC si no se indica)

        Returns:
            {activeOrders, todayOrders, totalAssignedValue, totalSoldValue}
        """
        today = today or _now().date().isoformat()
        orders = self.order_repo.list_orders()
        return {
            'activeOrders': sum(1 for o in orders if o.get('status') == ExitOrderStatus.ACTIVE.value),
            'todayOrders': sum(1 for o in orders if o.get('date') == today),
            'totalAssignedValue': round(sum(float(o.get('totalValue', 0) or 0) for o in orders), 2),
            'totalSoldValue': round(sum(float(o.get('soldValue', 0) or 0) for o in orders), 2),
        }
