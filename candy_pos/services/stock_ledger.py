# ==============================================================================
# STOCK LEDGER - Inventario de la bodega central
# ==============================================================================
# Único dueño del stock de cada producto. Toda mutación pasa por aquí y
# siempre queda emparejada con un movimiento en el registro de stock.
#
# POLÍTICA DE STOCK:
# La forma de aplicar un delta es una función intercambiable:
#   - clamp_non_negative: descuentos mayores al stock dejan el stock en 0
#   - reject_on_insufficient: rechaza el descuento con InsufficientStock
# ==============================================================================

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from candy_pos.exceptions import InsufficientStock, ProductNotFound, ValidationError
from candy_pos.models import MANUAL_ADJUSTMENT_TYPES, MovementType, Product
from candy_pos.repositories.inventory_repository import InventoryRepository
from candy_pos.repositories.transaction import StoreTransaction
from candy_pos.services.movement_service import MovementService

logger = logging.getLogger(__name__)


# ==============================================================================
# POLÍTICAS DE STOCK
# ==============================================================================

StockPolicy = Callable[[int, int], int]


def clamp_non_negative(current: int, delta: int) -> int:
    """Aplica el delta con piso en cero."""
    return max(0, current + delta)


def reject_on_insufficient(current: int, delta: int) -> int:
    """Aplica el delta o falla si el stock quedaría negativo."""
    new_stock = current + delta
    if new_stock < 0:
        raise InsufficientStock(
            f"Stock insuficiente: se pidieron {-delta} unidades y solo hay {current}"
        )
    return new_stock


STOCK_POLICIES: Dict[str, StockPolicy] = {
    'clamp': clamp_non_negative,
    'reject': reject_on_insufficient,
}


def get_stock_policy(name: str) -> StockPolicy:
    """
    Obtiene una política por nombre de configuración.

    Raises:
        ValueError: Si el nombre no corresponde a una política
    """
    try:
        return STOCK_POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Política de stock desconocida '{name}'. Opciones: {sorted(STOCK_POLICIES)}"
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_valid_product_id(product_id: Any) -> bool:
    """Un ID de producto es un entero o un texto no vacío."""
    if isinstance(product_id, str):
        return product_id.strip() != ''
    return _is_int(product_id)


def parse_money(value: Any, label: str) -> float:
    """
    Convierte un precio o costo a float redondeado a 2 decimales.

    Raises:
        ValidationError: Si no es numérico, no es finito o es negativo
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} debe ser numérico")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} debe ser numérico")
    if not math.isfinite(amount):
        raise ValidationError(f"{label} debe ser un número finito")
    if amount < 0:
        raise ValidationError(f"{label} no puede ser negativo")
    return round(amount, 2)


class StockLedger:
    """
    Servicio de stock de la bodega central.

    Responsabilidades:
    - Consultar stock y productos
    - Aplicar deltas con la política configurada
    - Ajustes manuales (entrada / salida / ajuste)
    - Emparejar cada cambio con su movimiento
    """

    def __init__(
        self,
        inventory_repo: InventoryRepository,
        movement_service: MovementService,
        policy: StockPolicy = clamp_non_negative
    ):
        """
        Args:
            inventory_repo: Repositorio de productos
            movement_service: Registro de movimientos
            policy: Función (stock_actual, delta) -> nuevo_stock
        """
        self.inventory_repo = inventory_repo
        self.movement_service = movement_service
        self.policy = policy

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_product(self, product_id: Any) -> Product:
        """
        Raises:
            ProductNotFound: Si el producto no existe
        """
        data = self.inventory_repo.get_product(product_id)
        if data is None:
            raise ProductNotFound(f"Producto {product_id} no encontrado")
        return Product.from_dict(self.inventory_repo.normalize_key(product_id), data)

    def product_exists(self, product_id: Any) -> bool:
        return self.inventory_repo.product_exists(product_id)

    def get_stock(self, product_id: Any) -> int:
        """
        Stock actual de un producto.

        Raises:
            ProductNotFound: Si el producto no existe
        """
        return self.get_product(product_id).stock

    def list_products(self) -> List[Product]:
        return [
            Product.from_dict(p['id'], p)
            for p in self.inventory_repo.get_all_products()
        ]

    def stock_history(self, product_id: Any) -> List[Dict[str, Any]]:
        """
        Historial de movimientos de un producto (cronológico).

        Raises:
            ProductNotFound: Si el producto no existe
        """
        self.get_product(product_id)
        return self.movement_service.get_product_movements(product_id)

    # =========================================================================
    # CATÁLOGO
    # =========================================================================

    def create_product(
        self,
        name: str,
        price: float,
        cost: float = 0.0,
        stock: int = 0,
        category: str = '',
        product_id: Any = None
    ) -> Product:
        """
        Crea un producto en bodega.
        Un stock inicial positivo queda registrado como movimiento 'entrada'.

        Raises:
            ValidationError: Datos inválidos o ID repetido
        """
        name = (name or '').strip()
        if not name:
            raise ValidationError("El nombre del producto es obligatorio")
        if not _is_int(stock) or stock < 0:
            raise ValidationError("El stock inicial debe ser un entero mayor o igual a 0")
        price = parse_money(0 if price is None else price, "El precio")
        cost = parse_money(0 if cost is None else cost, "El costo")
        if product_id is not None and not is_valid_product_id(product_id):
            raise ValidationError("El ID del producto debe ser un entero o un texto")

        with StoreTransaction(self.inventory_repo, self.movement_service.movement_repo):
            if product_id is None:
                product_id = self.inventory_repo.get_next_id()
            elif self.inventory_repo.product_exists(product_id):
                raise ValidationError(f"El producto {product_id} ya existe")

            product = Product(
                id=self.inventory_repo.normalize_key(product_id),
                name=name,
                price=price,
                cost=cost,
                stock=stock,
                category=category or '',
                updated_at=datetime.now(timezone.utc).isoformat(),
            )
            self.inventory_repo.create_product(product.id, product.to_dict())

            if stock > 0:
                self.movement_service.record(
                    product.id, product.name, MovementType.ENTRADA, stock,
                    notes='Stock inicial', previous_stock=0, new_stock=stock
                )

        logger.info("Producto creado: %s (%s) stock=%d", product.id, product.name, stock)
        return product

    # =========================================================================
    # MUTACIONES DE STOCK
    # =========================================================================

    def adjust_stock(
        self,
        product_id: Any,
        delta: int,
        movement_type: Any,
        notes: str = '',
        exit_order_id: Optional[str] = None,
        product_name: Optional[str] = None
    ) -> int:
        """
        Aplica un delta al stock y registra el movimiento correspondiente.

        El movimiento guarda el delta solicitado; previousStock/newStock
        reflejan lo que la política aplicó realmente.

        Args:
            product_id: Producto
            delta: Cambio con signo
            movement_type: Tipo de movimiento
            notes: Causa
            exit_order_id: Orden de salida relacionada
            product_name: Nombre a registrar (por defecto el del catálogo)

        Returns:
            Nuevo stock

        Raises:
            ProductNotFound: Si el producto no existe
            InsufficientStock: Si la política rechaza el descuento
        """
        with StoreTransaction(self.inventory_repo, self.movement_service.movement_repo):
            product = self.get_product(product_id)
            previous = product.stock
            new_stock = self.policy(previous, delta)

            if delta < 0 and new_stock != previous + delta:
                logger.warning(
                    "Stock de %s recortado a %d (pedido %d, había %d)",
                    product.id, new_stock, -delta, previous
                )

            self.inventory_repo.update_product(product.id, {
                'stock': new_stock,
                'updatedAt': datetime.now(timezone.utc).isoformat(),
            })
            self.movement_service.record(
                product.id,
                product_name or product.name,
                movement_type,
                delta,
                notes=notes,
                exit_order_id=exit_order_id,
                previous_stock=previous,
                new_stock=new_stock,
            )
        return new_stock

    def apply_adjustment(
        self,
        product_id: Any,
        adjustment_type: str,
        quantity: int,
        notes: str = ''
    ) -> int:
        """
        Ajuste manual de inventario.

        - entrada: suma quantity
        - salida: resta quantity (rechaza si no hay stock suficiente)
        - ajuste: fija el stock en quantity (conteo físico)

        Returns:
            Nuevo stock

        Raises:
            ValidationError: Tipo o cantidad inválidos
            ProductNotFound: Si el producto no existe
            InsufficientStock: Salida mayor al stock disponible
        """
        if adjustment_type not in MANUAL_ADJUSTMENT_TYPES:
            raise ValidationError(
                f"Tipo de ajuste inválido '{adjustment_type}'. "
                f"Opciones: {', '.join(sorted(MANUAL_ADJUSTMENT_TYPES))}"
            )
        minimum = 0 if adjustment_type == MovementType.AJUSTE.value else 1
        if not _is_int(quantity) or quantity < minimum:
            raise ValidationError("Por favor ingresa una cantidad válida mayor a 0")

        with StoreTransaction(self.inventory_repo, self.movement_service.movement_repo):
            current = self.get_stock(product_id)

            if adjustment_type == MovementType.ENTRADA.value:
                delta = quantity
            elif adjustment_type == MovementType.SALIDA.value:
                if quantity > current:
                    raise InsufficientStock(
                        f"No puedes retirar {quantity} unidades. Solo hay {current} disponibles."
                    )
                delta = -quantity
            else:
                delta = quantity - current

            new_stock = self.adjust_stock(
                product_id, delta, adjustment_type,
                notes=notes or self.movement_service.adjustment_note(adjustment_type)
            )

        logger.info("Ajuste %s en %s: %d -> %d", adjustment_type, product_id, current, new_stock)
        return new_stock
