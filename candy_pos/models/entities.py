# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# to_dict() produce el documento JSON (claves camelCase) y from_dict()
# reconstruye la entidad desde ese documento.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum

from candy_pos.exceptions import StoreUnavailable


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class ExitOrderStatus(str, Enum):
    """Estados posibles de una orden de salida."""
    ACTIVE = "active"          # Mercadería en ruta
    COMPLETED = "completed"    # Liquidada, sobrantes devueltos a bodega
    CANCELLED = "cancelled"    # Anulada sin ventas, todo devuelto


class MovementType(str, Enum):
    """Tipos de movimiento de stock."""
    EXIT = "exit"          # Salida a ruta por orden de salida
    RETURN = "return"      # Devolución de una orden de salida
    ENTRADA = "entrada"    # Ingreso manual a bodega
    SALIDA = "salida"      # Retiro manual de bodega
    AJUSTE = "ajuste"      # Conteo físico (fija el stock)


# Tipos permitidos en el ajuste manual de inventario
MANUAL_ADJUSTMENT_TYPES = frozenset([
    MovementType.ENTRADA.value,
    MovementType.SALIDA.value,
    MovementType.AJUSTE.value,
])


def same_product(a: Any, b: Any) -> bool:
    """Compara IDs de producto sin importar si vienen como int o str."""
    return str(a) == str(b)


# ==============================================================================
# INVENTARIO
# ==============================================================================

@dataclass
class Product:
    """
    Producto de la bodega central.

    Attributes:
        id: Identificador del producto
        name: Nombre para mostrar
        price: Precio de venta
        cost: Costo de compra
        stock: Unidades en bodega (nunca negativo)
        category: Categoría (solo informativa)
        updated_at: Última modificación (ISO)
    """
    id: Any
    name: str
    price: float = 0.0
    cost: float = 0.0
    stock: int = 0
    category: str = ''
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia (sin el ID, que es la clave)."""
        return {
            'name': self.name,
            'price': self.price,
            'cost': self.cost,
            'stock': self.stock,
            'category': self.category,
            'updatedAt': self.updated_at,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        d = self.to_dict()
        d['id'] = self.id
        return d

    @classmethod
    def from_dict(cls, pid: Any, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=pid,
            name=data.get('name', ''),
            price=float(data.get('price', 0.0) or 0.0),
            cost=float(data.get('cost', 0.0) or 0.0),
            stock=int(data.get('stock', 0) or 0),
            category=data.get('category', ''),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ÓRDENES DE SALIDA
# ==============================================================================

@dataclass
class ExitOrderItem:
    """
    Línea de una orden de salida.

    quantity se fija al crear la orden y no cambia; sold solo crece.
    remaining siempre se deriva de ambos.
    """
    product_id: Any
    product_name: str
    quantity: int
    price: float
    cost: float = 0.0
    sold: int = 0

    @property
    def remaining(self) -> int:
        return self.quantity - self.sold

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'quantity': self.quantity,
            'price': self.price,
            'cost': self.cost,
            'sold': self.sold,
            'remaining': self.remaining,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExitOrderItem':
        # 'remaining' del documento se ignora: se recalcula
        return cls(
            product_id=data.get('productId'),
            product_name=data.get('productName', ''),
            quantity=int(data.get('quantity', 0) or 0),
            price=float(data.get('price', 0.0) or 0.0),
            cost=float(data.get('cost', 0.0) or 0.0),
            sold=int(data.get('sold', 0) or 0),
        )


@dataclass
class ExitOrder:
    """
    Orden de salida: asignación de mercadería de bodega a una ruta/vendedor.

    Attributes:
        id: ID generado (EO-YYYYMMDD-NNN)
        route_id: Ruta a la que se asigna
        route_name: Nombre de la ruta (para mostrar)
        vendor_name: Vendedor responsable
        status: Estado de la orden
        date: Fecha de creación (YYYY-MM-DD)
        created_at: Timestamp de creación (ISO, ordena los listados)
        items: Líneas de la orden
        total_items / total_value / total_cost: Totales asignados
        sold_items / sold_value: Acumulados de ventas reportadas
    """
    id: str
    route_id: str
    route_name: str = ''
    vendor_name: str = ''
    status: ExitOrderStatus = ExitOrderStatus.ACTIVE
    date: str = ''
    created_at: str = ''
    items: List[ExitOrderItem] = field(default_factory=list)
    total_items: int = 0
    total_value: float = 0.0
    total_cost: float = 0.0
    sold_items: int = 0
    sold_value: float = 0.0
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None
    cancelled_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ExitOrderStatus.ACTIVE

    @property
    def remaining_items(self) -> int:
        return sum(item.remaining for item in self.items)

    def find_item(self, product_id: Any) -> Optional[ExitOrderItem]:
        """Busca la línea de un producto."""
        for item in self.items:
            if same_product(item.product_id, product_id):
                return item
        return None

    def recalculate_totals(self) -> None:
        """Recalcula totales y acumulados a partir de las líneas."""
        self.total_items = sum(i.quantity for i in self.items)
        self.total_value = round(sum(i.quantity * i.price for i in self.items), 2)
        self.total_cost = round(sum(i.quantity * i.cost for i in self.items), 2)
        self.sold_items = sum(i.sold for i in self.items)
        self.sold_value = round(sum(i.sold * i.price for i in self.items), 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'routeId': self.route_id,
            'routeName': self.route_name,
            'vendorName': self.vendor_name,
            'status': self.status.value if isinstance(self.status, Enum) else self.status,
            'date': self.date,
            'createdAt': self.created_at,
            'items': [i.to_dict() for i in self.items],
            'totalItems': self.total_items,
            'totalValue': self.total_value,
            'totalCost': self.total_cost,
            'soldItems': self.sold_items,
            'soldValue': self.sold_value,
            'updatedAt': self.updated_at,
        }
        if self.completed_at:
            d['completedAt'] = self.completed_at
        if self.cancelled_at:
            d['cancelledAt'] = self.cancelled_at
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExitOrder':
        """
        Crea instancia desde diccionario.

        Raises:
            StoreUnavailable: Si el documento tiene un estado desconocido
        """
        try:
            status = ExitOrderStatus(data.get('status', 'active'))
        except ValueError:
            raise StoreUnavailable(
                f"La orden {data.get('id')} tiene un estado desconocido: {data.get('status')!r}"
            )
        return cls(
            id=data.get('id', ''),
            route_id=data.get('routeId', ''),
            route_name=data.get('routeName', ''),
            vendor_name=data.get('vendorName', ''),
            status=status,
            date=data.get('date', ''),
            created_at=data.get('createdAt', ''),
            items=[ExitOrderItem.from_dict(i) for i in data.get('items', [])],
            total_items=int(data.get('totalItems', 0) or 0),
            total_value=float(data.get('totalValue', 0.0) or 0.0),
            total_cost=float(data.get('totalCost', 0.0) or 0.0),
            sold_items=int(data.get('soldItems', 0) or 0),
            sold_value=float(data.get('soldValue', 0.0) or 0.0),
            updated_at=data.get('updatedAt'),
            completed_at=data.get('completedAt'),
            cancelled_at=data.get('cancelledAt'),
        )


# ==============================================================================
# MOVIMIENTOS DE STOCK
# ==============================================================================

@dataclass
class StockMovement:
    """
    Registro inmutable de un cambio de stock.

    quantity es el delta solicitado (con signo). previous_stock y new_stock
    guardan lo que realmente aplicó el ledger.
    """
    id: int
    product_id: Any
    product_name: str
    type: str
    quantity: int
    notes: str = ''
    date: str = ''
    exit_order_id: Optional[str] = None
    previous_stock: Optional[int] = None
    new_stock: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'productId': self.product_id,
            'productName': self.product_name,
            'type': self.type,
            'quantity': self.quantity,
            'notes': self.notes,
            'date': self.date,
            'previousStock': self.previous_stock,
            'newStock': self.new_stock,
        }
        if self.exit_order_id:
            d['exitOrderId'] = self.exit_order_id
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StockMovement':
        return cls(
            id=int(data.get('id', 0) or 0),
            product_id=data.get('productId'),
            product_name=data.get('productName', ''),
            type=data.get('type', ''),
            quantity=int(data.get('quantity', 0) or 0),
            notes=data.get('notes', ''),
            date=data.get('date', ''),
            exit_order_id=data.get('exitOrderId'),
            previous_stock=data.get('previousStock'),
            new_stock=data.get('newStock'),
        )


@dataclass
class StockDelta:
    """Cambio de stock pendiente junto con el movimiento que lo documenta."""
    product_id: Any
    product_name: str
    delta: int
    movement_type: MovementType
    notes: str = ''
    exit_order_id: Optional[str] = None
