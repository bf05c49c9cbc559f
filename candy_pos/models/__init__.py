# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Beneficios:
#   - Type hints para mejor documentación y autocompletado
#   - Fácil serialización/deserialización a documentos JSON
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Inventario
    Product,

    # Órdenes de salida
    ExitOrder,
    ExitOrderItem,
    ExitOrderStatus,

    # Movimientos
    StockMovement,
    StockDelta,
    MovementType,
    MANUAL_ADJUSTMENT_TYPES,

    same_product,
)

__all__ = [
    'Product',
    'ExitOrder',
    'ExitOrderItem',
    'ExitOrderStatus',
    'StockMovement',
    'StockDelta',
    'MovementType',
    'MANUAL_ADJUSTMENT_TYPES',
    'same_product',
]
