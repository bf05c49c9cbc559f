# ==============================================================================
# candy_pos - Órdenes de salida e inventario de la bodega central
# ==============================================================================

__version__ = '1.0.0'
