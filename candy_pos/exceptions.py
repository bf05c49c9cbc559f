# ==============================================================================
# EXCEPCIONES DEL DOMINIO
# ==============================================================================
# Jerarquía única de errores del motor de órdenes de salida.
# Los servicios lanzan estas excepciones internamente; las operaciones
# públicas del motor las convierten en {'success': False, 'error': ...}.
# El mensaje está pensado para mostrarse tal cual al usuario final.
# ==============================================================================


class CandyPosError(Exception):
    """Error base del sistema."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        """Nombre del tipo de error (se expone como 'errorType')."""
        return type(self).__name__


class ValidationError(CandyPosError):
    """Datos de entrada inválidos (error del llamador, no se reintenta)."""
    pass


class NotFound(CandyPosError):
    """Producto u orden inexistente."""
    pass


class ProductNotFound(NotFound):
    pass


class OrderNotFound(NotFound):
    pass


class BusinessRuleError(CandyPosError):
    """Violación de una regla de negocio."""
    pass


class InsufficientRemaining(BusinessRuleError):
    """Se intentó vender más de lo que queda asignado en la orden."""
    pass


class InsufficientStock(BusinessRuleError):
    """No hay stock suficiente en bodega para la operación."""
    pass


class CancellationNotAllowed(BusinessRuleError):
    """La orden tiene ventas registradas y debe completarse."""
    pass


class OrderNotActive(BusinessRuleError):
    """La orden ya fue completada o cancelada."""
    pass


class ActiveOrderExists(BusinessRuleError):
    """La ruta ya tiene una orden de salida activa."""
    pass


class StoreUnavailable(CandyPosError):
    """No se pudo leer o escribir un documento del almacenamiento."""
    pass


class DuplicateIdentifier(CandyPosError):
    """Se intentó insertar un documento con un ID ya existente."""
    pass
