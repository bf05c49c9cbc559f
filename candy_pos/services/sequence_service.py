# ==============================================================================
# SERVICIO DE SECUENCIAS
# ==============================================================================
# Genera los identificadores legibles del sistema:
#   - Órdenes de salida: EO-YYYYMMDD-NNN
#   - Movimientos de stock: entero secuencial
# Ambos contadores viven en counters.json (documento "main") y se consumen
# con un incremento atómico del repositorio: ningún valor se emite dos veces.
# ==============================================================================

import logging
from datetime import date as date_type, datetime, timezone
from typing import Optional, Union

from candy_pos.repositories.counter_repository import CounterRepository

logger = logging.getLogger(__name__)


class SequenceService:
    """
    Generador de identificadores.

    El contador de órdenes es global (no se reinicia por día); la fecha del
    prefijo solo agrupa y ordena visualmente.
    """

    EXIT_ORDER_COUNTER = 'nextExitOrderId'
    MOVEMENT_COUNTER = 'nextMovementId'
    EXIT_ORDER_PREFIX = 'EO'

    def __init__(self, counter_repo: CounterRepository):
        """
        Args:
            counter_repo: Repositorio de contadores
        """
        self.counter_repo = counter_repo

    def next_exit_order_id(self, date: Optional[Union[datetime, date_type]] = None) -> str:
        """
        Genera el siguiente ID de orden de salida.

        Args:
            date: Fecha del prefijo (hoy en UTC si no se indica)

        Returns:
            ID en formato "EO-20250110-001"

        Raises:
            StoreUnavailable: Si el documento de contadores no está disponible
        """
        date = date or datetime.now(timezone.utc)
        number = self.counter_repo.increment(self.EXIT_ORDER_COUNTER)
        order_id = f"{self.EXIT_ORDER_PREFIX}-{date.strftime('%Y%m%d')}-{number:03d}"
        logger.debug("ID de orden emitido: %s", order_id)
        return order_id

    def next_movement_id(self) -> int:
        """
        Genera el siguiente ID de movimiento de stock.

        Raises:
            StoreUnavailable: Si el documento de contadores no está disponible
        """
        return self.counter_repo.increment(self.MOVEMENT_COUNTER)
