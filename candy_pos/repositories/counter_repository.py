# ==============================================================================
# REPOSITORIO DE CONTADORES
# ==============================================================================
# Encapsula todo el acceso a counters.json
# Un único documento "main" con los contadores de secuencia del sistema:
#   {"main": {"nextExitOrderId": 4, "nextMovementId": 17}}
# ==============================================================================

import os
from typing import Dict

from candy_pos.repositories.base import DictRepository


class CounterRepository(DictRepository):
    """
    Repositorio de contadores de secuencia.

    increment() hace leer-modificar-escribir con el lock global tomado, de
    modo que dos consumidores del mismo proceso nunca reciben el mismo valor.
    """

    MAIN_DOCUMENT = 'main'

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de contadores.

        Args:
            base_path: Carpeta donde viven los documentos JSON
        """
        file_path = os.path.join(base_path, 'counters.json')
        super().__init__(file_path)

    def get_counters(self, document: str = MAIN_DOCUMENT) -> Dict[str, int]:
        """Valores actuales del documento de contadores."""
        return dict(self.get_all().get(document) or {})

    def peek(self, field: str, document: str = MAIN_DOCUMENT) -> int:
        """Próximo valor que entregaría increment(), sin consumirlo."""
        return int(self.get_counters(document).get(field, 1) or 1)

    def increment(self, field: str, document: str = MAIN_DOCUMENT) -> int:
        """
        Consume el valor actual de un contador y lo avanza en uno.

        Args:
            field: Nombre del contador (p. ej. 'nextMovementId')
            document: Documento de contadores

        Returns:
            El valor emitido (el primero es 1)

        Raises:
            StoreUnavailable: Si el documento no se puede leer o escribir
        """
        with self._file_lock:
            data = self.get_all()
            counters = dict(data.get(document) or {})
            value = int(counters.get(field, 1) or 1)
            counters[field] = value + 1
            data[document] = counters
            self.save_all(data)
        return value
