# ==============================================================================
# TRANSACCIÓN MULTI-DOCUMENTO
# ==============================================================================
# Los documentos JSON solo ofrecen escritura atómica por archivo. Una operación
# del motor toca varios (productos, movimientos, contadores, órdenes), así que
# StoreTransaction los agrupa:
#   1. Toma el lock global de repositorios (serializa a otros escritores)
#   2. Guarda un snapshot de cada documento participante
#   3. Si el bloque falla, reescribe los documentos que cambiaron
#      con su snapshot (compensación) y relanza el error
#
# Uso:
#     with StoreTransaction(inventory_repo, movement_repo, order_repo):
#         ...escrituras...
# ==============================================================================

import logging
from typing import Any, List, Tuple

from candy_pos.exceptions import StoreUnavailable
from candy_pos.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class StoreTransaction:
    """
    Agrupa escrituras sobre varios repositorios como una unidad todo-o-nada.

    Es reentrante: una transacción anidada toma snapshots propios y, si
    falla, compensa lo suyo antes de que la externa compense el resto.
    """

    def __init__(self, *repositories: BaseRepository):
        self.repositories = [r for r in repositories if r is not None]
        self._snapshots: List[Tuple[BaseRepository, Any]] = []
        self.unrecovered: List[str] = []

    def __enter__(self) -> 'StoreTransaction':
        BaseRepository._file_lock.acquire()
        try:
            self._snapshots = [(repo, repo.snapshot()) for repo in self.repositories]
        except BaseException:
            BaseRepository._file_lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                self._rollback()
        finally:
            self._snapshots = []
            BaseRepository._file_lock.release()
        # Nunca suprimir la excepción original
        return False

    def _rollback(self) -> None:
        """Restaura, en orden inverso, los documentos que cambiaron."""
        self.unrecovered = []
        for repo, snapshot in reversed(self._snapshots):
            try:
                if repo.snapshot() != snapshot:
                    repo.restore(snapshot)
                    logger.warning("Documento restaurado tras fallo: %s", repo.file_path)
            except StoreUnavailable as e:
                self.unrecovered.append(repo.file_path)
                logger.critical(
                    "No se pudo restaurar %s (%s). Requiere conciliación manual.",
                    repo.file_path, e
                )
