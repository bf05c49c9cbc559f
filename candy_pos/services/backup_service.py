# ==============================================================================
# SERVICIO DE BACKUPS Y EXPORTACIÓN
# ==============================================================================
# Crea backups diarios de los documentos JSON del sistema en formato ZIP.
# Mantiene solo los últimos N backups (rotación automática) y permite
# exportar todos los datos en un único JSON.
#
# FORMATO: backup_YYYY-MM-DD.zip
# ==============================================================================

import json
import logging
import os
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from candy_pos.exceptions import StoreUnavailable
from candy_pos.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class BackupService:
    """
    Servicio para gestión de backups y exportación.

    Responsabilidades:
    - Crear backups diarios en formato ZIP
    - Rotar backups antiguos (mantener solo los últimos N)
    - Exportar todos los documentos como un JSON

    Uso:
        backup_service = BackupService(base_path='/data')
        backup_service.run_daily_backup()
    """

    # Documentos a respaldar, con su clave en la exportación
    DATA_FILES = {
        'products.json': 'products',
        'exit_orders.json': 'exitOrders',
        'stock_movements.json': 'stockMovements',
        'counters.json': 'counters',
    }

    # Cantidad de backups a mantener
    MAX_BACKUPS = 7

    # Nombre de la carpeta de backups
    BACKUP_DIR_NAME = 'backups'

    def __init__(self, base_path: str):
        """
        Inicializa el servicio de backups.

        Args:
            base_path: Carpeta donde viven los documentos JSON
        """
        self.base_path = base_path
        self.backup_root = os.path.join(base_path, self.BACKUP_DIR_NAME)
        os.makedirs(self.backup_root, exist_ok=True)

    def _get_today_zip_path(self) -> str:
        today = datetime.now().strftime('%Y-%m-%d')
        return os.path.join(self.backup_root, f'backup_{today}.zip')

    def _backup_exists_today(self) -> bool:
        zip_path = self._get_today_zip_path()
        return os.path.exists(zip_path) and os.path.getsize(zip_path) > 0

    def _get_existing_backups(self) -> List[str]:
        """
        Nombres de los ZIP de backup, más reciente primero.
        Ignora archivos que no siguen el formato backup_YYYY-MM-DD.zip.
        """
        if not os.path.isdir(self.backup_root):
            return []

        backups = []
        for item in os.listdir(self.backup_root):
            if not (item.startswith('backup_') and item.endswith('.zip')):
                continue
            if not os.path.isfile(os.path.join(self.backup_root, item)):
                continue
            try:
                datetime.strptime(item[7:-4], '%Y-%m-%d')
            except ValueError:
                continue
            backups.append(item)

        backups.sort(reverse=True)
        return backups

    def _backup_json_files(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Empaqueta los documentos existentes en un ZIP.

        Returns:
            Tupla (archivos_agregados, lista_de_errores)
        """
        added = 0
        errors = []

        try:
            # El lock de repositorios evita capturar una transacción a medias
            with BaseRepository._file_lock, zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
                for filename in self.DATA_FILES:
                    src = os.path.join(self.base_path, filename)
                    # Un documento inexistente no es error (sistema nuevo)
                    if not os.path.exists(src):
                        continue
                    try:
                        zf.write(src, filename)
                        added += 1
                    except OSError as e:
                        errors.append(f"{filename}: {e}")
        except (OSError, zipfile.BadZipFile) as e:
            errors.append(f"Error creando ZIP: {e}")
            if os.path.exists(zip_path):
                os.remove(zip_path)

        return added, errors

    def _delete_old_backups(self) -> int:
        """Elimina backups más allá de MAX_BACKUPS. Retorna cuántos borró."""
        deleted = 0
        for backup_name in self._get_existing_backups()[self.MAX_BACKUPS:]:
            try:
                os.remove(os.path.join(self.backup_root, backup_name))
                deleted += 1
                logger.info("Eliminado backup antiguo: %s", backup_name)
            except OSError as e:
                logger.error("No se pudo eliminar %s: %s", backup_name, e)
        return deleted

    def create_backup(self, force: bool = False) -> Dict[str, Any]:
        """
        Crea un backup ZIP de los documentos.

        Args:
            force: Si True, crea backup aunque ya exista uno hoy

        Returns:
            Dict con resultado: {success, message, files_added, errors, backup_path}
        """
        zip_path = self._get_today_zip_path()
        result = {
            'success': False,
            'message': '',
            'files_added': 0,
            'errors': [],
            'backup_path': zip_path,
        }

        if not force and self._backup_exists_today():
            result['success'] = True
            result['message'] = 'Backup del día ya existe'
            logger.info("Backup ya existe hoy: %s", os.path.basename(zip_path))
            return result

        added, errors = self._backup_json_files(zip_path)
        result['success'] = added > 0
        result['files_added'] = added
        result['errors'] = errors

        if added > 0:
            size_kb = round(os.path.getsize(zip_path) / 1024, 2)
            result['message'] = f'Backup creado: {added} archivos ({size_kb} KB)'
            logger.info("Backup creado: %s (%d archivos, %s KB)",
                        os.path.basename(zip_path), added, size_kb)
        else:
            result['message'] = 'No se encontraron archivos para respaldar'

        return result

    def rotate_backups(self) -> Dict[str, int]:
        """
        Ejecuta la rotación de backups.

        Returns:
            {deleted_count, remaining_count}
        """
        deleted = self._delete_old_backups()
        return {
            'deleted_count': deleted,
            'remaining_count': len(self._get_existing_backups()),
        }

    def run_daily_backup(self) -> Dict[str, Any]:
        """Crea el backup del día (si falta) y rota los antiguos."""
        return {
            'backup': self.create_backup(),
            'rotation': self.rotate_backups(),
        }

    def get_backup_status(self) -> Dict[str, Any]:
        """Estado actual de los backups existentes."""
        backup_info = []
        for backup_name in self._get_existing_backups():
            backup_path = os.path.join(self.backup_root, backup_name)
            size_bytes = os.path.getsize(backup_path)
            try:
                with zipfile.ZipFile(backup_path, 'r') as zf:
                    file_count = len(zf.namelist())
            except zipfile.BadZipFile:
                logger.warning("Backup corrupto: %s", backup_name)
                file_count = 0

            backup_info.append({
                'filename': backup_name,
                'date': backup_name[7:-4],
                'files': file_count,
                'size_bytes': size_bytes,
                'size_kb': round(size_bytes / 1024, 2),
            })

        return {
            'total_backups': len(backup_info),
            'max_backups': self.MAX_BACKUPS,
            'backup_root': self.backup_root,
            'backups': backup_info,
            'today_exists': self._backup_exists_today(),
        }

    # =========================================================================
    # EXPORTACIÓN
    # =========================================================================

    def export_all_data(self) -> Dict[str, Any]:
        """
        Exporta todos los documentos en un único diccionario.

        Returns:
            {exportedAt, products, exitOrders, stockMovements, counters}

        Raises:
            StoreUnavailable: Si algún documento existe pero no se puede leer
        """
        export = {'exportedAt': datetime.now(timezone.utc).isoformat()}
        with BaseRepository._file_lock:
            for filename, key in self.DATA_FILES.items():
                path = os.path.join(self.base_path, filename)
                empty = [] if key == 'stockMovements' else {}
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        export[key] = json.load(f)
                except FileNotFoundError:
                    export[key] = empty
                except (OSError, json.JSONDecodeError) as e:
                    raise StoreUnavailable(f"No se pudo exportar {filename}: {e}") from e
        return export


# ==============================================================================
# BACKUP AL INICIO
# ==============================================================================

def run_startup_backup(base_path: str) -> Optional[Dict[str, Any]]:
    """
    Ejecuta el backup diario al iniciar la aplicación.

    Un backup fallido nunca impide arrancar: el error queda en el log.

    Returns:
        Resultado de run_daily_backup() o None si falló
    """
    try:
        result = BackupService(base_path).run_daily_backup()
    except OSError as e:
        logger.error("No se pudo ejecutar backup: %s", e)
        return None

    if result['backup']['errors']:
        logger.warning("Backup con errores: %s", result['backup']['errors'])
    elif result['backup']['files_added'] > 0:
        logger.info("Backup diario completado")
    return result
