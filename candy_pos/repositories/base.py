# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a documentos JSON
# ==============================================================================

import copy
import json
import os
from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
import threading

from candy_pos.exceptions import StoreUnavailable


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con un lock común.

    El lock es compartido por TODOS los repositorios (atributo de clase) y es
    reentrante: StoreTransaction lo mantiene tomado mientras agrupa
    escrituras sobre varios documentos.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.

        Returns:
            Estructura vacía (dict, list, etc.) según el repositorio
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Un archivo inexistente equivale a datos vacíos. Un archivo corrupto
        NO: se reporta como StoreUnavailable para no sobrescribirlo.

        Raises:
            StoreUnavailable: Si el archivo no se puede leer o parsear
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except (OSError, json.JSONDecodeError) as e:
                raise StoreUnavailable(
                    f"No se pudo leer {os.path.basename(self.file_path)}: {e}"
                ) from e

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Raises:
            StoreUnavailable: Si hay error de escritura
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                # Reemplazar archivo original (operación atómica en la mayoría de sistemas)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                # Limpiar archivo temporal si algo falla
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise StoreUnavailable(
                    f"No se pudo guardar {os.path.basename(self.file_path)}: {e}"
                ) from e

    # ===========================================================================
    # Snapshots (usados por StoreTransaction)
    # ===========================================================================

    def snapshot(self) -> Any:
        """Copia profunda del contenido actual del documento."""
        return copy.deepcopy(self._read_raw())

    def restore(self, data: Any) -> None:
        """Reescribe el documento con un snapshot previo."""
        self._write_raw(data)
        self.reload()

    def reload(self) -> None:
        """
        Recarga los datos desde el archivo.
        Las subclases con caché la invalidan aquí.
        """
        pass


class DictRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como diccionario.
    El ID es la clave del diccionario.

    Ejemplo: exit_orders.json -> {"EO-20250101-001": {...}, ...}
    """

    def _empty_data(self) -> Dict:
        """Retorna diccionario vacío."""
        return {}

    def get_all(self) -> Dict[str, Any]:
        """
        Obtiene todos los registros.

        Returns:
            Diccionario con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, dict) else {}

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Obtiene un registro por su ID.

        Args:
            record_id: ID del registro (puede ser int o str)

        Returns:
            Datos del registro o None si no existe
        """
        data = self.get_all()
        # En JSON las claves siempre son str
        return data.get(str(record_id))

    def save_all(self, data: Dict[str, Any]) -> None:
        """
        Guarda todos los registros (reemplazo completo).

        Args:
            data: Diccionario completo de datos
        """
        self._write_raw(data)

    def update(self, record_id: Any, record_data: Dict[str, Any]) -> None:
        """
        Reemplaza un registro específico.

        Args:
            record_id: ID del registro
            record_data: Nuevos datos del registro
        """
        with self._file_lock:
            data = self.get_all()
            data[str(record_id)] = record_data
            self._write_raw(data)


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: stock_movements.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        """Retorna lista vacía."""
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Lista con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def append(self, record: Dict[str, Any]) -> None:
        """
        Agrega un registro al final.

        Args:
            record: Datos del nuevo registro
        """
        with self._file_lock:
            data = self.get_all()
            data.append(record)
            self._write_raw(data)

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """
        Busca todos los registros que coinciden con un campo.
        La comparación es por texto para aceptar IDs int o str.

        Args:
            field: Nombre del campo
            value: Valor a buscar

        Returns:
            Lista de registros que coinciden
        """
        wanted = str(value)
        return [
            r for r in self.get_all()
            if r.get(field) is not None and str(r.get(field)) == wanted
        ]
