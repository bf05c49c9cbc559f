# ==============================================================================
# REPOSITORIO DE INVENTARIO
# ==============================================================================
# Encapsula todo el acceso a products.json
# El inventario se almacena como diccionario: {product_id: {datos_producto}}
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from candy_pos.repositories.base import DictRepository


class InventoryRepository(DictRepository):
    """
    Repositorio para los productos de la bodega central.

    Formato de datos en products.json:
    {
        "1": {
            "name": "Gomitas surtidas",
            "price": 5.0,
            "cost": 3.2,
            "stock": 120,
            ...
        },
        "2": {...}
    }

    Nota: Las claves son strings en JSON pero se manejan como int internamente
    cuando son numéricas.
    """

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de inventario.

        Args:
            base_path: Carpeta donde viven los documentos JSON
        """
        file_path = os.path.join(base_path, 'products.json')
        super().__init__(file_path)
        # Cache en memoria para acceso rápido
        self._cache: Dict[Any, Dict[str, Any]] = {}
        self._cache_loaded = False

    def _normalize_inventory(self, raw_data: Dict[str, Any]) -> Dict[Any, Dict[str, Any]]:
        """
        Normaliza el inventario convirtiendo claves string a int.

        Args:
            raw_data: Datos crudos del JSON (claves string)

        Returns:
            Diccionario con claves int (o str si no son numéricas)
        """
        normalized = {}
        for key, value in raw_data.items():
            normalized[self.normalize_key(key)] = value
        return normalized

    @staticmethod
    def normalize_key(key: Any) -> Any:
        try:
            return int(key)
        except (ValueError, TypeError):
            # Si la clave no es convertible a int, mantenerla como está
            return key

    def _denormalize_inventory(self, data: Dict[Any, Dict[str, Any]]) -> Dict[str, Any]:
        """Convierte claves a string para guardar en JSON."""
        return {str(k): v for k, v in data.items()}

    def load(self) -> Dict[Any, Dict[str, Any]]:
        """
        Carga el inventario completo.
        Usa caché para evitar lecturas repetidas.

        Returns:
            Diccionario de productos {pid: datos}
        """
        if not self._cache_loaded:
            raw = self.get_all()
            self._cache = self._normalize_inventory(raw)
            self._cache_loaded = True
        return self._cache

    def save(self, inventory: Dict[Any, Dict[str, Any]]) -> None:
        """
        Guarda el inventario completo.

        La caché solo se reemplaza si la escritura tuvo éxito.
        """
        self._write_raw(self._denormalize_inventory(inventory))
        self._cache = inventory
        self._cache_loaded = True

    def reload(self) -> Dict[Any, Dict[str, Any]]:
        """
        Fuerza recarga desde archivo ignorando caché.

        Returns:
            Inventario actualizado
        """
        self._cache_loaded = False
        return self.load()

    def get_product(self, pid: Any) -> Optional[Dict[str, Any]]:
        """
        Obtiene un producto por su ID.

        Returns:
            Copia de los datos del producto o None si no existe
        """
        data = self.load().get(self.normalize_key(pid))
        return dict(data) if data is not None else None

    def product_exists(self, pid: Any) -> bool:
        return self.normalize_key(pid) in self.load()

    def create_product(self, pid: Any, data: Dict[str, Any]) -> None:
        """
        Crea un nuevo producto.

        Args:
            pid: ID del producto
            data: Datos del producto
        """
        with self._file_lock:
            inventory = dict(self.load())
            inventory[self.normalize_key(pid)] = data
            self.save(inventory)

    def update_product(self, pid: Any, data: Dict[str, Any]) -> bool:
        """
        Actualiza un producto existente.

        Args:
            pid: ID del producto
            data: Nuevos datos (se mezclan con existentes)

        Returns:
            True si se actualizó, False si no existía
        """
        key = self.normalize_key(pid)
        with self._file_lock:
            inventory = dict(self.load())
            if key not in inventory:
                return False
            merged = dict(inventory[key])
            merged.update(data)
            inventory[key] = merged
            self.save(inventory)
        return True

    def get_all_products(self) -> List[Dict[str, Any]]:
        """
        Obtiene lista de todos los productos.

        Returns:
            Lista de productos con su ID incluido
        """
        result = []
        for pid, data in self.load().items():
            product = data.copy()
            product['id'] = pid
            result.append(product)
        return result

    def get_next_id(self) -> int:
        """
        Genera el siguiente ID disponible para un nuevo producto.

        Returns:
            Siguiente ID entero disponible
        """
        numeric_ids = [k for k in self.load().keys() if isinstance(k, int)]
        if not numeric_ids:
            return 1
        return max(numeric_ids) + 1
