# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (documentos JSON).
# Los servicios solo hablan con estos objetos; nunca abren archivos.
#
# ESTRUCTURA:
# ├── interfaces.py               → Protocolos (contratos de cada repositorio)
# ├── base.py                     → Clases base JSON (DictRepository, ListRepository)
# ├── inventory_repository.py     → Acceso a products.json
# ├── exit_order_repository.py    → Acceso a exit_orders.json
# ├── movement_repository.py      → Acceso a stock_movements.json
# ├── counter_repository.py       → Acceso a counters.json
# └── transaction.py              → StoreTransaction (todo-o-nada multi-documento)
# ==============================================================================

# Interfaces
from candy_pos.repositories.interfaces import (
    IRepository,
    IInventoryRepository,
    IExitOrderRepository,
    IMovementRepository,
    ICounterRepository,
)

# Implementaciones concretas (JSON)
from candy_pos.repositories.base import BaseRepository, DictRepository, ListRepository
from candy_pos.repositories.inventory_repository import InventoryRepository
from candy_pos.repositories.exit_order_repository import ExitOrderRepository
from candy_pos.repositories.movement_repository import MovementRepository
from candy_pos.repositories.counter_repository import CounterRepository
from candy_pos.repositories.transaction import StoreTransaction

__all__ = [
    # Interfaces
    'IRepository',
    'IInventoryRepository',
    'IExitOrderRepository',
    'IMovementRepository',
    'ICounterRepository',

    # Clases base
    'BaseRepository',
    'DictRepository',
    'ListRepository',

    # Implementaciones JSON
    'InventoryRepository',
    'ExitOrderRepository',
    'MovementRepository',
    'CounterRepository',

    # Transacciones
    'StoreTransaction',
]
