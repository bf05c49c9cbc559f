# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Los servicios NO abren archivos: eso es de los repositorios
#
# ESTRUCTURA:
# ├── sequence_service.py   → IDs de órdenes (EO-YYYYMMDD-NNN) y movimientos
# ├── movement_service.py   → Registro de movimientos de stock
# ├── stock_ledger.py       → Stock de bodega y políticas de descuento
# ├── exit_order_service.py → Ciclo de vida de las órdenes de salida
# └── backup_service.py     → Backups ZIP diarios y exportación
# ==============================================================================

from candy_pos.services.sequence_service import SequenceService
from candy_pos.services.movement_service import MovementService
from candy_pos.services.stock_ledger import (
    StockLedger,
    StockPolicy,
    STOCK_POLICIES,
    clamp_non_negative,
    reject_on_insufficient,
    get_stock_policy,
)
from candy_pos.services.exit_order_service import ExitOrderService
from candy_pos.services.backup_service import BackupService, run_startup_backup

__all__ = [
    'SequenceService',
    'MovementService',
    'StockLedger',
    'StockPolicy',
    'STOCK_POLICIES',
    'clamp_non_negative',
    'reject_on_insufficient',
    'get_stock_policy',
    'ExitOrderService',
    'BackupService',
    'run_startup_backup',
]
