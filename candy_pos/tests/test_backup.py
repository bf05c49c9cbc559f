import json
import os
import threading
import zipfile

import pytest

from candy_pos.exceptions import StoreUnavailable
from candy_pos.repositories import StoreTransaction
from candy_pos.services import BackupService, run_startup_backup


@pytest.fixture
def backups(seeded):
    return BackupService(seeded.base_path)


def test_create_backup_zips_all_documents(backups):
    result = backups.create_backup()

    assert result['success']
    assert result['files_added'] == 4
    with zipfile.ZipFile(result['backup_path']) as zf:
        assert sorted(zf.namelist()) == [
            'counters.json', 'exit_orders.json', 'products.json', 'stock_movements.json',
        ]


def test_one_backup_per_day_unless_forced(backups):
    backups.create_backup()
    again = backups.create_backup()
    assert again['success']
    assert again['files_added'] == 0
    assert again['message'] == 'Backup del día ya existe'

    assert backups.create_backup(force=True)['files_added'] == 4


def test_rotation_keeps_the_newest(backups):
    for day in range(1, 10):
        with zipfile.ZipFile(os.path.join(backups.backup_root, f'backup_2020-01-0{day}.zip'), 'w'):
            pass
    # Archivos ajenos se ignoran
    open(os.path.join(backups.backup_root, 'notas.txt'), 'w').close()

    result = backups.run_daily_backup()

    assert result['backup']['success']
    assert result['rotation'] == {'deleted_count': 3, 'remaining_count': 7}
    names = [b['filename'] for b in backups.get_backup_status()['backups']]
    assert 'backup_2020-01-01.zip' not in names
    assert 'backup_2020-01-09.zip' in names
    assert os.path.exists(os.path.join(backups.backup_root, 'notas.txt'))


def test_export_all_data(seeded, backups):
    seeded.exit_order_service.create_order('R1', [{'productId': 1, 'quantity': 2}])

    data = backups.export_all_data()

    assert data['products']['1']['stock'] == 98
    assert len(data['exitOrders']) == 1
    assert [m['type'] for m in data['stockMovements']][-1] == 'exit'
    assert data['counters']['main']['nextExitOrderId'] == 2
    json.dumps(data)


def test_export_of_corrupt_document(seeded, backups):
    with open(os.path.join(seeded.base_path, 'counters.json'), 'w', encoding='utf-8') as f:
        f.write('[')
    with pytest.raises(StoreUnavailable):
        backups.export_all_data()


def test_startup_backup(seeded):
    result = run_startup_backup(seeded.base_path)
    assert result['backup']['files_added'] == 4
    assert run_startup_backup(seeded.base_path)['backup']['files_added'] == 0


def _run_in_thread(target):
    results = []
    worker = threading.Thread(target=lambda: results.append(target()))
    worker.start()
    return worker, results


def test_backup_waits_for_open_transaction(seeded, backups):
    inventory = seeded.inventory_repo
    with StoreTransaction(inventory, seeded.order_repo):
        inventory.update_product(1, {'stock': 0})
        worker, results = _run_in_thread(lambda: backups.create_backup(force=True))
        worker.join(timeout=0.3)
        assert worker.is_alive()
        inventory.update_product(1, {'stock': 100})

    worker.join(timeout=5)
    assert not worker.is_alive()
    assert results[0]['success']
    with zipfile.ZipFile(results[0]['backup_path']) as zf:
        products = json.loads(zf.read('products.json'))
    assert products['1']['stock'] == 100


def test_export_waits_for_open_transaction(seeded, backups):
    inventory = seeded.inventory_repo
    with StoreTransaction(inventory):
        inventory.update_product(1, {'stock': 0})
        worker, results = _run_in_thread(backups.export_all_data)
        worker.join(timeout=0.3)
        assert worker.is_alive()
        inventory.update_product(1, {'stock': 100})

    worker.join(timeout=5)
    assert results[0]['products']['1']['stock'] == 100
