import json

import pytest

from candy_pos.exceptions import DuplicateIdentifier, StoreUnavailable
from candy_pos.repositories import (
    ExitOrderRepository,
    InventoryRepository,
    StoreTransaction,
)


def test_missing_file_is_created_empty(tmp_path):
    repo = ExitOrderRepository(str(tmp_path))
    assert (tmp_path / 'exit_orders.json').exists()
    assert repo.get_all() == {}


def test_corrupt_document_raises_store_unavailable(tmp_path):
    repo = ExitOrderRepository(str(tmp_path))
    (tmp_path / 'exit_orders.json').write_text('{not json', encoding='utf-8')
    with pytest.raises(StoreUnavailable):
        repo.get_all()


def test_insert_rejects_duplicate_ids(tmp_path):
    repo = ExitOrderRepository(str(tmp_path))
    repo.insert({'id': 'EO-20250110-001', 'status': 'active'})
    with pytest.raises(DuplicateIdentifier):
        repo.insert({'id': 'EO-20250110-001', 'status': 'active'})


def test_list_orders_filters_and_sorts_newest_first(tmp_path):
    repo = ExitOrderRepository(str(tmp_path))
    repo.insert({'id': 'A', 'routeId': 'R1', 'status': 'completed', 'date': '2025-01-09',
                 'createdAt': '2025-01-09T10:00:00+00:00'})
    repo.insert({'id': 'B', 'routeId': 'R1', 'status': 'active', 'date': '2025-01-10',
                 'createdAt': '2025-01-10T10:00:00+00:00'})
    repo.insert({'id': 'C', 'routeId': 'R2', 'status': 'active', 'date': '2025-01-10',
                 'createdAt': '2025-01-10T09:00:00+00:00'})

    assert [o['id'] for o in repo.list_orders()] == ['B', 'C', 'A']
    assert [o['id'] for o in repo.list_orders(status='active')] == ['B', 'C']
    assert [o['id'] for o in repo.list_orders(route_id='R1')] == ['B', 'A']
    assert [o['id'] for o in repo.list_orders(date='2025-01-09')] == ['A']
    assert repo.find_active_by_route('R2')['id'] == 'C'
    assert repo.find_active_by_route('R3') is None


def test_inventory_keys_are_normalized(tmp_path):
    repo = InventoryRepository(str(tmp_path))
    repo.create_product('7', {'name': 'Chocolates', 'stock': 3})
    assert repo.product_exists(7)
    assert repo.get_product('7')['name'] == 'Chocolates'
    assert repo.get_next_id() == 8

    data = json.loads((tmp_path / 'products.json').read_text(encoding='utf-8'))
    assert list(data) == ['7']


def test_transaction_restores_changed_documents(tmp_path):
    inventory = InventoryRepository(str(tmp_path))
    orders = ExitOrderRepository(str(tmp_path))
    inventory.create_product(1, {'name': 'Gomitas', 'stock': 10})

    with pytest.raises(RuntimeError):
        with StoreTransaction(inventory, orders):
            inventory.update_product(1, {'stock': 2})
            orders.insert({'id': 'EO-1', 'status': 'active'})
            raise RuntimeError('fallo a mitad')

    assert inventory.get_product(1)['stock'] == 10
    assert orders.get_all() == {}


def test_transaction_keeps_changes_on_success(tmp_path):
    inventory = InventoryRepository(str(tmp_path))
    inventory.create_product(1, {'name': 'Gomitas', 'stock': 10})

    with StoreTransaction(inventory):
        inventory.update_product(1, {'stock': 4})

    assert InventoryRepository(str(tmp_path)).get_product(1)['stock'] == 4


def test_repositories_satisfy_their_interfaces(container):
    from candy_pos.repositories import (
        ICounterRepository,
        IExitOrderRepository,
        IInventoryRepository,
        IMovementRepository,
    )

    assert isinstance(container.inventory_repo, IInventoryRepository)
    assert isinstance(container.order_repo, IExitOrderRepository)
    assert isinstance(container.movement_repo, IMovementRepository)
    assert isinstance(container.counter_repo, ICounterRepository)


def test_same_instant_orders_break_ties_on_numeric_sequence(tmp_path):
    repo = ExitOrderRepository(str(tmp_path))
    created = '2025-01-10T10:00:00+00:00'
    for order_id in ('EO-20250110-998', 'EO-20250110-1000', 'EO-20250110-999'):
        repo.insert({'id': order_id, 'routeId': 'R1', 'status': 'active', 'createdAt': created})

    assert [o['id'] for o in repo.list_orders()] == [
        'EO-20250110-1000', 'EO-20250110-999', 'EO-20250110-998',
    ]
    assert repo.find_active_by_route('R1')['id'] == 'EO-20250110-1000'
