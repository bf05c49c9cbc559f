import re

import pytest

from candy_pos.exceptions import StoreUnavailable


def create(engine, route_id='R1', items=None, **kwargs):
    items = items if items is not None else [{'productId': 1, 'quantity': 10, 'price': 5.0}]
    result = engine.create_order(route_id, items, **kwargs)
    assert result['success'], result
    return result['orderId']


def stock(container, pid):
    return container.stock_ledger.get_stock(pid)


def assert_balanced(order):
    assert order['soldItems'] + sum(i['remaining'] for i in order['items']) == order['totalItems']
    for item in order['items']:
        assert item['remaining'] == item['quantity'] - item['sold']


# ==============================================================================
# Creación
# ==============================================================================

def test_create_order_scenario(seeded):
    engine = seeded.exit_order_service
    result = engine.create_order('R1', [{'productId': 1, 'quantity': 10, 'price': 5.0}], vendor_name='Ana')

    assert result['success']
    assert re.match(r'^EO-\d{8}-001$', result['orderId'])
    order = result['order']
    assert order['status'] == 'active'
    assert order['totalItems'] == 10
    assert order['totalValue'] == 50.0
    assert order['totalCost'] == 30.0
    assert order['soldItems'] == 0
    assert order['vendorName'] == 'Ana'
    assert order['items'][0]['productName'] == 'Gomitas'
    assert stock(seeded, 1) == 90

    movements = engine.get_order_movements(result['orderId'])
    assert len(movements) == 1
    assert movements[0]['type'] == 'exit'
    assert movements[0]['quantity'] == -10
    assert movements[0]['notes'] == f"Orden de Salida {result['orderId']} - Ruta: R1"


def test_create_order_uses_catalog_price_and_route_name(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[{'productId': '2', 'quantity': 4}], route_name='Centro')
    order = engine.get_order_by_id(order_id)

    assert order['items'][0]['price'] == 2.5
    assert order['items'][0]['cost'] == 1.0
    assert order['totalValue'] == 10.0
    assert engine.get_order_movements(order_id)[0]['notes'].endswith('Ruta: Centro')


def test_create_order_floors_stock_at_zero(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[{'productId': 3, 'quantity': 15}])

    assert stock(seeded, 3) == 0
    assert engine.get_order_by_id(order_id)['totalItems'] == 15
    movement = engine.get_order_movements(order_id)[0]
    assert (movement['quantity'], movement['previousStock'], movement['newStock']) == (-15, 10, 0)


def test_create_order_rejected_by_reject_policy(reject_container):
    engine = reject_container.exit_order_service
    result = engine.create_order('R1', [{'productId': 1, 'quantity': 11}])

    assert result['success'] is False
    assert result['errorType'] == 'InsufficientStock'
    assert stock(reject_container, 1) == 10
    assert engine.get_orders() == []
    assert len(reject_container.movement_repo.get_all()) == 1


@pytest.mark.parametrize('route_id, items', [
    ('', [{'productId': 1, 'quantity': 1}]),
    ('R1', []),
    ('R1', None),
    ('R1', [{'quantity': 1}]),
    ('R1', [{'productId': 1, 'quantity': 0}]),
    ('R1', [{'productId': 1, 'quantity': -2}]),
    ('R1', [{'productId': 1, 'quantity': 1.5}]),
    ('R1', [{'productId': 1, 'quantity': True}]),
    ('R1', [{'productId': 1, 'quantity': 1, 'price': -5}]),
    ('R1', [{'productId': 1, 'quantity': 1}, {'productId': '1', 'quantity': 2}]),
])
def test_create_order_validation(seeded, route_id, items):
    engine = seeded.exit_order_service
    result = engine.create_order(route_id, items)

    assert result['success'] is False
    assert result['errorType'] == 'ValidationError'
    assert result['error']
    assert stock(seeded, 1) == 100
    assert engine.get_orders() == []


def test_create_order_with_unknown_product_changes_nothing(seeded):
    engine = seeded.exit_order_service
    result = engine.create_order('R1', [
        {'productId': 1, 'quantity': 5},
        {'productId': 99, 'quantity': 1},
    ])

    assert result['errorType'] == 'ProductNotFound'
    assert stock(seeded, 1) == 100
    assert engine.get_orders() == []
    assert seeded.movement_service.get_product_movements(1)[-1]['type'] == 'entrada'


def test_one_active_order_per_route(seeded):
    engine = seeded.exit_order_service
    first = create(engine, 'R1')

    result = engine.create_order('R1', [{'productId': 2, 'quantity': 1}])
    assert result['success'] is False
    assert result['errorType'] == 'ActiveOrderExists'
    assert first in result['error']
    assert stock(seeded, 2) == 50

    create(engine, 'R2', items=[{'productId': 2, 'quantity': 1}])

    assert engine.complete_order(first)['success']
    create(engine, 'R1', items=[{'productId': 2, 'quantity': 1}])


def test_order_ids_are_unique_and_sequential(seeded):
    engine = seeded.exit_order_service
    ids = [create(engine, f'R{n}', items=[{'productId': 1, 'quantity': 1}]) for n in range(3)]
    assert len(set(ids)) == 3
    assert [i[-3:] for i in ids] == ['001', '002', '003']


# ==============================================================================
# Ventas
# ==============================================================================

def test_record_sales_scenario(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)
    result = engine.record_sales(order_id, [{'productId': 1, 'quantity': 4}])

    assert result['success']
    order = result['order']
    item = order['items'][0]
    assert item['sold'] == 4
    assert item['remaining'] == 6
    assert order['soldItems'] == 4
    assert order['soldValue'] == 20.0
    assert_balanced(order)
    # Las ventas de ruta no tocan la bodega
    assert stock(seeded, 1) == 90


def test_record_sales_is_monotonic(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)

    sold = []
    for qty in (1, 2, 3):
        order = engine.record_sales(order_id, [{'productId': 1, 'quantity': qty}])['order']
        sold.append(order['items'][0]['sold'])
        assert_balanced(order)

    assert sold == [1, 3, 6]


def test_record_sales_over_remaining_leaves_order_unchanged(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[
        {'productId': 1, 'quantity': 10},
        {'productId': 2, 'quantity': 5},
    ])
    engine.record_sales(order_id, [{'productId': 1, 'quantity': 4}])
    before = seeded.order_repo.get(order_id)

    result = engine.record_sales(order_id, [
        {'productId': 2, 'quantity': 1},
        {'productId': 1, 'quantity': 7},
    ])

    assert result['success'] is False
    assert result['errorType'] == 'InsufficientRemaining'
    assert seeded.order_repo.get(order_id) == before


def test_record_sales_aggregates_lines_of_the_same_product(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[{'productId': 1, 'quantity': 5}])

    result = engine.record_sales(order_id, [
        {'productId': 1, 'quantity': 3},
        {'productId': '1', 'quantity': 3},
    ])
    assert result['errorType'] == 'InsufficientRemaining'

    result = engine.record_sales(order_id, [
        {'productId': 1, 'quantity': 2},
        {'productId': '1', 'quantity': 3},
    ])
    assert result['success']
    assert result['order']['items'][0]['remaining'] == 0


@pytest.mark.parametrize('sold_items', [
    [],
    [{'productId': 2, 'quantity': 1}],
    [{'productId': 1, 'quantity': 0}],
    [{'quantity': 1}],
])
def test_record_sales_validation(seeded, sold_items):
    engine = seeded.exit_order_service
    order_id = create(engine)
    result = engine.record_sales(order_id, sold_items)
    assert result['errorType'] == 'ValidationError'


def test_record_sales_unknown_order(engine):
    result = engine.record_sales('EO-20250101-999', [{'productId': 1, 'quantity': 1}])
    assert result == {
        'success': False,
        'error': 'Orden no encontrada',
        'errorType': 'OrderNotFound',
    }


# ==============================================================================
# Completar / cancelar
# ==============================================================================

def test_complete_order_scenario(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)
    engine.record_sales(order_id, [{'productId': 1, 'quantity': 4}])

    result = engine.complete_order(order_id)

    assert result['success']
    assert result['returnedItems'] == 6
    assert stock(seeded, 1) == 96
    order = engine.get_order_by_id(order_id)
    assert order['status'] == 'completed'
    assert order['completedAt']
    assert_balanced(order)

    returns = [m for m in engine.get_order_movements(order_id) if m['type'] == 'return']
    assert [m['quantity'] for m in returns] == [6]
    assert returns[0]['notes'].startswith('Devolución de Orden de Salida')


def test_complete_returns_exactly_the_remaining_per_item(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[
        {'productId': 1, 'quantity': 10},
        {'productId': 2, 'quantity': 8},
        {'productId': 3, 'quantity': 2},
    ])
    engine.record_sales(order_id, [
        {'productId': 2, 'quantity': 3},
        {'productId': 3, 'quantity': 2},
    ])
    remaining = sum(i['remaining'] for i in engine.get_order_by_id(order_id)['items'])

    result = engine.complete_order(order_id)

    assert result['returnedItems'] == remaining == 15
    assert stock(seeded, 1) == 100
    assert stock(seeded, 2) == 47
    assert stock(seeded, 3) == 8
    # Un item totalmente vendido no genera movimiento de devolución
    returns = [m for m in engine.get_order_movements(order_id) if m['type'] == 'return']
    assert sorted(str(m['productId']) for m in returns) == ['1', '2']


def test_terminal_orders_reject_further_changes(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)
    engine.complete_order(order_id)

    assert engine.complete_order(order_id)['errorType'] == 'OrderNotActive'
    assert engine.cancel_order(order_id)['errorType'] == 'OrderNotActive'
    result = engine.record_sales(order_id, [{'productId': 1, 'quantity': 1}])
    assert result['errorType'] == 'OrderNotActive'
    assert stock(seeded, 1) == 100


def test_cancel_with_sales_is_not_allowed(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)
    engine.record_sales(order_id, [{'productId': 1, 'quantity': 4}])

    result = engine.cancel_order(order_id)

    assert result['success'] is False
    assert result['errorType'] == 'CancellationNotAllowed'
    assert engine.get_order_by_id(order_id)['status'] == 'active'
    assert stock(seeded, 1) == 90


def test_cancel_returns_everything(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[
        {'productId': 1, 'quantity': 10},
        {'productId': 2, 'quantity': 5},
    ], route_name='Norte')

    result = engine.cancel_order(order_id)

    assert result['success']
    assert result['returnedItems'] == 15
    assert stock(seeded, 1) == 100
    assert stock(seeded, 2) == 50
    order = engine.get_order_by_id(order_id)
    assert order['status'] == 'cancelled'
    assert order['cancelledAt']
    notes = [m['notes'] for m in engine.get_order_movements(order_id) if m['type'] == 'return']
    assert notes == [f'Cancelación de Orden de Salida {order_id} - Ruta: Norte'] * 2


def test_cancel_after_clamped_exit_returns_full_quantity(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[{'productId': 3, 'quantity': 15}])
    engine.cancel_order(order_id)
    assert stock(seeded, 3) == 15


def test_complete_skips_products_deleted_from_catalog(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[
        {'productId': 1, 'quantity': 10},
        {'productId': 2, 'quantity': 5},
    ])
    inventory = dict(seeded.inventory_repo.load())
    del inventory[2]
    seeded.inventory_repo.save(inventory)

    result = engine.complete_order(order_id)

    assert result['success']
    assert result['returnedItems'] == 10
    assert stock(seeded, 1) == 100
    assert engine.get_order_by_id(order_id)['status'] == 'completed'


# ==============================================================================
# Atomicidad
# ==============================================================================

def _fail_writes(monkeypatch, repo):
    def boom(data):
        raise StoreUnavailable('disco lleno')
    monkeypatch.setattr(repo, '_write_raw', boom)


def test_failed_order_write_rolls_back_stock_and_movements(seeded, monkeypatch):
    engine = seeded.exit_order_service
    movements_before = seeded.movement_repo.get_all()
    _fail_writes(monkeypatch, seeded.order_repo)

    result = engine.create_order('R1', [{'productId': 1, 'quantity': 10}])

    assert result['success'] is False
    assert result['errorType'] == 'StoreUnavailable'
    assert stock(seeded, 1) == 100
    assert seeded.movement_repo.get_all() == movements_before
    assert seeded.order_repo.get_all() == {}


def test_failed_completion_keeps_order_active_and_stock_unreturned(seeded, monkeypatch):
    engine = seeded.exit_order_service
    order_id = create(engine)
    engine.record_sales(order_id, [{'productId': 1, 'quantity': 4}])
    movements_before = seeded.movement_repo.get_all()
    _fail_writes(monkeypatch, seeded.order_repo)

    result = engine.complete_order(order_id)

    assert result['errorType'] == 'StoreUnavailable'
    assert stock(seeded, 1) == 90
    assert seeded.movement_repo.get_all() == movements_before

    monkeypatch.undo()
    assert engine.get_order_by_id(order_id)['status'] == 'active'
    assert engine.complete_order(order_id)['returnedItems'] == 6
    assert stock(seeded, 1) == 96


def test_failed_stock_write_leaves_no_order(seeded, monkeypatch):
    engine = seeded.exit_order_service
    _fail_writes(monkeypatch, seeded.inventory_repo)

    result = engine.create_order('R1', [{'productId': 1, 'quantity': 10}])

    assert result['errorType'] == 'StoreUnavailable'
    monkeypatch.undo()
    assert seeded.order_repo.get_all() == {}
    assert stock(seeded, 1) == 100


# ==============================================================================
# Consultas
# ==============================================================================

def test_get_orders_filters(seeded):
    engine = seeded.exit_order_service
    first = create(engine, 'R1', items=[{'productId': 1, 'quantity': 1}])
    second = create(engine, 'R2', items=[{'productId': 1, 'quantity': 1}])
    engine.complete_order(first)

    assert [o['id'] for o in engine.get_orders()] == [second, first]
    assert [o['id'] for o in engine.get_orders({'status': 'active'})] == [second]
    assert [o['id'] for o in engine.get_orders({'routeId': 'R1'})] == [first]
    assert engine.get_orders({'date': '1999-01-01'}) == []


def test_get_active_order_by_route(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, 'R1')

    assert engine.get_active_order_by_route('R1')['id'] == order_id
    assert engine.get_active_order_by_route('R9') is None
    engine.cancel_order(order_id)
    assert engine.get_active_order_by_route('R1') is None


def test_get_order_by_id_unknown(engine):
    assert engine.get_order_by_id('EO-20250101-001') is None
    assert engine.get_order_by_id('') is None


def test_sellable_products(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine, items=[
        {'productId': 1, 'quantity': 10, 'price': 6.0},
        {'productId': 2, 'quantity': 5},
    ])
    engine.record_sales(order_id, [{'productId': 2, 'quantity': 5}, {'productId': 1, 'quantity': 3}])

    assert engine.get_sellable_products(order_id) == [{
        'productId': 1,
        'name': 'Gomitas',
        'price': 6.0,
        'cost': 3.0,
        'availableQuantity': 7,
        'exitOrderId': order_id,
    }]

    engine.complete_order(order_id)
    assert engine.get_sellable_products(order_id) == []
    assert engine.get_sellable_products('nope') == []


def test_stats(seeded):
    engine = seeded.exit_order_service
    first = create(engine, 'R1', items=[{'productId': 1, 'quantity': 10}])
    create(engine, 'R2', items=[{'productId': 2, 'quantity': 4}])
    engine.record_sales(first, [{'productId': 1, 'quantity': 2}])

    today = engine.get_order_by_id(first)['date']
    stats = engine.get_stats(today)

    assert stats == {
        'activeOrders': 2,
        'todayOrders': 2,
        'totalAssignedValue': 60.0,
        'totalSoldValue': 10.0,
    }
    assert engine.get_stats('1999-01-01')['todayOrders'] == 0


@pytest.mark.parametrize('line', [
    {'productId': 1, 'quantity': 2, 'price': 'nan'},
    {'productId': 1, 'quantity': 2, 'price': 'inf'},
    {'productId': 1, 'quantity': 2, 'price': float('-inf')},
    {'productId': 1, 'quantity': 2, 'price': True},
    {'productId': 1, 'quantity': 2, 'cost': float('nan')},
    {'productId': 1, 'quantity': 2, 'cost': False},
])
def test_create_order_rejects_non_finite_or_boolean_money(seeded, line):
    engine = seeded.exit_order_service
    result = engine.create_order('R1', [line])

    assert result['success'] is False
    assert result['errorType'] == 'ValidationError'
    assert stock(seeded, 1) == 100
    assert seeded.order_repo.get_all() == {}


@pytest.mark.parametrize('product_id', [[1], {'id': 1}, True, 1.0, '   '])
def test_create_order_rejects_non_scalar_product_ids(seeded, product_id):
    engine = seeded.exit_order_service
    result = engine.create_order('R1', [{'productId': product_id, 'quantity': 1}])

    assert result['errorType'] == 'ValidationError'
    assert seeded.order_repo.get_all() == {}


def test_record_sales_rejects_non_scalar_product_ids(seeded):
    engine = seeded.exit_order_service
    order_id = create(engine)
    result = engine.record_sales(order_id, [{'productId': [1], 'quantity': 1}])
    assert result['errorType'] == 'ValidationError'


def test_order_with_unknown_status_is_never_mutable(seeded):
    engine = seeded.exit_order_service
    seeded.order_repo.insert({
        'id': 'EO-20250110-050', 'routeId': 'R1', 'status': 'archivada',
        'items': [{'productId': 1, 'productName': 'Gomitas', 'quantity': 5, 'price': 5.0, 'sold': 0}],
    })

    result = engine.complete_order('EO-20250110-050')

    assert result['success'] is False
    assert result['errorType'] == 'StoreUnavailable'
    assert stock(seeded, 1) == 100
    assert seeded.order_repo.get('EO-20250110-050')['status'] == 'archivada'
    with pytest.raises(StoreUnavailable):
        engine.get_order_by_id('EO-20250110-050')
