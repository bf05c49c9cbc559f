import pytest

from candy_pos.exceptions import InsufficientStock, ProductNotFound, ValidationError
from candy_pos.models import MovementType
from candy_pos.services import clamp_non_negative, get_stock_policy, reject_on_insufficient


# ==============================================================================
# Políticas
# ==============================================================================

def test_clamp_non_negative_floors_at_zero():
    assert clamp_non_negative(10, -4) == 6
    assert clamp_non_negative(3, -10) == 0
    assert clamp_non_negative(0, 5) == 5


def test_reject_on_insufficient_raises():
    assert reject_on_insufficient(10, -10) == 0
    with pytest.raises(InsufficientStock):
        reject_on_insufficient(3, -4)


def test_unknown_policy_name():
    assert get_stock_policy('clamp') is clamp_non_negative
    with pytest.raises(ValueError):
        get_stock_policy('negative')


# ==============================================================================
# Catálogo
# ==============================================================================

def test_create_product_records_initial_stock(container, ledger):
    product = ledger.create_product('Gomitas', price=5, cost=3, stock=20)
    assert product.id == 1
    assert ledger.get_stock(1) == 20

    history = ledger.stock_history(1)
    assert len(history) == 1
    assert history[0]['type'] == 'entrada'
    assert history[0]['quantity'] == 20
    assert history[0]['notes'] == 'Stock inicial'


def test_create_product_without_stock_has_no_movement(ledger):
    ledger.create_product('Paletas', price=2.5)
    assert ledger.stock_history(1) == []


@pytest.mark.parametrize('kwargs', [
    {'name': '', 'price': 1},
    {'name': 'Gomitas', 'price': -1},
    {'name': 'Gomitas', 'price': 'caro'},
    {'name': 'Gomitas', 'price': 1, 'stock': -3},
    {'name': 'Gomitas', 'price': 1, 'stock': 2.5},
])
def test_create_product_validation(ledger, kwargs):
    with pytest.raises(ValidationError):
        ledger.create_product(**kwargs)


def test_create_product_duplicate_id(seeded):
    with pytest.raises(ValidationError):
        seeded.stock_ledger.create_product('Otra', price=1, product_id=1)


def test_unknown_product(ledger):
    with pytest.raises(ProductNotFound):
        ledger.get_stock(99)
    assert ledger.product_exists(99) is False


# ==============================================================================
# Deltas
# ==============================================================================

def test_adjust_stock_clamps_and_records_requested_delta(seeded):
    ledger = seeded.stock_ledger
    new_stock = ledger.adjust_stock(3, -15, MovementType.EXIT, notes='prueba', exit_order_id='EO-X')
    assert new_stock == 0
    assert ledger.get_stock(3) == 0

    movement = ledger.stock_history(3)[-1]
    assert movement['type'] == 'exit'
    assert movement['quantity'] == -15
    assert movement['previousStock'] == 10
    assert movement['newStock'] == 0
    assert movement['exitOrderId'] == 'EO-X'


def test_adjust_stock_with_reject_policy_leaves_everything_unchanged(reject_container):
    ledger = reject_container.stock_ledger
    before = len(reject_container.movement_repo.get_all())

    with pytest.raises(InsufficientStock):
        ledger.adjust_stock(1, -11, MovementType.EXIT)

    assert ledger.get_stock(1) == 10
    assert len(reject_container.movement_repo.get_all()) == before


def test_adjust_unknown_product(ledger):
    with pytest.raises(ProductNotFound):
        ledger.adjust_stock(42, 5, MovementType.ENTRADA)


# ==============================================================================
# Ajustes manuales
# ==============================================================================

def test_manual_adjustments(seeded):
    ledger = seeded.stock_ledger
    assert ledger.apply_adjustment(1, 'entrada', 10) == 110
    assert ledger.apply_adjustment(1, 'salida', 30) == 80
    assert ledger.apply_adjustment(1, 'ajuste', 75) == 75
    assert ledger.apply_adjustment(1, 'ajuste', 0) == 0

    types = [m['type'] for m in ledger.stock_history(1)]
    assert types == ['entrada', 'entrada', 'salida', 'ajuste', 'ajuste']
    assert ledger.stock_history(1)[3]['quantity'] == -5


def test_manual_withdrawal_cannot_exceed_stock(seeded):
    ledger = seeded.stock_ledger
    with pytest.raises(InsufficientStock) as exc:
        ledger.apply_adjustment(3, 'salida', 11)
    assert exc.value.message == 'No puedes retirar 11 unidades. Solo hay 10 disponibles.'
    assert ledger.get_stock(3) == 10


@pytest.mark.parametrize('adjustment_type, quantity', [
    ('robo', 1),
    ('entrada', 0),
    ('salida', -2),
    ('ajuste', -1),
    ('entrada', '5'),
])
def test_manual_adjustment_validation(seeded, adjustment_type, quantity):
    with pytest.raises(ValidationError):
        seeded.stock_ledger.apply_adjustment(1, adjustment_type, quantity)


def test_net_change_matches_current_stock(seeded):
    ledger = seeded.stock_ledger
    ledger.apply_adjustment(3, 'entrada', 5)
    ledger.adjust_stock(3, -40, MovementType.EXIT)
    ledger.apply_adjustment(3, 'ajuste', 7)

    assert ledger.get_stock(3) == 7
    assert seeded.movement_service.net_change(3) == 7


@pytest.mark.parametrize('kwargs', [
    {'price': 'nan'},
    {'price': float('inf')},
    {'price': True},
    {'price': 1, 'cost': '-inf'},
    {'price': 1, 'cost': float('nan')},
    {'price': 1, 'product_id': [1]},
    {'price': 1, 'product_id': True},
    {'price': 1, 'product_id': ''},
])
def test_create_product_rejects_non_finite_money_and_bad_ids(ledger, kwargs):
    with pytest.raises(ValidationError):
        ledger.create_product('Gomitas', **kwargs)
    assert ledger.list_products() == []
