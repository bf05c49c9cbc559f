import os

import pytest

# El profiling escribe logs en disco; en tests no hace falta
os.environ.setdefault('CANDY_PROFILING', '0')

from candy_pos.app_container import AppContainer  # noqa: E402


@pytest.fixture
def container(tmp_path):
    """Contenedor sobre una carpeta de datos vacía."""
    return AppContainer(str(tmp_path / 'data'))


@pytest.fixture
def ledger(container):
    return container.stock_ledger


@pytest.fixture
def engine(container):
    return container.exit_order_service


@pytest.fixture
def seeded(container):
    """Catálogo de prueba: 1 Gomitas (100), 2 Paletas (50), 3 Chicles (10)."""
    ledger = container.stock_ledger
    ledger.create_product('Gomitas', price=5.0, cost=3.0, stock=100, product_id=1)
    ledger.create_product('Paletas', price=2.5, cost=1.0, stock=50, product_id=2)
    ledger.create_product('Chicles', price=1.0, cost=0.4, stock=10, product_id=3)
    return container


@pytest.fixture
def reject_container(tmp_path):
    container = AppContainer(str(tmp_path / 'data'), stock_policy='reject')
    container.stock_ledger.create_product('Gomitas', price=5.0, cost=3.0, stock=10, product_id=1)
    return container
