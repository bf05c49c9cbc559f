from datetime import date

from candy_pos.repositories import CounterRepository
from candy_pos.services import SequenceService


def test_exit_order_ids_use_date_prefix_and_global_counter(container):
    seq = container.sequence_service
    assert seq.next_exit_order_id(date(2025, 1, 10)) == 'EO-20250110-001'
    assert seq.next_exit_order_id(date(2025, 1, 10)) == 'EO-20250110-002'
    # El contador no se reinicia al cambiar de día
    assert seq.next_exit_order_id(date(2025, 1, 11)) == 'EO-20250111-003'


def test_exit_order_id_defaults_to_today(container):
    order_id = container.sequence_service.next_exit_order_id()
    prefix, day, number = order_id.split('-')
    assert prefix == 'EO'
    assert len(day) == 8 and day.isdigit()
    assert number == '001'


def test_movement_ids_are_sequential_and_independent(container):
    seq = container.sequence_service
    assert [seq.next_movement_id() for _ in range(3)] == [1, 2, 3]
    assert seq.next_exit_order_id(date(2025, 1, 10)).endswith('-001')
    assert seq.next_movement_id() == 4


def test_counters_survive_a_new_repository(container):
    seq = container.sequence_service
    seq.next_movement_id()
    seq.next_movement_id()

    fresh = SequenceService(CounterRepository(container.base_path))
    assert fresh.next_movement_id() == 3
    assert container.counter_repo.peek('nextMovementId') == 4
