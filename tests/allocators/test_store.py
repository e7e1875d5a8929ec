from unittest.mock import MagicMock
import pytest
import sqlalchemy as sa
from sqlalchemy.dialects import mysql, postgresql, sqlite

from orm_allocator.allocators.config import AllocatorConfig
from orm_allocator.allocators.errors import StoreReadError, StoreWriteError
from orm_allocator.allocators.store import PersistentCounterStore


def _result(*, scalar=None, rowcount=None):
    res = MagicMock()
    res.one_or_none.return_value = None if scalar is None else (scalar,)
    res.rowcount = rowcount
    return res


def _mock_unit_of_work(conn):
    calls = {"n": 0}

    def run(work):
        calls["n"] += 1
        return work(conn)

    return run, calls


@pytest.fixture
def store(config):
    return PersistentCounterStore(config)


def test_update_is_guarded_by_read_value(store):
    conn = MagicMock()
    conn.execute.side_effect = [_result(scalar=300), _result(rowcount=1)]
    uow, _ = _mock_unit_of_work(conn)

    assert store.fetch_and_advance(uow) == 300

    update = conn.execute.call_args_list[1].args[0]
    assert isinstance(update, sa.Update)
    assert set(update.compile().params.values()) == {310, "Customer", 300}
    assert store.table_access_count == 1


def test_lost_compare_and_set_rereads_and_retries(store):
    conn = MagicMock()
    conn.execute.side_effect = [
        _result(scalar=300),
        _result(rowcount=0),
        _result(scalar=320),
        _result(rowcount=1),
    ]
    uow, calls = _mock_unit_of_work(conn)

    assert store.fetch_and_advance(uow) == 320
    assert calls["n"] == 2
    assert conn.execute.call_count == 4
    assert store.table_access_count == 1


def test_missing_row_is_bootstrapped_at_block_size(store):
    conn = MagicMock()
    conn.execute.side_effect = [_result(scalar=None), _result(), _result(rowcount=1)]
    uow, _ = _mock_unit_of_work(conn)

    assert store.fetch_and_advance(uow) == 10

    insert = conn.execute.call_args_list[1].args[0]
    update = conn.execute.call_args_list[2].args[0]
    assert isinstance(insert, sa.Insert)
    assert set(insert.compile().params.values()) == {"Customer", 10}
    assert set(update.compile().params.values()) == {20, "Customer", 10}


def test_duplicate_key_on_bootstrap_is_retried(store):
    conn = MagicMock()
    conn.execute.side_effect = [
        _result(scalar=None),
        sa.exc.IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
        _result(scalar=20),
        _result(rowcount=1),
    ]
    uow, calls = _mock_unit_of_work(conn)

    assert store.fetch_and_advance(uow) == 20
    assert calls["n"] == 2
    assert store.table_access_count == 1


def test_read_failure_is_not_retried(store):
    conn = MagicMock()
    conn.execute.side_effect = sa.exc.OperationalError("SELECT", {}, Exception("connection lost"))
    uow, calls = _mock_unit_of_work(conn)

    with pytest.raises(StoreReadError) as exc_info:
        store.fetch_and_advance(uow)

    assert exc_info.value.sequence_name == "Customer"
    assert isinstance(exc_info.value.__cause__, sa.exc.OperationalError)
    assert calls["n"] == 1
    assert store.table_access_count == 0


def test_update_failure_is_not_retried(store):
    conn = MagicMock()
    conn.execute.side_effect = [
        _result(scalar=300),
        sa.exc.OperationalError("UPDATE", {}, Exception("lock timeout")),
    ]
    uow, calls = _mock_unit_of_work(conn)

    with pytest.raises(StoreWriteError):
        store.fetch_and_advance(uow)
    assert calls["n"] == 1
    assert store.table_access_count == 0


def test_select_requests_row_lock_where_supported(store):
    stmt = store._select_stmt()

    assert "FOR UPDATE" in str(stmt.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in str(stmt.compile(dialect=mysql.dialect()))
    # sqlite has no row locks; the hint is dropped
    assert "FOR UPDATE" not in str(stmt.compile(dialect=sqlite.dialect()))


def test_fetch_against_sqlite(unit_of_work, config):
    store = PersistentCounterStore(config)

    assert store.current_value(unit_of_work) is None
    assert store.fetch_and_advance(unit_of_work) == 10
    assert store.current_value(unit_of_work) == 20
    assert store.fetch_and_advance(unit_of_work) == 20
    assert store.current_value(unit_of_work) == 30
    assert store.statistics().table_access_count == 2


def test_sequences_are_independent(unit_of_work, config):
    a = PersistentCounterStore(config)
    b = PersistentCounterStore(AllocatorConfig(sequence_name="Invoice", block_size=5))

    assert a.fetch_and_advance(unit_of_work) == 10
    assert b.fetch_and_advance(unit_of_work) == 5
    assert a.fetch_and_advance(unit_of_work) == 20
    assert b.fetch_and_advance(unit_of_work) == 10


def test_set_min_value_only_moves_forward(unit_of_work, config):
    store = PersistentCounterStore(config)
    store.fetch_and_advance(unit_of_work)

    assert store.set_min_value(unit_of_work, 500) == 500
    assert store.set_min_value(unit_of_work, 100) == 500
    assert store.fetch_and_advance(unit_of_work) == 500
    assert store.current_value(unit_of_work) == 510


def test_set_min_value_bootstraps_missing_row(unit_of_work, config):
    store = PersistentCounterStore(config)

    assert store.set_min_value(unit_of_work, 42) == 42
    assert store.fetch_and_advance(unit_of_work) == 42


def test_set_min_value_rejects_non_positive(unit_of_work, config):
    with pytest.raises(ValueError):
        PersistentCounterStore(config).set_min_value(unit_of_work, 0)


def test_null_counter_value_is_a_read_error(store):
    conn = MagicMock()
    null_row = MagicMock()
    null_row.one_or_none.return_value = (None,)
    conn.execute.side_effect = [null_row]
    uow, calls = _mock_unit_of_work(conn)

    with pytest.raises(StoreReadError, match="no value"):
        store.fetch_and_advance(uow)

    # no bootstrap insert was attempted
    assert conn.execute.call_count == 1
    assert calls["n"] == 1
    assert store.table_access_count == 0
