from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from inventory_odg.errors import QueryError
from inventory_odg.inventory.models import OrphanPublicAddressGCP, OrphanVirtualMachineAWS
from inventory_odg.inventory.store import InventoryStore


def _seed(store: InventoryStore) -> None:
    with store.engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO aws_orphan_instance VALUES "
                "('web', 'i-2', 'vpc-1', 'eu-1', '123', '2025-01-02T03:04:05'), "
                "('db', 'i-1', 'vpc-1', 'eu-1', '123', NULL)"
            )
        )


def test_fetch_rows_preserves_store_order(sqlite_store: InventoryStore) -> None:
    _seed(sqlite_store)

    rows = sqlite_store.fetch_rows(
        "SELECT * FROM aws_orphan_instance ORDER BY instance_id DESC", OrphanVirtualMachineAWS
    )

    assert [row.instance_id for row in rows] == ["i-2", "i-1"]
    assert rows[0].launch_time == datetime(2025, 1, 2, 3, 4, 5)
    assert rows[1].launch_time is None
    assert rows[0].state is None


def test_fetch_rows_empty_result(sqlite_store: InventoryStore) -> None:
    rows = sqlite_store.fetch_rows("SELECT * FROM aws_orphan_instance", OrphanVirtualMachineAWS)
    assert rows == []


def test_fetch_rows_decodes_booleans_and_integers(sqlite_store: InventoryStore) -> None:
    with sqlite_store.engine.begin() as conn:
        conn.execute(
            text("INSERT INTO gcp_orphan_public_address VALUES (7, 'proj', 'rule', '1.2.3.4', 1)")
        )

    (row,) = sqlite_store.fetch_rows(
        "SELECT * FROM gcp_orphan_public_address", OrphanPublicAddressGCP
    )

    assert row.rule_id == 7
    assert row.all_ports is True


@pytest.mark.parametrize("query", ["", "   "])
def test_fetch_rows_rejects_empty_query(sqlite_store: InventoryStore, query: str) -> None:
    with pytest.raises(QueryError, match="no query specified") as excinfo:
        sqlite_store.fetch_rows(query, OrphanVirtualMachineAWS)
    assert excinfo.value.permanent is True


def test_missing_required_column_is_permanent(sqlite_store: InventoryStore) -> None:
    _seed(sqlite_store)

    with pytest.raises(QueryError, match="cannot decode row 0") as excinfo:
        sqlite_store.fetch_rows(
            "SELECT instance_id, vpc_id FROM aws_orphan_instance", OrphanVirtualMachineAWS
        )

    assert excinfo.value.retryable is False


def test_unknown_column_is_permanent(sqlite_store: InventoryStore) -> None:
    _seed(sqlite_store)

    with pytest.raises(QueryError) as excinfo:
        sqlite_store.fetch_rows(
            "SELECT *, 'x' AS unexpected FROM aws_orphan_instance", OrphanVirtualMachineAWS
        )

    assert excinfo.value.permanent is True


def test_database_failure_is_retryable(sqlite_store: InventoryStore) -> None:
    with pytest.raises(QueryError, match="query failed") as excinfo:
        sqlite_store.fetch_rows("SELECT * FROM no_such_table", OrphanVirtualMachineAWS)

    assert excinfo.value.retryable is True


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None, pgcode: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.pgcode = pgcode


def _failing_store(orig: Exception) -> InventoryStore:
    class _Conn:
        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return False

        def execute(self, statement):
            raise ProgrammingError("SELECT", {}, orig)

    class _Engine:
        def connect(self):
            return _Conn()

    return InventoryStore(_Engine())


@pytest.mark.parametrize(
    "orig",
    [
        _DriverError('column "bogus" does not exist', sqlstate="42703"),
        _DriverError('relation "nope" does not exist', pgcode="42P01"),
        _DriverError('syntax error at or near "SELEC"', sqlstate="42601"),
    ],
)
def test_rejected_query_is_permanent(orig: Exception) -> None:
    store = _failing_store(orig)

    with pytest.raises(QueryError, match="query rejected by database") as excinfo:
        store.fetch_rows("SELECT bogus FROM t", OrphanVirtualMachineAWS)

    assert excinfo.value.permanent is True


@pytest.mark.parametrize(
    "orig",
    [
        _DriverError("permission denied for table aws_orphan_instance", sqlstate="42501"),
        _DriverError("column does not exist"),
    ],
)
def test_other_programming_errors_are_retryable(orig: Exception) -> None:
    store = _failing_store(orig)

    with pytest.raises(QueryError, match="query failed") as excinfo:
        store.fetch_rows("SELECT * FROM aws_orphan_instance", OrphanVirtualMachineAWS)

    assert excinfo.value.retryable is True


def test_from_dsn_requires_dsn() -> None:
    with pytest.raises(ValueError, match="no dsn"):
        InventoryStore.from_dsn("")


def test_from_dsn_rejects_invalid_dsn() -> None:
    with pytest.raises(ValueError, match="invalid dsn"):
        InventoryStore.from_dsn("not a database url")
