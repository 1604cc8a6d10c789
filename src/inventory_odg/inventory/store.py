"""Read-only access to the Inventory database."""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, DBAPIError, SQLAlchemyError

from inventory_odg.errors import QueryError

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)

# SQLSTATE codes of queries which can never succeed as written: syntax errors
# and references to undefined tables, columns or functions.
PERMANENT_SQLSTATES: frozenset[str] = frozenset(
    {"42601", "42P01", "42703", "42883", "42804", "42P10"}
)


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    # psycopg exposes ``sqlstate``, psycopg2 ``pgcode``.
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class InventoryStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_dsn(cls, dsn: str, echo: bool = False) -> "InventoryStore":
        if not dsn:
            raise ValueError("database: no dsn specified")
        try:
            engine = create_engine(dsn, echo=echo, pool_pre_ping=True)
        except ArgumentError as exc:
            raise ValueError(f"database: invalid dsn: {exc}") from exc
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def fetch_rows(self, query: str, shape: type[RowT]) -> list[RowT]:
        """Run a raw query and decode every row into ``shape``.

        Rows are returned in the order produced by the database. Database
        errors are retryable, since missing privileges or a schema migration
        in progress may be fixed before the next run. Only queries rejected
        with a syntax or undefined-object SQLSTATE and rows which do not fit
        ``shape`` are permanent failures.
        """
        if not query or not query.strip():
            raise QueryError("no query specified", permanent=True)

        try:
            with self._engine.connect() as conn:
                result = conn.execute(text(query))
                records = [dict(row._mapping) for row in result]
        except DBAPIError as exc:
            sqlstate = _sqlstate(exc)
            if sqlstate in PERMANENT_SQLSTATES:
                raise QueryError(
                    f"query rejected by database ({sqlstate}): {exc.orig}", permanent=True
                ) from exc
            raise QueryError(f"query failed: {exc}") from exc
        except SQLAlchemyError as exc:
            raise QueryError(f"query failed: {exc}") from exc

        rows: list[RowT] = []
        for index, record in enumerate(records):
            try:
                rows.append(shape.model_validate(record))
            except ValidationError as exc:
                raise QueryError(
                    f"cannot decode row {index} into {shape.__name__}: {exc}",
                    permanent=True,
                ) from exc

        logger.debug("Fetched %d %s rows", len(rows), shape.__name__)
        return rows

    def close(self) -> None:
        self._engine.dispose()
