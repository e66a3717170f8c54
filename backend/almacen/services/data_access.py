# Overview: Generic tabular data-access surface (read / insert / conditional update / delete).

# backend/almacen/services/data_access.py
"""
Tabular data-access surface used by the inventory services.

Every call addresses a table by name and exchanges plain row dicts, the way
a hosted REST backend would. Nothing here knows about products or stock.

TRANSACTIONS:
- Calls run inside the current session transaction and do NOT commit.
- Callers group writes and call commit(); unit_of_work() does it for them.
- Any storage error rolls the session back before it is re-raised as
  DataAccessError, so a failed call never leaves a half-open transaction.

FILTERS:
- filters is {column: value}; a None value means "column IS NULL".
- ConditionalUpdate puts the guard (e.g. stock == old) in filters; an empty
  result list means no row matched, which callers treat as a conflict.
"""
from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db


class DataAccessError(Exception):
    """Raised when the storage layer rejects or fails a call."""
    pass


class DuplicateRowError(DataAccessError):
    """Raised when an insert collides with an existing unique key."""
    pass


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


class TableClient:
    def __init__(self, session=None, page_size: int | None = None):
        self.session = session if session is not None else db.session
        self.page_size = page_size or current_app.config.get("INVENTORY_PAGE_SIZE", 1000)

    def _table(self, name: str):
        table = db.metadata.tables.get(name)
        if table is None:
            raise DataAccessError(f"unknown table {name!r}")
        return table

    @staticmethod
    def _where(table, filters: dict | None):
        conds = []
        for key, value in (filters or {}).items():
            col = table.c[key]
            conds.append(col.is_(None) if value is None else col == value)
        return and_(*conds) if conds else None

    def _fail(self, exc: Exception, operation: str, table: str):
        self.session.rollback()
        raise DataAccessError(f"{operation} on {table} failed: {exc}") from exc

    def read(
        self,
        table: str,
        *,
        filters: dict | None = None,
        range_: tuple[int, int] | None = None,
    ) -> list[dict]:
        """
        Read rows matching filters.

        range_ is an inclusive (first, last) row window, ordered by primary key.
        """
        t = self._table(table)
        stmt = select(t).order_by(*t.primary_key.columns)
        where = self._where(t, filters)
        if where is not None:
            stmt = stmt.where(where)
        if range_ is not None:
            first, last = range_
            stmt = stmt.offset(first).limit(last - first + 1)
        try:
            return [dict(row._mapping) for row in self.session.execute(stmt)]
        except SQLAlchemyError as exc:
            self._fail(exc, "read", table)

    def read_one(self, table: str, filters: dict) -> dict | None:
        rows = self.read(table, filters=filters, range_=(0, 0))
        return rows[0] if rows else None

    def read_all(self, table: str, *, filters: dict | None = None, page_size: int | None = None) -> list[dict]:
        """Read every matching row in fixed-size pages until a short page comes back."""
        step = page_size or self.page_size
        start = 0
        rows: list[dict] = []
        while True:
            page = self.read(table, filters=filters, range_=(start, start + step - 1))
            rows.extend(page)
            if len(page) < step:
                return rows
            start += step

    def insert(self, table: str, row: dict) -> dict:
        t = self._table(table)
        try:
            result = self.session.execute(insert(t).values(**row))
            pk = result.inserted_primary_key
        except IntegrityError as exc:
            self.session.rollback()
            if _is_unique_violation(exc):
                raise DuplicateRowError(f"insert on {table} hit an existing key") from exc
            raise DataAccessError(f"insert on {table} failed: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self._fail(exc, "insert", table)

        keys = {col.key: value for col, value in zip(t.primary_key.columns, pk)}
        return self.read_one(table, keys)

    def conditional_update(self, table: str, values: dict, filters: dict) -> list[dict]:
        """
        UPDATE table SET values WHERE filters; returns the affected rows.

        An empty list means nothing matched the filters (guard failed).
        """
        if not filters:
            raise DataAccessError(f"refusing unfiltered update on {table}")
        t = self._table(table)
        stmt = update(t).where(self._where(t, filters)).values(**values)
        returning = self.session.get_bind().dialect.update_returning
        if returning:
            stmt = stmt.returning(*t.c)
        try:
            result = self.session.execute(stmt)
            if returning:
                return [dict(row._mapping) for row in result]
        except IntegrityError as exc:
            self.session.rollback()
            raise DataAccessError(f"update on {table} failed: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self._fail(exc, "update", table)

        if result.rowcount == 0:
            return []
        # Re-read with the guard columns swapped for their new values
        after = {key: values.get(key, value) for key, value in filters.items()}
        return self.read(table, filters=after)

    def delete(self, table: str, filters: dict) -> int:
        if not filters:
            raise DataAccessError(f"refusing unfiltered delete on {table}")
        t = self._table(table)
        try:
            result = self.session.execute(delete(t).where(self._where(t, filters)))
        except SQLAlchemyError as exc:
            self._fail(exc, "delete", table)
        return result.rowcount

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise DataAccessError(f"commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def unit_of_work(self):
        """Commit the enclosed calls together, or roll them all back."""
        try:
            yield self
        except Exception:
            self.session.rollback()
            raise
        self.commit()
