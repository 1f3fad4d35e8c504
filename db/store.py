"""
db.store - Table-name keyed row store used by the import engine.

The import engine never touches ORM classes directly; it talks to a
Store with plain dicts, keyed by table name and a filter of
column → value equalities.  SqlStore is the SQLAlchemy implementation.

Every SqlStore call is its own unit of work: it opens a session,
commits on success, and rolls back before re-raising on failure, so a
failed call never leaves a half-flushed session behind for the next row.
"""

from __future__ import annotations

import json
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import TABLES, Base


class StoreError(Exception):
    """Raised for requests the store cannot express (unknown table/column)."""
    pass


class Store:
    """
    Store interface.  All methods are independently fallible; callers
    catch whatever they raise.
    """

    def get(self, table: str, filters: dict) -> Optional[dict]:
        raise NotImplementedError

    def select(self, table: str, filters: Optional[dict] = None) -> list[dict]:
        raise NotImplementedError

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        raise NotImplementedError

    def update(self, table: str, filters: dict, values: dict) -> int:
        raise NotImplementedError

    def upsert(self, table: str, rows: list[dict], conflict_key: tuple[str, ...]) -> int:
        raise NotImplementedError

    def delete(self, table: str, filters: dict) -> int:
        raise NotImplementedError

    def clear(self, table: str) -> int:
        raise NotImplementedError


class SqlStore(Store):

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    # ── Reads ──────────────────────────────────────────────────────────

    def get(self, table: str, filters: dict) -> Optional[dict]:
        model = self._model(table)
        session = self._session_factory()
        try:
            obj = session.scalars(
                select(model).filter_by(**self._columns(model, filters)).limit(1)
            ).first()
            return obj.to_dict() if obj else None
        finally:
            session.close()

    def select(self, table: str, filters: Optional[dict] = None) -> list[dict]:
        model = self._model(table)
        session = self._session_factory()
        try:
            stmt = select(model)
            if filters:
                stmt = stmt.filter_by(**self._columns(model, filters))
            return [obj.to_dict() for obj in session.scalars(stmt)]
        finally:
            session.close()

    # ── Writes ─────────────────────────────────────────────────────────

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        model = self._model(table)

        def work(session: Session) -> list[dict]:
            objs = [model(**self._columns(model, row)) for row in rows]
            session.add_all(objs)
            session.flush()
            return [obj.to_dict() for obj in objs]

        return self._write(work)

    def update(self, table: str, filters: dict, values: dict) -> int:
        model = self._model(table)

        def work(session: Session) -> int:
            objs = session.scalars(
                select(model).filter_by(**self._columns(model, filters))
            ).all()
            cols = self._columns(model, values)
            for obj in objs:
                for attr, val in cols.items():
                    setattr(obj, attr, val)
            return len(objs)

        return self._write(work)

    def upsert(self, table: str, rows: list[dict], conflict_key: tuple[str, ...]) -> int:
        """Insert or update each row matched on conflict_key.  One commit per call."""
        model = self._model(table)

        def work(session: Session) -> int:
            for row in rows:
                cols = self._columns(model, row)
                missing = [k for k in conflict_key if cols.get(k) is None]
                if missing:
                    raise StoreError(f"{table}: conflict key {', '.join(missing)} missing")
                key = {k: cols[k] for k in conflict_key}
                existing = session.scalars(select(model).filter_by(**key).limit(1)).first()
                if existing is None:
                    session.add(model(**cols))
                else:
                    for attr, val in cols.items():
                        setattr(existing, attr, val)
                # Later rows of the same batch may hit this key again
                session.flush()
            return len(rows)

        return self._write(work)

    def delete(self, table: str, filters: dict) -> int:
        if not filters:
            raise StoreError("delete() needs at least one filter - use clear()")
        model = self._model(table)

        def work(session: Session) -> int:
            objs = session.scalars(
                select(model).filter_by(**self._columns(model, filters))
            ).all()
            for obj in objs:
                session.delete(obj)
            return len(objs)

        return self._write(work)

    def clear(self, table: str) -> int:
        model = self._model(table)

        def work(session: Session) -> int:
            return session.query(model).delete()

        return self._write(work)

    # ── Private helpers ────────────────────────────────────────────────

    def _write(self, work):
        session = self._session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _model(table: str) -> type[Base]:
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}") from None

    @staticmethod
    def _columns(model: type[Base], values: dict) -> dict:
        """Map a row dict onto model columns; 'extra' becomes extra_json."""
        known = set(model.__table__.columns.keys())
        out: dict = {}
        for key, val in values.items():
            if key == "extra" and "extra_json" in known:
                out["extra_json"] = json.dumps(val or {}, ensure_ascii=False)
                continue
            if key not in known:
                raise StoreError(f"{model.__tablename__} has no column {key!r}")
            out[key] = val
        return out

