# app/repositories/base.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from app.errors import translate_db_errors

T = TypeVar("T")  # SQLAlchemy model type

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int


def dialect_insert(db: Session):
    """The dialect's INSERT construct with ON CONFLICT support, or None."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


class UpsertUnsupported(Exception):
    pass


class BaseRepository(Generic[T]):
    """Lightweight base for repositories using SQLAlchemy 2.0 style."""
    model: type

    def __init__(self, db: Session):
        self.db = db

    def add_and_refresh(self, entity: T) -> T:
        with translate_db_errors(self.db):
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)
        return entity

    def delete(self, entity: T) -> None:
        with translate_db_errors(self.db):
            self.db.delete(entity)
            self.db.commit()

    def _by_keys_stmt(self, keys: dict[str, Any]):
        stmt = select(self.model)
        for col, val in keys.items():
            stmt = stmt.where(getattr(self.model, col) == val)
        return stmt

    def find_by_keys(self, keys: dict[str, Any]) -> T | None:
        stmt = self._by_keys_stmt(keys).execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    # UPSERT
    def upsert(self, values: dict[str, Any], *, conflict: Sequence[str], update: Sequence[str]) -> T:
        """INSERT ... ON CONFLICT (conflict) DO UPDATE SET update, then reload the row."""
        insert = dialect_insert(self.db)
        if insert is None:
            raise UpsertUnsupported(self.db.get_bind().dialect.name)
        stmt = insert(self.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict),
            set_={col: stmt.excluded[col] for col in update},
        )
        self.db.execute(stmt)
        self.db.commit()
        return self.find_by_keys({c: values[c] for c in conflict})

    def write_by_select(self, values: dict[str, Any], *, conflict: Sequence[str], update: Sequence[str]) -> T:
        """Select the row by its unique key, then update it or insert a new one."""
        keys = {c: values[c] for c in conflict}
        with translate_db_errors(self.db):
            row = self.find_by_keys(keys)
            if row is None:
                try:
                    row = self.model(**values)
                    self.db.add(row)
                    self.db.commit()
                    return row
                except IntegrityError:
                    # lost the insert race; the other writer's row is there now
                    self.db.rollback()
                    row = self.find_by_keys(keys)
                    if row is None:
                        raise
            for col in update:
                setattr(row, col, values[col])
            self.db.commit()
            return row

    def upsert_with_fallback(self, values: dict[str, Any], *, conflict: Sequence[str],
                             update: Sequence[str]) -> T:
        try:
            return self.upsert(values, conflict=conflict, update=update)
        except (DBAPIError, UpsertUnsupported) as e:
            self.db.rollback()
            log.warning("upsert on %s failed (%s); falling back to select+write",
                        self.model.__tablename__, e)
        return self.write_by_select(values, conflict=conflict, update=update)
