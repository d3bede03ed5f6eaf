from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockroom.models.category import Category
from stockroom.models.movement import InventoryMovement
from stockroom.models.product import Product
from stockroom.models.user import User
from stockroom.services.errors import RecordNotFound, StoreWriteError

logger = logging.getLogger(__name__)


class DataStore(ABC):
    """
    Table-oriented store the inventory ledger talks to.

    Records are plain dictionaries keyed by column name. Each call is
    applied on its own: callers get read-after-write consistency per call
    but no multi-call transactions. `increment` is the one atomic
    read-modify-write primitive.
    """

    @abstractmethod
    def get(self, table: str, record_id: Any) -> Dict[str, Any]:
        """Return the record or raise RecordNotFound."""

    @abstractmethod
    def insert(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return it with generated fields filled in."""

    @abstractmethod
    def update(self, table: str, record_id: Any, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of one record."""

    @abstractmethod
    def delete(self, table: str, record_id: Any) -> None:
        """Delete one record; raise RecordNotFound if it no longer exists."""

    @abstractmethod
    def list(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List records.

        Args:
            table: Table name
            filters: Equality filters; a list, tuple or set value matches any of its members
            order_by: Column names, prefixed with '-' for descending order
            limit: Maximum number of records
            offset: Number of records to skip
        """

    @abstractmethod
    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records matching the filters."""

    @abstractmethod
    def increment(self, table: str, record_id: Any, field: str, delta: int) -> int:
        """Atomically add `delta` to a numeric field and return the new value."""


class SqlDataStore(DataStore):
    """
    DataStore backed by a SQLAlchemy session.

    Every write commits immediately. `increment` is executed as a single
    `UPDATE ... SET field = field + :delta` so concurrent callers never
    overwrite each other's changes.
    """

    TABLES = {
        "products": Product,
        "inventory_movements": InventoryMovement,
        "users": User,
        "categories": Category,
    }

    def __init__(self, db: Session):
        self.db = db

    def _model(self, table: str):
        try:
            return self.TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}")

    @staticmethod
    def _to_dict(instance) -> Dict[str, Any]:
        return {c.name: getattr(instance, c.name) for c in instance.__table__.columns}

    def _where(self, model, filters: Optional[Dict[str, Any]]) -> list:
        clauses = []
        for name, value in (filters or {}).items():
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    def get(self, table: str, record_id: Any) -> Dict[str, Any]:
        model = self._model(table)
        instance = self.db.get(model, record_id, populate_existing=True)
        if instance is None:
            raise RecordNotFound(table, record_id)
        return self._to_dict(instance)

    def insert(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        instance = model(**fields)
        try:
            self.db.add(instance)
            self.db.commit()
            self.db.refresh(instance)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Insert into {table} rejected: {e}")
            raise StoreWriteError(f"Insert into {table} rejected") from e
        return self._to_dict(instance)

    def update(self, table: str, record_id: Any, fields: Dict[str, Any]) -> None:
        model = self._model(table)
        try:
            result = self.db.execute(
                update(model)
                .where(model.id == record_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Update of {table} #{record_id} rejected: {e}")
            raise StoreWriteError(f"Update of {table} #{record_id} rejected") from e

        if result.rowcount == 0:
            raise StoreWriteError(f"Update of {table} #{record_id} matched no rows")

    def delete(self, table: str, record_id: Any) -> None:
        model = self._model(table)
        try:
            result = self.db.execute(
                delete(model)
                .where(model.id == record_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Delete of {table} #{record_id} rejected: {e}")
            raise StoreWriteError(f"Delete of {table} #{record_id} rejected") from e

        if result.rowcount == 0:
            raise RecordNotFound(table, record_id)

    def list(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        query = select(model).where(*self._where(model, filters))

        for name in order_by or ():
            if name.startswith("-"):
                query = query.order_by(getattr(model, name[1:]).desc())
            else:
                query = query.order_by(getattr(model, name).asc())

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        rows = self.db.execute(query.execution_options(populate_existing=True)).scalars().all()
        return [self._to_dict(row) for row in rows]

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        model = self._model(table)
        query = select(func.count()).select_from(model).where(*self._where(model, filters))
        return self.db.execute(query).scalar_one()

    def increment(self, table: str, record_id: Any, field: str, delta: int) -> int:
        model = self._model(table)
        column = getattr(model, field)
        try:
            result = self.db.execute(
                update(model)
                .where(model.id == record_id)
                .values({field: column + delta})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise RecordNotFound(table, record_id)

            # Same transaction: the row stays locked until commit
            new_value = self.db.execute(
                select(column).where(model.id == record_id)
            ).scalar_one()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Increment of {table}.{field} #{record_id} rejected: {e}")
            raise StoreWriteError(f"Increment of {table}.{field} #{record_id} rejected") from e

        return new_value


def distinct_values(records: Iterable[Dict[str, Any]], field: str) -> List[Any]:
    """Distinct non-null values of `field`, in first-seen order."""
    seen = {}
    for record in records:
        value = record.get(field)
        if value is not None and value not in seen:
            seen[value] = None
    return list(seen)
