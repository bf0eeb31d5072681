"""
Base Repository Pattern
Generic repository implementing the document-store contract
(find_many / count_many / find_by_id / insert / update_by_id / delete_by_id)
over SQLAlchemy models.
"""

import operator
import uuid
from datetime import datetime
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
import structlog

from bug_tracker.core.database import Base
from bug_tracker.core.query import QueryPlan, SortField

logger = structlog.get_logger()

ModelType = TypeVar("ModelType", bound=Base)

_COMPARATORS = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


def _coerce(column: InstrumentedAttribute, value: Any) -> Any:
    """Cast a query-string value to the column's Python type"""
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type is uuid.UUID:
        return UUID(value)
    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is int:
        return int(value)
    return value


class DocumentRepository(Generic[ModelType]):
    """
    Base repository with the store operations used by services.

    ``fields`` maps client-facing field names (as they appear in filters,
    sort specs and responses) to model columns. Names outside the map are
    ignored when compiling a query plan.
    """

    fields: Mapping[str, str] = {}

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _column(self, name: str) -> Optional[InstrumentedAttribute]:
        attribute = self.fields.get(name)
        if attribute is None:
            return None
        return getattr(self.model, attribute)

    def compile_filter(self, filter_tree: Mapping[str, Any]) -> List[Any]:
        """
        Compile a ``$``-operator filter tree into SQLAlchemy criteria

        Raises:
            ValueError: unsupported operator or a value the column cannot hold
        """
        criteria = []
        for field, value in filter_tree.items():
            column = self._column(field)
            if column is None:
                logger.debug("Ignoring filter on unknown field", model=self.model.__name__, field=field)
                continue

            if isinstance(value, Mapping):
                for op, operand in value.items():
                    if op == "$in":
                        values = operand if isinstance(operand, list) else [operand]
                        criteria.append(column.in_([_coerce(column, item) for item in values]))
                    elif op in _COMPARATORS:
                        criteria.append(_COMPARATORS[op](column, _coerce(column, operand)))
                    else:
                        raise ValueError(f"Unsupported filter operator '{op}' on field '{field}'")
            elif isinstance(value, list):
                criteria.append(column.in_([_coerce(column, item) for item in value]))
            else:
                criteria.append(column == _coerce(column, value))
        return criteria

    def compile_sort(self, sort: Sequence[SortField]) -> List[Any]:
        order_by = []
        for sort_field in sort:
            column = self._column(sort_field.field)
            if column is None:
                logger.debug("Ignoring sort on unknown field", model=self.model.__name__, field=sort_field.field)
                continue
            order_by.append(column.desc() if sort_field.descending else column.asc())
        return order_by

    async def find_by_id(
        self,
        db: AsyncSession,
        id: Union[UUID, str],
        *,
        refresh: bool = False
    ) -> Optional[ModelType]:
        """
        Get a single record by ID

        Args:
            db: Database session
            id: Record ID
            refresh: Reload the record even if it is already in the session

        Returns:
            Model instance or None
        """
        query = select(self.model).where(self.model.id == id)
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await db.execute(query)
        record = result.scalar_one_or_none()

        if record:
            logger.debug("Record retrieved", model=self.model.__name__, id=str(id))
        else:
            logger.debug("Record not found", model=self.model.__name__, id=str(id))

        return record

    async def find_many(self, db: AsyncSession, plan: QueryPlan) -> List[ModelType]:
        """
        Execute the filter, sort and page window of a query plan

        The projection is applied by the caller when serializing.
        """
        query = (
            select(self.model)
            .where(*self.compile_filter(plan.filter))
            .order_by(*self.compile_sort(plan.sort))
            .offset(plan.skip)
            .limit(plan.limit)
        )

        result = await db.execute(query)
        records = list(result.scalars().all())

        logger.debug(
            "Multiple records retrieved",
            model=self.model.__name__,
            count=len(records),
            skip=plan.skip,
            limit=plan.limit
        )
        return records

    async def count_many(self, db: AsyncSession, filter_tree: Mapping[str, Any]) -> int:
        """Count records matching a filter tree"""
        query = select(func.count()).select_from(self.model).where(*self.compile_filter(filter_tree))
        count = (await db.execute(query)).scalar() or 0

        logger.debug("Record count", model=self.model.__name__, count=count)
        return count

    async def insert(self, db: AsyncSession, values: Dict[str, Any]) -> ModelType:
        """
        Create a new record and return it with relationships loaded
        """
        try:
            db_obj = self.model(**values)
            db.add(db_obj)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Error creating record", model=self.model.__name__, error=str(e))
            raise

        logger.info("Record created", model=self.model.__name__, id=str(db_obj.id))
        return await self.find_by_id(db, db_obj.id, refresh=True)

    async def update_by_id(
        self,
        db: AsyncSession,
        id: Union[UUID, str],
        patch: Dict[str, Any]
    ) -> Optional[ModelType]:
        """
        Apply ``patch`` to the record with ``id``

        Returns:
            Updated model instance, or None when the record is gone
        """
        db_obj = await self.find_by_id(db, id)
        if db_obj is None:
            logger.warning("Record not found for update", model=self.model.__name__, id=str(id))
            return None

        try:
            for field, value in patch.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Error updating record", model=self.model.__name__, id=str(id), error=str(e))
            raise

        logger.info("Record updated", model=self.model.__name__, id=str(id))
        return await self.find_by_id(db, id, refresh=True)

    async def delete_by_id(self, db: AsyncSession, id: Union[UUID, str]) -> bool:
        """
        Hard delete the record with ``id``

        Returns:
            True when a record was deleted
        """
        db_obj = await self.find_by_id(db, id)
        if db_obj is None:
            logger.warning("Record not found for deletion", model=self.model.__name__, id=str(id))
            return False

        try:
            await db.delete(db_obj)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Error deleting record", model=self.model.__name__, id=str(id), error=str(e))
            raise

        logger.info("Record deleted", model=self.model.__name__, id=str(id))
        return True
