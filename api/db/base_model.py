"""
Base model with the shared query patterns.

Conventions:
- String primary keys (time-based ids, see `time_based_id`)
- Pagination is mandatory for list queries
- Every write commits; `create(commit=False)` only flushes, so several inserts
  can share one transaction (see scripts/seed.py)
"""

import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, TypeVar
from sqlalchemy import DateTime, String, select, func, desc, asc
from sqlalchemy.orm import Mapped, mapped_column, DeclarativeBase
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T", bound="BaseModel")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_last_millis = 0


def time_based_id(prefix: str) -> str:
    """
    Time-ordered id: prefix + epoch millis + 3 random digits.

    Millis never repeat within a process; the random tail separates processes.
    """
    global _last_millis
    millis = max(int(time.time() * 1000), _last_millis + 1)
    _last_millis = millis
    return f"{prefix}{millis}{secrets.randbelow(1000):03d}"


class Base(DeclarativeBase):
    """Base class for all models"""

    pass


class BaseModel(Base):
    """
    Abstract base model with common fields and CRUD helpers.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    # CREATE OPERATIONS

    @classmethod
    async def create(
        cls: type[T], db: AsyncSession, commit: bool = True, **kwargs
    ) -> T:
        """
        Create new instance and optionally commit.
        """
        instance = cls(**kwargs)
        db.add(instance)

        if commit:
            await db.commit()
            await db.refresh(instance)
        else:
            await db.flush()

        return instance

    # READ OPERATIONS

    @classmethod
    async def get_by_id(cls: type[T], db: AsyncSession, id: Any) -> Optional[T]:
        """
        Get single record by primary key.
        """
        return await db.get(cls, id)

    @classmethod
    async def find_one(
        cls: type[T],
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> Optional[T]:
        """
        Get first matching record.
        """
        query = select(cls)
        if filters:
            query = query.filter_by(**filters)
        if kwargs:
            query = query.filter_by(**kwargs)
        result = await db.execute(query.limit(1))
        return result.scalars().first()

    @classmethod
    async def find_many(
        cls: type[T],
        db: AsyncSession,
        limit: int = 100,
        offset: int = 0,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        order_desc: bool = False,
        **kwargs,
    ) -> List[T]:
        """
        Get paginated list of records.
        """
        limit = min(limit, 1000)
        query = select(cls).offset(offset).limit(limit)

        if filters:
            query = query.filter_by(**filters)

        if kwargs:
            query = query.filter_by(**kwargs)

        if order_by and hasattr(cls, order_by):
            column = getattr(cls, order_by)
            query = query.order_by(desc(column) if order_desc else asc(column))
        else:
            query = query.order_by(desc(cls.created_at))

        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def count(
        cls: type[T],
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> int:
        """
        Count matching records.
        """
        query = select(func.count()).select_from(cls)

        if filters:
            query = query.filter_by(**filters)

        if kwargs:
            query = query.filter_by(**kwargs)

        result = await db.execute(query)
        return result.scalar_one()

    # UPDATE OPERATIONS

    async def save(self: T, db: AsyncSession) -> T:
        """
        Commit changes to existing instance.
        """
        self.updated_at = utcnow()
        db.add(self)
        await db.commit()
        await db.refresh(self)
        return self
