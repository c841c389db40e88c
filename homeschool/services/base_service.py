# homeschool/services/base_service.py
"""Base service with common CRUD operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Type, Any, Dict, Optional, List, TypeVar, Generic, Sequence
from uuid import UUID

from ..core.exceptions import NotFoundError, ValidationError

# Define generic type
T = TypeVar('T')

class BaseService(Generic[T]):
    """CRUD over one model, scoped to the owning teacher when given."""

    resource_name = "Resource"

    def __init__(self, model: Type[T], db: AsyncSession, teacher_id: Optional[UUID] = None):
        self.model = model
        self.db = db
        self.teacher_id = teacher_id

    def _scope(self, stmt):
        if self.teacher_id is not None and hasattr(self.model, "teacher_id"):
            stmt = stmt.where(self.model.teacher_id == self.teacher_id)
        return stmt

    async def get(self, id: Any) -> Optional[T]:
        stmt = self._scope(select(self.model).where(self.model.id == id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_404(self, id: Any) -> T:
        obj = await self.get(id)
        if obj is None:
            raise NotFoundError(self.resource_name, id)
        return obj

    async def get_paginated(
        self,
        page: int = 1,
        limit: int = 20,
        order_by: Optional[str] = None,
        sort: str = "asc",
        conditions: Sequence[Any] = (),
        **filters
    ) -> Dict[str, Any]:
        """Get paginated results; ``filters`` are equality filters that skip None"""
        offset = (page - 1) * limit

        where = list(conditions)
        for key, value in filters.items():
            if value is not None and hasattr(self.model, key):
                where.append(getattr(self.model, key) == value)

        # Get total count
        count_stmt = self._scope(select(func.count()).select_from(self.model).where(*where))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = self._scope(select(self.model).where(*where))
        order_field = getattr(self.model, order_by) if order_by and hasattr(self.model, order_by) else self.model.created_at
        stmt = stmt.order_by(order_field.desc() if sort.lower() == "desc" else order_field.asc(), self.model.id)

        # Execute main query with pagination
        result = await self.db.execute(stmt.offset(offset).limit(limit))
        items = result.scalars().all()

        return {"items": items, "total": total, "page": page, "limit": limit}

    async def list_all(self, conditions: Sequence[Any] = (), order_by: Any = None) -> List[T]:
        stmt = self._scope(select(self.model).where(*conditions))
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, obj_in: Dict) -> T:
        if self.teacher_id is not None and hasattr(self.model, "teacher_id"):
            obj_in = {**obj_in, "teacher_id": self.teacher_id}
        obj = self.model(**obj_in)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: T, obj_in: Dict) -> T:
        """Apply changes; an explicit null for a required column is ignored"""
        columns = self.model.__table__.columns
        for key, value in obj_in.items():
            if value is None and key in columns and not columns[key].nullable:
                continue
            setattr(obj, key, value)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def soft_delete(self, obj: T) -> T:
        obj.is_active = False
        await self.db.commit()
        return obj

    async def hard_delete(self, obj: T) -> None:
        """Permanently delete record from database"""
        await self.db.delete(obj)
        await self.db.commit()

    async def ensure_owned(self, model: Type[Any], id: Optional[UUID], field: str) -> Optional[Any]:
        """Check that a referenced row exists and belongs to the same teacher"""
        if id is None:
            return None
        stmt = select(model).where(model.id == id)
        if self.teacher_id is not None and hasattr(model, "teacher_id"):
            stmt = stmt.where(model.teacher_id == self.teacher_id)
        obj = (await self.db.execute(stmt)).scalar_one_or_none()
        if obj is None:
            raise ValidationError(f"{model.__name__} {id} does not exist", field=field)
        return obj
