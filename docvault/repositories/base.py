"""
Base Repository

Generic data access shared by repositories. Each write commits
its own unit of work.
"""

from typing import Generic, TypeVar, Type
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.db.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    Args:
        model: SQLAlchemy model class
        db: Session owned by the caller (request or job)
    """
    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # -----------------------------
    # Create Single Record
    # -----------------------------
    async def create(self, **kwargs) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance
