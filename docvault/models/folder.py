from sqlalchemy import Column, String, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from .base import BaseModel


class Folder(BaseModel):
    __tablename__ = "folders"

    user_id = Column(String(36), nullable=False, index=True)  # Owner (users live in the auth service)
    parent_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True)  # None = document root
    name = Column(Text, nullable=False)
    is_starred = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # Relationships
    files = relationship("File", back_populates="folder", cascade="all, delete-orphan")
