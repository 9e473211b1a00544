from sqlalchemy import Column, String, Boolean, BigInteger, ForeignKey, Text, DateTime
from sqlalchemy.orm import relationship
from .base import BaseModel


class File(BaseModel):
    __tablename__ = "files"

    user_id = Column(String(36), nullable=False, index=True)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(Text, nullable=False)  # Display name, e.g. "Page 3.pdf"
    storage_key = Column(String(500), nullable=False)  # Blob locator in storage
    mime_type = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    is_starred = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    # OCR / AI processing output
    ocr_text = Column(Text, nullable=True)
    ocr_summary = Column(Text, nullable=True)
    ocr_processed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    folder = relationship("Folder", back_populates="files")
