from sqlalchemy import BigInteger, Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.base import new_id


class File(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    mime_type = Column(String(255), nullable=False)
    object_path = Column(String, nullable=False)  # Opaque blob store key
    folder_id = Column(String(36), ForeignKey("folders.id"), nullable=True, index=True)
    owner_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    folder = relationship("Folder", back_populates="files")
    share_links = relationship("ShareLink", back_populates="file")
