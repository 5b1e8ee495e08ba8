from sqlalchemy import BigInteger, Boolean, Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.base import new_id


class ShareLink(Base):
    __tablename__ = "share_links"

    id = Column(String(36), primary_key=True, default=new_id)
    file_id = Column(String(36), ForeignKey("files.id"), nullable=False, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # bcrypt, None when unprotected
    expires_at = Column(DateTime(timezone=True), nullable=True)  # Absolute UTC
    download_count = Column(BigInteger, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    file = relationship("File", back_populates="share_links")

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None
