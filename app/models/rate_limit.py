from sqlalchemy import Column, DateTime, Integer, String
from app.core.database import Base


class RateLimitCounter(Base):
    """Fixed-window request counter shared by every API process."""
    __tablename__ = "rate_limit_counters"

    key = Column(String(512), primary_key=True)
    count = Column(Integer, nullable=False, default=0)
    reset_at = Column(DateTime(timezone=True), nullable=False)
