"""SQLAlchemy ORM models for the SQL cache store."""
from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class CacheDocumentRecord(Base):
    """One persisted CacheDocument per key (symbol)."""

    __tablename__ = "cache_documents"

    key = Column(String(64), primary_key=True)
    symbol = Column(String(64), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"CacheDocumentRecord(key={self.key}, symbol={self.symbol})"
