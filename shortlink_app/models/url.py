import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum, Index
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class UrlStatus(str, enum.Enum):
    """Redirects only resolve for ACTIVE URLs."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class URL(Base):
    """
    URL model - the single source of truth for URL records.

    Everything in the cache (id:, shortcode_mapping:, user:, clicks:) is
    derived from these rows and may be dropped at any time.

    clicks and status are only ever written through single atomic UPDATE
    statements (see SQLAlchemyUrlStore), never read-modify-write.
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Nullable=True allows two-step creation: first get ID, then derive short_code
    short_code = Column(String(8), unique=True, nullable=True, index=True)
    original_url = Column(String(2048), nullable=False)
    # None means anonymous
    owner_id = Column(String(64), nullable=True, index=True)
    clicks = Column(Integer, default=0, nullable=False)
    status = Column(Enum(UrlStatus), default=UrlStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # De-duplication lookup on (owner, url)
    __table_args__ = (Index("ix_urls_owner_original_url", "owner_id", "original_url"),)

    def __repr__(self) -> str:
        return f"<URL(id={self.id}, short_code='{self.short_code}', status={self.status})>"
