"""SessionSnapshot model: the single persisted state of one web client session."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from assessor.db.session import Base


class SessionSnapshot(Base):
    __tablename__ = "session_snapshots"

    # Cookie value (UUID string)
    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # JSON of a session_flow phase; validated on every load
    payload = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
