"""AssessmentRecord model: one answered challenge with its score. Append-only."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from assessor.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentRecord(Base):
    __tablename__ = "assessment_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    domain = Column(String(120), nullable=False, default="general")
    challenge = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    score = Column(Float, nullable=False)  # validated 0-10 before insert
    feedback = Column(Text, nullable=False, default="")
    logic = Column(Float, nullable=True)
    tone = Column(Float, nullable=True)
    # Client-generated id grouping one test run; not a foreign key
    session_id = Column(String(64), nullable=False, index=True)
    type = Column(String(32), nullable=False)  # adaptive | multiple-choice | general
    difficulty = Column(String(32), nullable=False)
    # Python-side default keeps sub-second ordering on SQLite
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    user = relationship("User", back_populates="records")
