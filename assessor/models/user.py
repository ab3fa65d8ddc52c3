"""User model: registered account with a derived skill level."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from assessor.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    display_name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    # Recomputed from recent scores after every evaluation write
    skill_level = Column(String(32), nullable=False, default="Beginner")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    records = relationship("AssessmentRecord", back_populates="user", order_by="AssessmentRecord.id")
