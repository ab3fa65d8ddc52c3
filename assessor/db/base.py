"""SQLAlchemy declarative base with every model registered on its metadata."""
from assessor.db.session import Base

# Import all models so create_all sees them
from assessor.models.assessment import AssessmentRecord  # noqa: F401
from assessor.models.session_snapshot import SessionSnapshot  # noqa: F401
from assessor.models.user import User  # noqa: F401

__all__ = ["Base", "User", "AssessmentRecord", "SessionSnapshot"]
