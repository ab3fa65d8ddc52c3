from assessor.models.user import User
from assessor.models.assessment import AssessmentRecord
from assessor.models.session_snapshot import SessionSnapshot

__all__ = ["User", "AssessmentRecord", "SessionSnapshot"]
