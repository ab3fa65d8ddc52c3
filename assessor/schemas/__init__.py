from assessor.schemas.assessment import (
    AssessmentRecordOutSchema,
    ChallengeSchema,
    EvaluateBatchOutSchema,
    EvaluateBatchSchema,
    GenerateOutSchema,
    GenerateRequestSchema,
)
from assessor.schemas.auth import LoginSchema, RegisterSchema, TokenOutSchema
from assessor.schemas.stats import DomainBreakdownSchema, ReportOutSchema

__all__ = [
    "AssessmentRecordOutSchema",
    "ChallengeSchema",
    "DomainBreakdownSchema",
    "EvaluateBatchOutSchema",
    "EvaluateBatchSchema",
    "GenerateOutSchema",
    "GenerateRequestSchema",
    "LoginSchema",
    "RegisterSchema",
    "ReportOutSchema",
    "TokenOutSchema",
]
