"""Pydantic schemas for history reports."""
from assessor.schemas.base import CamelSchema


class DomainBreakdownSchema(CamelSchema):
    domain: str
    count: int
    average: float


class ReportOutSchema(CamelSchema):
    session_id: str | None = None
    total: int
    average_score: float
    accuracy: float
    level: str
    by_domain: list[DomainBreakdownSchema]
    focus_domains: list[str]
