"""Skill level, next-difficulty hint and session/domain aggregates from scores."""
from collections.abc import Iterable, Sequence

from assessor.schemas.stats import DomainBreakdownSchema

# Average score (0-10) -> skill level
LEVEL_BANDS = [
    (0.0, 4.0, "Beginner"),
    (4.0, 7.0, "Intermediate"),
    (7.0, 9.0, "Advanced"),
    (9.0, 10.0, "Expert"),
]

HARD_THRESHOLD = 7.0
# Recent records considered when recomputing a user's level
LEVEL_WINDOW = 20


def compute_level(avg_score: float | None) -> str:
    """Return level label from an average score (0-10)."""
    if avg_score is None:
        return "Beginner"
    for low, high, label in LEVEL_BANDS:
        if low <= avg_score < high:
            return label
    return "Expert" if avg_score >= 10.0 else "Beginner"


def next_level(score: float) -> str:
    """Difficulty of the next question after one answer."""
    return "hard" if score >= HARD_THRESHOLD else "easy"


def average(scores: Iterable[float]) -> float | None:
    scores = list(scores)
    if not scores:
        return None
    return round(sum(scores) / len(scores), 2)


def session_accuracy(scores: Sequence[float]) -> float:
    """Percentage of the maximum achievable score over answered challenges."""
    if not scores:
        return 0.0
    return round(sum(scores) / (len(scores) * 10.0) * 100, 1)


def domain_breakdown(records: Iterable) -> list[DomainBreakdownSchema]:
    """Per-domain count and average, in first-seen order."""
    by_domain: dict[str, list[float]] = {}
    for r in records:
        by_domain.setdefault(r.domain, []).append(r.score)
    return [
        DomainBreakdownSchema(domain=d, count=len(s), average=average(s))
        for d, s in by_domain.items()
    ]


def get_focus_domains(breakdown: list[DomainBreakdownSchema], max_domains: int = 3) -> list[str]:
    """Return up to max_domains domains scoring below the hard threshold, weakest first."""
    weak = sorted(
        (b for b in breakdown if b.average < HARD_THRESHOLD),
        key=lambda b: (b.average, -b.count),
    )
    return [b.domain for b in weak[:max_domains]]
