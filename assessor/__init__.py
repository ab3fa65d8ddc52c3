"""AI Assessment System: LLM-generated challenges, scored answers, history."""

__version__ = "1.0.0"
