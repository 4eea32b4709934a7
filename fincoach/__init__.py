"""FinCoach: personal finance tracking with an AI coach."""

__version__ = "1.0.0"
