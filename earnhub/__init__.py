"""EarnHub reward-for-engagement backend."""

__version__ = "1.0.0"
