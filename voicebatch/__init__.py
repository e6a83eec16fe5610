"""Job orchestration and error recovery core for batch voice production."""

__version__ = "0.1.0"
