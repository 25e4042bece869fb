"""Spaced-repetition scheduling for sentence and vocabulary review."""

__version__ = "0.1.0"
