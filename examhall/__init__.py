"""Timed multiple-choice examination engine."""

__version__ = "0.1.0"
