"""Burndown charts for GitHub Projects boards."""

__version__ = "0.1.0"
