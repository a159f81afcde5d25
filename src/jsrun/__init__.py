"""Resolve Java source scripts into buildable, runnable projects."""

__version__ = "0.1.0"
