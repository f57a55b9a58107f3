"""Reviewer assignment and interview lifecycle engine."""

__version__ = "0.1.0"
