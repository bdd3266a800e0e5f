"""Aggregate community blog feeds into one combined feed."""

__version__ = "1.0.0"
