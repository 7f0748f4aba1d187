"""Deterministic tick-based horse race simulation engine."""

__version__ = "1.0.0"
