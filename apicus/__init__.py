"""Apicus stack cost engine."""

__version__ = "0.1.0"
