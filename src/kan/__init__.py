"""Kan on-disk schema tooling: migrations and consistency checks."""

__version__ = "0.5.0"
