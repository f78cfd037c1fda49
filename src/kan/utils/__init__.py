"""Utility functions."""

from .datetime import now_millis, now_utc

__all__ = [
    "now_millis",
    "now_utc",
]
