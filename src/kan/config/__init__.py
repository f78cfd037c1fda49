"""Configuration and path resolution."""

from .paths import KanPaths
from .settings import Settings

__all__ = [
    "KanPaths",
    "Settings",
]
