"""Repository layer for data access."""

from .filesystem import BoardStore, CardStore, GlobalStore, ProjectStore
from .raw import RawStateReader, update_stamp, write_json, write_toml

__all__ = [
    "BoardStore",
    "CardStore",
    "GlobalStore",
    "ProjectStore",
    "RawStateReader",
    "update_stamp",
    "write_json",
    "write_toml",
]
