"""Tolerant raw access to Kan data files.

The migration and doctor services work on the raw on-disk representation so
that outdated or partially broken files can still be inspected and repaired.
Nothing here validates against the entity models.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from ..config.paths import CARD_SUFFIX

logger = logging.getLogger(__name__)

_TABLE_HEADER = re.compile(r"^\s*\[")


class RawStateReader:
    """Reads TOML and JSON files into plain dicts without schema checks."""

    def read_toml(self, path: Path) -> dict[str, Any]:
        """Decode a TOML file.

        Raises:
            OSError: If the file cannot be read.
            tomllib.TOMLDecodeError: If the content is not valid TOML.
        """
        with path.open("rb") as f:
            return tomllib.load(f)

    def read_json(self, path: Path) -> dict[str, Any]:
        """Decode a JSON file whose top level must be an object.

        Raises:
            OSError: If the file cannot be read.
            json.JSONDecodeError: If the content is not a JSON object.
        """
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        if not isinstance(data, dict):
            raise json.JSONDecodeError("expected a JSON object at top level", text, 0)
        return data

    def list_card_ids(self, cards_dir: Path) -> list[str]:
        """Card IDs with a ``.json`` file in the directory, sorted.

        Returns an empty list when the directory does not exist.

        Raises:
            OSError: If the directory exists but cannot be listed.
        """
        if not cards_dir.exists():
            return []
        return sorted(
            entry.name[: -len(CARD_SUFFIX)]
            for entry in cards_dir.iterdir()
            if entry.name.endswith(CARD_SUFFIX) and not entry.is_dir()
        )


def write_toml(path: Path, data: dict[str, Any]) -> None:
    """Fully re-encode a TOML file. Comments and formatting are not kept."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(data), encoding="utf-8")
    logger.debug("Wrote %s", path)


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write a JSON object with two-space indent and a trailing newline."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug("Wrote %s", path)


def update_stamp(path: Path, key: str, stamp: str) -> None:
    """Set a top-level string key without re-encoding the rest of the file.

    If the key already sits on a top-level line (before the first table
    header) only that line is replaced. Otherwise ``key = "stamp"`` and a
    blank line are prepended, so the original bytes survive as a suffix.
    """
    text = path.read_bytes().decode("utf-8")
    new_line = f'{key} = "{stamp}"'
    key_pattern = re.compile(rf"^\s*{re.escape(key)}\s*=")

    lines = text.splitlines(keepends=True)
    for i, line in enumerate(lines):
        if _TABLE_HEADER.match(line):
            break
        if key_pattern.match(line):
            ending = line[len(line.rstrip("\r\n")) :]
            lines[i] = new_line + ending
            path.write_bytes("".join(lines).encode("utf-8"))
            logger.debug("Replaced %s in %s", key, path)
            return

    path.write_bytes(f"{new_line}\n\n{text}".encode("utf-8"))
    logger.debug("Prepended %s to %s", key, path)
