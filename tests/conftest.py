"""Shared fixtures that lay out a Kan data tree in a temporary directory."""

import json
import tomllib
from pathlib import Path
from typing import Any

import pytest
import tomli_w

from kan.config import KanPaths
from kan.models.version import current_board_schema


class KanTree:
    """Writes and reads raw board, card, and config files for tests."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.paths = KanPaths(root, global_config_path=root / "home" / "config.toml")

    # --- Writers ---

    def write_board_text(self, name: str, text: str) -> Path:
        path = self.paths.board_config_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def write_board(
        self,
        name: str,
        columns: dict[str, list[str]] | None = None,
        schema: str | None = None,
        **extra: Any,
    ) -> Path:
        """Write a board config. ``columns`` maps column name to card IDs."""
        columns = {"backlog": []} if columns is None else columns
        data: dict[str, Any] = {}
        data["kan_schema"] = schema or current_board_schema()
        data["id"] = f"id-{name}"
        data["name"] = name
        data.update(extra)
        data["columns"] = [
            {"name": col_name, "color": "#6b7280", "card_ids": card_ids}
            for col_name, card_ids in columns.items()
        ]
        return self.write_board_text(name, tomli_w.dumps(data))

    def write_card_text(self, board: str, card_id: str, text: str) -> Path:
        path = self.paths.card_path(board, card_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def write_card(self, board: str, card_id: str, data: dict[str, Any] | None = None) -> Path:
        """Write a card. Without data a valid current-version card is written."""
        if data is None:
            data = self.card(card_id)
        return self.write_card_text(board, card_id, json.dumps(data, indent=2) + "\n")

    def card(self, card_id: str, **fields: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "_v": 1,
            "id": card_id,
            "alias": card_id,
            "alias_explicit": False,
            "title": f"Card {card_id}",
            "creator": "tester",
            "created_at_millis": 1700000000000,
            "updated_at_millis": 1700000000000,
        }
        data.update(fields)
        return data

    def write_global(self, text: str) -> Path:
        path = self.paths.global_config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    def write_project(self, text: str) -> Path:
        path = self.paths.project_config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    # --- Readers ---

    def read_board(self, name: str) -> dict[str, Any]:
        return tomllib.loads(self.paths.board_config_path(name).read_text())

    def read_card(self, board: str, card_id: str) -> dict[str, Any]:
        return json.loads(self.paths.card_path(board, card_id).read_text())

    def column_ids(self, board: str) -> dict[str, list[str]]:
        """Column name to card IDs, as stored on disk."""
        return {
            col["name"]: col.get("card_ids", []) for col in self.read_board(board).get("columns", [])
        }

    def snapshot(self) -> dict[Path, bytes]:
        """Bytes of every file under the tree."""
        return {p: p.read_bytes() for p in sorted(self.root.rglob("*")) if p.is_file()}


@pytest.fixture
def tree(tmp_path: Path) -> KanTree:
    """An empty project with a private global config location."""
    return KanTree(tmp_path)
