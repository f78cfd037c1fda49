"""Filesystem-based stores for the normal runtime layer.

Unlike ``RawStateReader`` these stores decode strictly: a file whose schema
stamp is missing or not current is rejected with ``SchemaVersionError`` and
must be upgraded with ``kan migrate`` first. Every write stamps the current
version.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config.paths import KanPaths
from ..models import BoardConfig, Card, GlobalConfig, ProjectConfig
from ..models.board import CustomFieldSchema
from ..models.version import (
    CURRENT_CARD_VERSION,
    current_board_schema,
    current_global_schema,
    current_project_schema,
)
from ..utils import now_millis
from .raw import RawStateReader, write_json, write_toml

logger = logging.getLogger(__name__)


class BoardStore:
    """Board configs stored at ``boards/<name>/config.toml``."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()

    def list_names(self) -> list[str]:
        """Names of all boards, sorted."""
        return self.paths.list_boards()

    def exists(self, board_name: str) -> bool:
        return self.paths.board_config_path(board_name).exists()

    def get(self, board_name: str) -> BoardConfig:
        """Load a board config.

        Raises:
            FileNotFoundError: If the board does not exist.
            SchemaVersionError: If the board has not been migrated.
        """
        path = self.paths.board_config_path(board_name)
        data = self._reader.read_toml(path)
        return BoardConfig.from_raw_strict(data, str(path))

    def save(self, board_name: str, config: BoardConfig) -> BoardConfig:
        """Write a board config, stamped with the current schema."""
        config = config.model_copy(update={"kan_schema": current_board_schema()})
        path = self.paths.board_config_path(board_name)
        write_toml(path, config.to_raw())
        logger.info("Saved board %s", board_name)
        return config


class CardStore:
    """Card files stored at ``boards/<name>/cards/<id>.json``."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()

    def list_ids(self, board_name: str) -> list[str]:
        return self._reader.list_card_ids(self.paths.cards_dir(board_name))

    def get(
        self,
        board_name: str,
        card_id: str,
        schemas: dict[str, CustomFieldSchema] | None = None,
    ) -> Card:
        """Load a card, decoding custom fields against the board's schemas.

        Raises:
            FileNotFoundError: If the card file does not exist.
            SchemaVersionError: If the card has not been migrated.
            ValueError: If the card carries legacy or reserved fields.
        """
        path = self.paths.card_path(board_name, card_id)
        data = self._reader.read_json(path)
        return Card.from_raw_strict(data, str(path), schemas)

    def get_all(
        self,
        board_name: str,
        schemas: dict[str, CustomFieldSchema] | None = None,
    ) -> list[Card]:
        return [self.get(board_name, card_id, schemas) for card_id in self.list_ids(board_name)]

    def save(self, board_name: str, card: Card) -> Card:
        """Write a card with the current ``_v``, no legacy column, and a fresh update time."""
        card = card.model_copy(
            update={
                "version": CURRENT_CARD_VERSION,
                "legacy_column": None,
                "updated_at_millis": now_millis(),
            }
        )
        write_json(self.paths.card_path(board_name, card.id), card.to_raw())
        logger.info("Saved card %s in board %s", card.id, board_name)
        return card

    def delete(self, board_name: str, card_id: str) -> None:
        path = self.paths.card_path(board_name, card_id)
        if path.exists():
            path.unlink()
            logger.info("Deleted card %s from board %s", card_id, board_name)


class GlobalStore:
    """The per-user global config."""

    def __init__(self, path: Path, reader: RawStateReader | None = None) -> None:
        self.path = path
        self._reader = reader or RawStateReader()

    def load(self) -> GlobalConfig:
        """Load the global config, or a fresh one if the file does not exist."""
        if not self.path.exists():
            return GlobalConfig(kan_schema=current_global_schema())
        data = self._reader.read_toml(self.path)
        return GlobalConfig.from_raw_strict(data, str(self.path))

    def save(self, config: GlobalConfig) -> GlobalConfig:
        config = config.model_copy(update={"kan_schema": current_global_schema()})
        write_toml(self.path, config.to_raw())
        logger.info("Saved global config to %s", self.path)
        return config


class ProjectStore:
    """The project config at ``.kan/config.toml``."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()

    def exists(self) -> bool:
        return self.paths.project_config_path.exists()

    def load(self) -> ProjectConfig | None:
        """Load the project config, or None if the project has none."""
        path = self.paths.project_config_path
        if not path.exists():
            return None
        data = self._reader.read_toml(path)
        return ProjectConfig.from_raw_strict(data, str(path))

    def save(self, config: ProjectConfig) -> ProjectConfig:
        config = config.model_copy(update={"kan_schema": current_project_schema()})
        write_toml(self.paths.project_config_path, config.to_raw())
        logger.info("Saved project config %s", config.name or config.id)
        return config
