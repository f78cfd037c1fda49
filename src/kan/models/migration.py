"""Migration plan and result models."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class CardMigration:
    """Planned change to one card file."""

    card_id: str
    path: Path
    from_version: int = 0  # 0 if _v is missing
    to_version: int = 0
    remove_column: bool = False  # legacy inline "column" key present
    error: str | None = None  # set when the file could not be read

    @property
    def needs_migration(self) -> bool:
        if self.error is not None:
            return False
        return self.from_version != self.to_version or self.remove_column


@dataclass
class ConfigMigration:
    """Planned change to the global or project config."""

    path: Path
    from_schema: str | None = None  # None if kan_schema is missing
    to_schema: str = ""
    from_version: int = 0
    to_version: int = 0
    needs_migration: bool = False
    error: str | None = None


@dataclass
class BoardMigration:
    """Planned change to one board config and its cards."""

    board_name: str
    config_path: Path
    from_schema: str | None = None
    to_schema: str = ""
    from_version: int = 0
    to_version: int = 0
    needs_migration: bool = False
    cards: list[CardMigration] = field(default_factory=list)
    error: str | None = None

    @property
    def cards_to_migrate(self) -> list[CardMigration]:
        return [card for card in self.cards if card.needs_migration]

    @property
    def has_changes(self) -> bool:
        return self.needs_migration or bool(self.cards_to_migrate)


@dataclass
class MigrationPlan:
    """Declarative description of everything a migration would change."""

    global_config: ConfigMigration | None = None
    project_config: ConfigMigration | None = None
    boards: list[BoardMigration] = field(default_factory=list)

    def has_changes(self) -> bool:
        """Whether any entity needs a version bump or legacy field removal."""
        for config in (self.global_config, self.project_config):
            if config is not None and config.needs_migration:
                return True
        return any(board.has_changes for board in self.boards)

    @property
    def errors(self) -> list[str]:
        """Per-file problems found while planning."""
        errors: list[str] = []
        for config in (self.global_config, self.project_config):
            if config is not None and config.error:
                errors.append(config.error)
        for board in self.boards:
            if board.error:
                errors.append(board.error)
            errors.extend(card.error for card in board.cards if card.error)
        return errors


@dataclass
class MigrationResult:
    """Result of executing a plan."""

    actions: list[str] = field(default_factory=list)  # human-readable progress lines
    errors: list[str] = field(default_factory=list)  # per-entity failures with path
    dry_run: bool = False
    migrated_boards: int = 0

    @property
    def has_errors(self) -> bool:
        """Whether any entity failed to migrate."""
        return len(self.errors) > 0
