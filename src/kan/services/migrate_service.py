"""Service for upgrading on-disk data to the current schema versions.

Planning and execution are separate: ``MigrationPlanner`` reads raw files and
describes what would change without touching anything, and
``MigrationExecutor`` applies a plan (or only reports it in dry-run mode).
Both bypass the strict stores so that outdated files can be read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..config.paths import KanPaths
from ..models import (
    BoardMigration,
    CardMigration,
    ConfigMigration,
    MigrationPlan,
    MigrationResult,
    SchemaVersionError,
)
from ..models.card import LEGACY_COLUMN_KEY
from ..models.version import (
    BOARD_SCHEMA_PREFIX,
    CARD_VERSION_KEY,
    CURRENT_BOARD_VERSION,
    CURRENT_CARD_VERSION,
    CURRENT_GLOBAL_VERSION,
    CURRENT_PROJECT_VERSION,
    GLOBAL_SCHEMA_PREFIX,
    PROJECT_SCHEMA_PREFIX,
    SCHEMA_KEY,
    card_version_or_zero,
    format_schema,
    schema_version_or_zero,
)
from ..repositories.raw import RawStateReader, update_stamp, write_json, write_toml
from .migrations import (
    BOARD_STEPS,
    GLOBAL_STEPS,
    PROJECT_STEPS,
    MigrationStep,
    migrate_card_data,
    steps_between,
    with_key_first,
)

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Migration cannot proceed, e.g. because a data directory is unreadable."""


class MigrationPlanner:
    """Builds a ``MigrationPlan`` from the raw on-disk state."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()

    def plan(self) -> MigrationPlan:
        """Plan migration of the global config, project config, and all boards.

        Raises:
            MigrationError: If a boards or cards directory cannot be listed.
        """
        return MigrationPlan(
            global_config=self.plan_global(),
            project_config=self.plan_project(),
            boards=self.plan_boards(),
        )

    def plan_global(self) -> ConfigMigration | None:
        """Plan for the global config, or None if there is no global config."""
        return self._plan_config(
            self.paths.global_config_path,
            "global config",
            GLOBAL_SCHEMA_PREFIX,
            CURRENT_GLOBAL_VERSION,
        )

    def plan_project(self) -> ConfigMigration | None:
        """Plan for the project config, or None if the project has none."""
        return self._plan_config(
            self.paths.project_config_path,
            "project config",
            PROJECT_SCHEMA_PREFIX,
            CURRENT_PROJECT_VERSION,
        )

    def plan_boards(self) -> list[BoardMigration]:
        try:
            board_names = self.paths.list_boards()
        except OSError as e:
            raise MigrationError(f"failed to list boards in {self.paths.boards_root}: {e}") from e
        return [self.plan_board(name) for name in board_names]

    def plan_board(self, board_name: str) -> BoardMigration:
        """Plan for one board config and every card file in the board."""
        config_path = self.paths.board_config_path(board_name)
        to_schema = format_schema(BOARD_SCHEMA_PREFIX, CURRENT_BOARD_VERSION)
        plan = BoardMigration(
            board_name=board_name,
            config_path=config_path,
            to_schema=to_schema,
            to_version=CURRENT_BOARD_VERSION,
        )

        try:
            raw = self._reader.read_toml(config_path)
        except (OSError, ValueError) as e:
            plan.error = f"board {board_name!r} config {config_path}: {e}"
            logger.warning("Cannot plan board config: %s", plan.error)
        else:
            self._apply_stamp(
                plan,
                raw.get(SCHEMA_KEY),
                "board config",
                BOARD_SCHEMA_PREFIX,
                CURRENT_BOARD_VERSION,
            )

        cards_dir = self.paths.cards_dir(board_name)
        try:
            card_ids = self._reader.list_card_ids(cards_dir)
        except OSError as e:
            raise MigrationError(f"failed to list cards in {cards_dir}: {e}") from e
        plan.cards = [self.plan_card(self.paths.card_path(board_name, cid)) for cid in card_ids]

        logger.debug(
            "Planned board %s: config=%s, cards=%d/%d",
            board_name,
            plan.needs_migration,
            len(plan.cards_to_migrate),
            len(plan.cards),
        )
        return plan

    def plan_card(self, path: Path) -> CardMigration:
        plan = CardMigration(
            card_id=path.stem,
            path=path,
            to_version=CURRENT_CARD_VERSION,
        )
        try:
            raw = self._reader.read_json(path)
        except (OSError, ValueError) as e:
            plan.error = f"card {path}: {e}"
            logger.warning("Cannot plan card: %s", plan.error)
            return plan

        card_id = raw.get("id")
        if isinstance(card_id, str) and card_id:
            plan.card_id = card_id
        plan.from_version = card_version_or_zero(raw.get(CARD_VERSION_KEY))
        plan.remove_column = LEGACY_COLUMN_KEY in raw
        if plan.from_version > CURRENT_CARD_VERSION:
            plan.error = str(SchemaVersionError.for_card(str(path), plan.from_version))
        return plan

    # --- Private Methods ---

    def _plan_config(
        self, path: Path, file_type: str, prefix: str, current: int
    ) -> ConfigMigration | None:
        if not path.exists():
            return None
        plan = ConfigMigration(
            path=path,
            to_schema=format_schema(prefix, current),
            to_version=current,
        )
        try:
            raw = self._reader.read_toml(path)
        except (OSError, ValueError) as e:
            plan.error = f"{file_type} {path}: {e}"
            logger.warning("Cannot plan %s: %s", file_type, plan.error)
            return plan
        self._apply_stamp(plan, raw.get(SCHEMA_KEY), file_type, prefix, current)
        return plan

    def _apply_stamp(
        self,
        plan: ConfigMigration | BoardMigration,
        schema: Any,
        file_type: str,
        prefix: str,
        current: int,
    ) -> None:
        """Fill in the from-side of a stamped entity's plan."""
        plan.from_schema = schema if isinstance(schema, str) else None
        plan.from_version = schema_version_or_zero(schema, prefix)
        if plan.from_version > current:
            # Written by a newer Kan; never downgrade
            path = plan.path if isinstance(plan, ConfigMigration) else plan.config_path
            plan.error = str(
                SchemaVersionError.for_stamp(
                    file_type, str(path), plan.from_schema, prefix, current
                )
            )
            return
        plan.needs_migration = plan.from_schema != plan.to_schema


class MigrationExecutor:
    """Applies a ``MigrationPlan`` to the files it describes."""

    def __init__(self, reader: RawStateReader | None = None) -> None:
        self._reader = reader or RawStateReader()

    def execute(self, plan: MigrationPlan, dry_run: bool = False) -> MigrationResult:
        """Apply the plan, or in dry-run mode only describe it.

        A failure in one file is recorded in the result and does not stop
        the remaining files from migrating.
        """
        result = MigrationResult(dry_run=dry_run)

        for label, config, steps in (
            ("global config", plan.global_config, GLOBAL_STEPS),
            ("project config", plan.project_config, PROJECT_STEPS),
        ):
            if config is None or not config.needs_migration:
                continue
            if dry_run:
                description = _describe_stamp(config.from_schema, config.to_schema)
                result.actions.append(f"Would migrate {label}: {description}")
                continue
            try:
                self._migrate_stamped(
                    config.path, config.from_version, config.to_version, config.to_schema, steps
                )
            except (OSError, ValueError) as e:
                result.errors.append(f"failed to migrate {label} {config.path}: {e}")
                logger.warning("Failed to migrate %s %s: %s", label, config.path, e)
                continue
            result.actions.append(f"Migrated {label}")
            logger.info("Migrated %s: %s", label, config.path)

        for board in plan.boards:
            if not board.has_changes:
                continue
            if dry_run:
                self._describe_board(board, result)
            else:
                self._migrate_board(board, result)

        return result

    # --- Private Methods ---

    def _describe_board(self, board: BoardMigration, result: MigrationResult) -> None:
        if board.needs_migration:
            result.actions.append(
                f'Would migrate board "{board.board_name}" config: '
                f"{_describe_stamp(board.from_schema, board.to_schema)}"
            )
        cards = board.cards_to_migrate
        if cards:
            result.actions.append(
                f'Would migrate {len(cards)} cards in board "{board.board_name}": '
                f"set {CARD_VERSION_KEY}={CURRENT_CARD_VERSION}, remove {LEGACY_COLUMN_KEY}"
            )

    def _migrate_board(self, board: BoardMigration, result: MigrationResult) -> None:
        config_migrated = False
        if board.needs_migration:
            try:
                self._migrate_stamped(
                    board.config_path,
                    board.from_version,
                    board.to_version,
                    board.to_schema,
                    BOARD_STEPS,
                )
                config_migrated = True
            except (OSError, ValueError) as e:
                result.errors.append(
                    f'failed to migrate board "{board.board_name}" config {board.config_path}: {e}'
                )
                logger.warning("Failed to migrate board config %s: %s", board.config_path, e)

        cards_migrated = 0
        for card in board.cards_to_migrate:
            try:
                self._migrate_card(card)
                cards_migrated += 1
            except (OSError, ValueError) as e:
                result.errors.append(f'failed to migrate card "{card.card_id}" {card.path}: {e}')
                logger.warning("Failed to migrate card %s: %s", card.path, e)

        if not config_migrated and cards_migrated == 0:
            return

        if config_migrated and cards_migrated:
            detail = f"config + {cards_migrated} cards"
        elif config_migrated:
            detail = "config"
        else:
            detail = f"{cards_migrated} cards"
        result.actions.append(f'Migrated board "{board.board_name}" ({detail})')
        result.migrated_boards += 1
        logger.info("Migrated board %s (%s)", board.board_name, detail)

    def _migrate_stamped(
        self,
        path: Path,
        from_version: int,
        to_version: int,
        to_schema: str,
        steps: list[MigrationStep],
    ) -> None:
        """Run a stamped file through its step chain.

        A chain of stamp-only steps touches just the stamp line. A chain with
        any structural step is decoded, transformed, and written once with
        the final stamp.
        """
        chain = steps_between(steps, from_version, to_version)
        if not any(step.structural for step in chain):
            update_stamp(path, SCHEMA_KEY, to_schema)
            return

        data = self._reader.read_toml(path)
        for step in chain:
            if step.transform is not None:
                logger.debug("Applying step to %s: %s", path, step.description)
                data = step.transform(data)
        write_toml(path, with_key_first(data, SCHEMA_KEY, to_schema))

    def _migrate_card(self, card: CardMigration) -> None:
        data = self._reader.read_json(card.path)
        data = migrate_card_data(data, card.from_version, card.to_version)
        write_json(card.path, data)
        logger.debug("Migrated card %s", card.path)


class MigrateService:
    """Entry point used by the CLI: plan, then execute."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        reader = reader or RawStateReader()
        self.paths = paths
        self.planner = MigrationPlanner(paths, reader)
        self.executor = MigrationExecutor(reader)

    def plan(self) -> MigrationPlan:
        return self.planner.plan()

    def plan_global_only(self) -> MigrationPlan:
        """Plan covering only the global config."""
        return MigrationPlan(global_config=self.planner.plan_global())

    def plan_boards_only(self) -> MigrationPlan:
        """Plan covering the project config and boards, without the global config."""
        return MigrationPlan(
            project_config=self.planner.plan_project(),
            boards=self.planner.plan_boards(),
        )

    def execute(self, plan: MigrationPlan, dry_run: bool = False) -> MigrationResult:
        return self.executor.execute(plan, dry_run)


def _describe_stamp(from_schema: str | None, to_schema: str) -> str:
    if from_schema is None:
        return f'add {SCHEMA_KEY} = "{to_schema}"'
    return f'{SCHEMA_KEY} "{from_schema}" -> "{to_schema}"'
