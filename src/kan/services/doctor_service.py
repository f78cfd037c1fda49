"""Service that checks Kan data for consistency problems.

The doctor reads every file through ``RawStateReader`` and the lenient model
entry points, so malformed or outdated data shows up as issues in the report
instead of exceptions. Nothing is written here; see ``FixService``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..config.paths import KanPaths
from ..models import (
    BoardConfig,
    BoardDiagnostic,
    Card,
    DiagnosticReport,
    GlobalConfig,
    Issue,
    IssueCode,
    ProjectConfig,
    Severity,
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
from ..repositories.raw import RawStateReader

logger = logging.getLogger(__name__)

RUN_MIGRATE = "Run 'kan migrate' to upgrade"


class BoardNotFoundError(Exception):
    """The board named in a doctor filter does not exist."""

    def __init__(self, board_name: str) -> None:
        self.board_name = board_name
        super().__init__(f"board not found: {board_name!r}")


class DoctorService:
    """Diagnoses boards, cards, and config files."""

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()

    def diagnose(self, board_filter: str = "") -> DiagnosticReport:
        """
        Check the global config, project config, and boards.

        Args:
            board_filter: Only check this board (empty for all boards)

        Raises:
            BoardNotFoundError: If board_filter names no existing board.
            OSError: If the boards directory cannot be listed.
        """
        report = DiagnosticReport()

        self._check_global_config(report)
        self._check_project_config(report)

        board_names = self.paths.list_boards()
        if board_filter and board_filter not in board_names:
            raise BoardNotFoundError(board_filter)

        for name in board_names:
            if board_filter and name != board_filter:
                continue
            self._check_board(report, name)

        report.tally()
        logger.info(
            "Diagnosed %d boards: %d errors, %d warnings",
            len(report.boards),
            report.summary.errors,
            report.summary.warnings,
        )
        return report

    # --- Global and project config ---

    def _check_global_config(self, report: DiagnosticReport) -> None:
        path = self.paths.global_config_path
        if not path.exists():
            return  # No global config is fine

        raw = self._read_config(report, path, "global config", IssueCode.MALFORMED_GLOBAL_CONFIG)
        if raw is None:
            return
        try:
            GlobalConfig.from_raw(raw)
        except ValidationError as e:
            report.issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code=IssueCode.MALFORMED_GLOBAL_CONFIG,
                    message=f"Invalid global config: {_first_error(e)}",
                )
            )
            return

        self._check_stamp(
            report,
            raw.get(SCHEMA_KEY),
            GLOBAL_SCHEMA_PREFIX,
            CURRENT_GLOBAL_VERSION,
            IssueCode.GLOBAL_SCHEMA_OUTDATED,
            "Global config",
        )

    def _check_project_config(self, report: DiagnosticReport) -> None:
        path = self.paths.project_config_path
        if not path.exists():
            return

        raw = self._read_config(report, path, "project config", IssueCode.MALFORMED_PROJECT_CONFIG)
        if raw is None:
            return
        try:
            ProjectConfig.from_raw(raw)
        except ValidationError as e:
            report.issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code=IssueCode.MALFORMED_PROJECT_CONFIG,
                    message=f"Invalid project config: {_first_error(e)}",
                )
            )
            return

        self._check_stamp(
            report,
            raw.get(SCHEMA_KEY),
            PROJECT_SCHEMA_PREFIX,
            CURRENT_PROJECT_VERSION,
            IssueCode.PROJECT_SCHEMA_OUTDATED,
            "Project config",
        )

    def _read_config(
        self, report: DiagnosticReport, path: Path, label: str, code: IssueCode
    ) -> dict[str, Any] | None:
        try:
            return self._reader.read_toml(path)
        except OSError as e:
            message = f"Cannot read {label}: {e}"
        except ValueError as e:
            message = f"Invalid TOML in {label}: {e}"
        report.issues.append(Issue(severity=Severity.WARNING, code=code, message=message))
        return None

    def _check_stamp(
        self,
        report: DiagnosticReport,
        schema: Any,
        prefix: str,
        current: int,
        code: IssueCode,
        subject: str,
        board: str = "",
    ) -> None:
        """Warn when a schema stamp is missing or differs from the current one."""
        current_schema = format_schema(prefix, current)
        if not isinstance(schema, str) or not schema:
            message = f"{subject} missing schema version, current is {current_schema}"
            fix_action = RUN_MIGRATE
        elif schema == current_schema:
            return
        elif schema_version_or_zero(schema, prefix) > current:
            message = f"{subject} has schema {schema}, newer than supported {current_schema}"
            fix_action = "Upgrade Kan to read this file"
        else:
            message = f"{subject} has schema {schema}, current is {current_schema}"
            fix_action = RUN_MIGRATE
        report.issues.append(
            Issue(
                severity=Severity.WARNING,
                code=code,
                board=board,
                message=message,
                fix_action=fix_action,
            )
        )

    # --- Boards ---

    def _check_board(self, report: DiagnosticReport, board_name: str) -> None:
        diag = BoardDiagnostic(name=board_name)
        report.boards.append(diag)

        config = self._load_board_config(report, board_name)
        if config is None:
            return

        diag.columns = len(config.columns)

        self._check_stamp(
            report,
            config.kan_schema,
            BOARD_SCHEMA_PREFIX,
            CURRENT_BOARD_VERSION,
            IssueCode.SCHEMA_OUTDATED,
            "Board",
            board=board_name,
        )
        self._check_default_column(report, board_name, config)
        self._check_card_display(report, board_name, config)
        self._check_link_rules(report, board_name, config)
        self._check_pattern_hooks(report, board_name, config)

        referenced = self._check_duplicates(report, board_name, config)
        diag.cards_referenced = len(referenced)

        cards_dir = self.paths.cards_dir(board_name)
        try:
            card_ids = self._reader.list_card_ids(cards_dir)
        except OSError as e:
            report.issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code=IssueCode.MALFORMED_BOARD_CONFIG,
                    board=board_name,
                    message=f"Cannot read cards directory: {e}",
                )
            )
            card_ids = []
        diag.card_files = len(card_ids)

        cards: dict[str, Card] = {}
        for card_id in card_ids:
            card = self._check_card_file(report, board_name, card_id, config)
            if card is not None:
                cards[card_id] = card

        card_files = set(card_ids)

        for card_id in referenced:
            if card_id not in card_files:
                report.issues.append(
                    Issue(
                        severity=Severity.ERROR,
                        code=IssueCode.MISSING_CARD_FILE,
                        board=board_name,
                        card_id=card_id,
                        message="Card referenced in column but file not found",
                        fixable=True,
                        fix_action="Remove reference from column",
                    )
                )

        for card_id in card_ids:
            if card_id not in referenced:
                report.issues.append(
                    Issue(
                        severity=Severity.ERROR,
                        code=IssueCode.ORPHANED_CARD,
                        board=board_name,
                        card_id=card_id,
                        message="Card file exists but not in any column",
                        fixable=True,
                        fix_action=f"Add to default column ({config.get_default_column()})",
                    )
                )

        for card_id, card in cards.items():
            if card.parent and card.parent not in card_files:
                report.issues.append(
                    Issue(
                        severity=Severity.WARNING,
                        code=IssueCode.INVALID_PARENT_REF,
                        board=board_name,
                        card_id=card_id,
                        message=f"Parent '{card.parent}' does not exist",
                        fixable=True,
                        fix_action="Clear parent field",
                    )
                )

    def _load_board_config(self, report: DiagnosticReport, board_name: str) -> BoardConfig | None:
        path = self.paths.board_config_path(board_name)
        try:
            return BoardConfig.from_raw(self._reader.read_toml(path))
        except OSError as e:
            message = f"Cannot read board config: {e}"
        except ValidationError as e:
            message = f"Invalid board config: {_first_error(e)}"
        except ValueError as e:
            message = f"Invalid TOML: {e}"
        report.issues.append(
            Issue(
                severity=Severity.ERROR,
                code=IssueCode.MALFORMED_BOARD_CONFIG,
                board=board_name,
                message=message,
            )
        )
        return None

    def _check_default_column(
        self, report: DiagnosticReport, board_name: str, config: BoardConfig
    ) -> None:
        if not config.default_column:
            return  # First column is used
        if config.has_column(config.default_column):
            return

        fix_action = "Clear default_column (no columns exist)"
        if config.columns:
            fix_action = f"Reset to first column ({config.columns[0].name})"
        report.issues.append(
            Issue(
                severity=Severity.WARNING,
                code=IssueCode.INVALID_DEFAULT_COLUMN,
                board=board_name,
                message=f"default_column '{config.default_column}' does not exist",
                fixable=True,
                fix_action=fix_action,
            )
        )

    def _check_card_display(
        self, report: DiagnosticReport, board_name: str, config: BoardConfig
    ) -> None:
        for sub_field, message in config.validate_card_display():
            report.issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code=IssueCode.INVALID_CARD_DISPLAY,
                    board=board_name,
                    message=message,
                    fixable=True,
                    fix_action="Remove invalid reference",
                    fix_context={"field": sub_field},
                )
            )

    def _check_link_rules(
        self, report: DiagnosticReport, board_name: str, config: BoardConfig
    ) -> None:
        for rule in config.link_rules:
            try:
                re.compile(rule.pattern)
            except re.error as e:
                report.issues.append(
                    Issue(
                        severity=Severity.WARNING,
                        code=IssueCode.INVALID_LINK_RULE,
                        board=board_name,
                        message=f"Link rule '{rule.name}' has invalid regex: {e}",
                    )
                )

    def _check_pattern_hooks(
        self, report: DiagnosticReport, board_name: str, config: BoardConfig
    ) -> None:
        for hook in config.pattern_hooks:
            try:
                re.compile(hook.pattern_title)
            except re.error as e:
                report.issues.append(
                    Issue(
                        severity=Severity.WARNING,
                        code=IssueCode.INVALID_PATTERN_HOOK,
                        board=board_name,
                        message=f"Pattern hook '{hook.name}' has invalid regex: {e}",
                    )
                )

            executable = self._hook_executable(hook.command)
            if executable is not None and not executable.exists():
                report.issues.append(
                    Issue(
                        severity=Severity.WARNING,
                        code=IssueCode.MISSING_HOOK_FILE,
                        board=board_name,
                        message=(
                            f"Pattern hook '{hook.name}' references non-existent file: {executable}"
                        ),
                    )
                )

    def _hook_executable(self, command: str) -> Path | None:
        """Path of a hook's executable, if the command names a file.

        Bare command names (resolved through PATH) return None.
        """
        parts = command.split()
        if not parts:
            return None
        executable = parts[0]
        if executable.startswith("~/"):
            executable = os.path.expanduser(executable)
        if executable.startswith("./"):
            return self.paths.project_root / executable[2:]
        if os.path.isabs(executable):
            return Path(executable)
        return None

    def _check_duplicates(
        self, report: DiagnosticReport, board_name: str, config: BoardConfig
    ) -> dict[str, str]:
        """Report card IDs listed more than once.

        Returns:
            Referenced card IDs mapped to the first column holding them, in
            column then card order.
        """
        referenced: dict[str, str] = {}
        duplicates: dict[str, list[str]] = {}
        for column in config.columns:
            for card_id in column.card_ids:
                if card_id in referenced:
                    duplicates.setdefault(card_id, [referenced[card_id]]).append(column.name)
                else:
                    referenced[card_id] = column.name

        for card_id, columns in duplicates.items():
            report.issues.append(
                Issue(
                    severity=Severity.ERROR,
                    code=IssueCode.DUPLICATE_CARD_ID,
                    board=board_name,
                    card_id=card_id,
                    message=f"Card appears in multiple columns: {', '.join(columns)}",
                    fixable=True,
                    fix_action=f"Keep in first column ({columns[0]}), remove from others",
                )
            )
        return referenced

    def _check_card_file(
        self,
        report: DiagnosticReport,
        board_name: str,
        card_id: str,
        config: BoardConfig,
    ) -> Card | None:
        """Decode one card file, reporting malformed or outdated content."""
        path = self.paths.card_path(board_name, card_id)
        message = ""
        data: dict[str, Any] = {}
        try:
            data = self._reader.read_json(path)
        except OSError as e:
            message = f"Cannot read card file: {e}"
        except ValueError as e:
            message = f"Invalid JSON: {e}"

        card = None
        if not message:
            try:
                card = Card.from_raw(data, config.custom_fields)
            except ValidationError as e:
                message = f"Invalid card: {_first_error(e)}"

        if card is None:
            report.issues.append(
                Issue(
                    severity=Severity.ERROR,
                    code=IssueCode.MALFORMED_CARD,
                    board=board_name,
                    card_id=card_id,
                    message=message,
                )
            )
            return None

        problems: list[str] = []
        version = card_version_or_zero(data.get(CARD_VERSION_KEY))
        if CARD_VERSION_KEY not in data:
            problems.append(
                f"missing version ({CARD_VERSION_KEY}), current is {CURRENT_CARD_VERSION}"
            )
        elif version != CURRENT_CARD_VERSION:
            problems.append(
                f"has version {data[CARD_VERSION_KEY]}, current is {CURRENT_CARD_VERSION}"
            )
        if LEGACY_COLUMN_KEY in data:
            problems.append(f"has legacy '{LEGACY_COLUMN_KEY}' field")
        if problems:
            report.issues.append(
                Issue(
                    severity=Severity.WARNING,
                    code=IssueCode.SCHEMA_OUTDATED,
                    board=board_name,
                    card_id=card_id,
                    message="Card " + "; ".join(problems),
                    fix_action=RUN_MIGRATE,
                )
            )
        return card


def _first_error(error: ValidationError) -> str:
    """Short form of a pydantic error: location and message of the first problem."""
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"{location}: {first.get('msg', '')}"
    return str(first.get("msg", ""))
