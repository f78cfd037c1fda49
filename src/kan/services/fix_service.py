"""Service that repairs fixable doctor issues."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from pathlib import Path

from ..config.paths import KanPaths
from ..models import BoardConfig, DiagnosticReport, Issue, IssueCode, ReportSummary
from ..repositories.raw import RawStateReader, write_json, write_toml

logger = logging.getLogger(__name__)


class FixError(Exception):
    """A remediation could not be applied."""


class FixService:
    """
    Applies deterministic repairs to issues found by ``DoctorService``.

    Every remediation re-reads the affected file, makes a minimal change, and
    writes it back. The report is not re-diagnosed afterwards; call
    ``DoctorService.diagnose`` again to confirm.
    """

    def __init__(self, paths: KanPaths, reader: RawStateReader | None = None) -> None:
        self.paths = paths
        self._reader = reader or RawStateReader()
        self._handlers: dict[IssueCode, Callable[[Issue], None]] = {
            IssueCode.MISSING_CARD_FILE: self._fix_missing_card_file,
            IssueCode.ORPHANED_CARD: self._fix_orphaned_card,
            IssueCode.DUPLICATE_CARD_ID: self._fix_duplicate_card_id,
            IssueCode.INVALID_DEFAULT_COLUMN: self._fix_invalid_default_column,
            IssueCode.INVALID_CARD_DISPLAY: self._fix_invalid_card_display,
            IssueCode.INVALID_PARENT_REF: self._fix_invalid_parent_ref,
        }

    def fix(self, report: DiagnosticReport) -> DiagnosticReport:
        """Fix every fixable issue in the report.

        Returns:
            A new report holding the issues that remain (unfixable ones and
            failed fixes with ``fix_error`` set), with ``fixed`` and
            ``fix_failed`` counted in the summary.
        """
        remaining: list[Issue] = []
        fixed = 0
        fix_failed = 0

        for issue in report.issues:
            handler = self._handlers.get(issue.code) if issue.fixable else None
            if handler is None:
                remaining.append(issue)
                continue

            try:
                handler(issue)
            except (OSError, ValueError, FixError) as e:
                logger.warning(
                    "Fix failed for %s (%s/%s): %s",
                    issue.code.value,
                    issue.board,
                    issue.card_id,
                    e,
                )
                remaining.append(dataclasses.replace(issue, fix_error=str(e)))
                fix_failed += 1
                continue

            logger.info("Fixed %s (%s/%s)", issue.code.value, issue.board, issue.card_id)
            fixed += 1

        new_report = DiagnosticReport(
            boards=list(report.boards),
            issues=remaining,
            summary=ReportSummary(fixed=fixed, fix_failed=fix_failed),
        )
        new_report.tally()
        return new_report

    # --- Board config helpers ---

    def _load_board(self, board_name: str) -> tuple[Path, BoardConfig]:
        path = self.paths.board_config_path(board_name)
        return path, BoardConfig.from_raw(self._reader.read_toml(path))

    def _save_board(self, path: Path, config: BoardConfig) -> None:
        write_toml(path, config.to_raw())

    # --- Remediations ---

    def _fix_missing_card_file(self, issue: Issue) -> None:
        path, config = self._load_board(issue.board)
        config.remove_card(issue.card_id)
        self._save_board(path, config)

    def _fix_orphaned_card(self, issue: Issue) -> None:
        path, config = self._load_board(issue.board)
        if config.find_card_column(issue.card_id) is not None:
            return  # Already placed
        column = config.get_default_column()
        if not column:
            raise FixError(f"board {issue.board!r} has no columns to hold card {issue.card_id!r}")
        config.insert_card_in_column(issue.card_id, column, 0)
        self._save_board(path, config)

    def _fix_duplicate_card_id(self, issue: Issue) -> None:
        path, config = self._load_board(issue.board)
        config.dedupe_card(issue.card_id)
        self._save_board(path, config)

    def _fix_invalid_default_column(self, issue: Issue) -> None:
        path, config = self._load_board(issue.board)
        config.default_column = config.columns[0].name if config.columns else ""
        self._save_board(path, config)

    def _fix_invalid_card_display(self, issue: Issue) -> None:
        sub_field = issue.fix_context.get("field", "")
        path, config = self._load_board(issue.board)
        display = config.card_display
        if sub_field == "type_indicator":
            display.type_indicator = ""
        elif sub_field == "badges":
            display.badges = config.valid_badges()
        elif sub_field == "metadata":
            display.metadata = config.valid_metadata()
        else:
            raise FixError(f"unknown card_display field: {sub_field!r}")
        self._save_board(path, config)

    def _fix_invalid_parent_ref(self, issue: Issue) -> None:
        path = self.paths.card_path(issue.board, issue.card_id)
        data = self._reader.read_json(path)
        data.pop("parent", None)
        write_json(path, data)
