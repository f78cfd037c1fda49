"""Diagnostic report models produced by the doctor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """How critical an issue is."""

    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """Stable identifiers for diagnostic findings."""

    # Data integrity (errors)
    MALFORMED_BOARD_CONFIG = "MALFORMED_BOARD_CONFIG"
    MALFORMED_CARD = "MALFORMED_CARD"
    MISSING_CARD_FILE = "MISSING_CARD_FILE"
    ORPHANED_CARD = "ORPHANED_CARD"
    DUPLICATE_CARD_ID = "DUPLICATE_CARD_ID"

    # Board config (warnings)
    SCHEMA_OUTDATED = "SCHEMA_OUTDATED"
    INVALID_DEFAULT_COLUMN = "INVALID_DEFAULT_COLUMN"
    INVALID_CARD_DISPLAY = "INVALID_CARD_DISPLAY"
    INVALID_LINK_RULE = "INVALID_LINK_RULE"
    INVALID_PATTERN_HOOK = "INVALID_PATTERN_HOOK"
    MISSING_HOOK_FILE = "MISSING_HOOK_FILE"

    # Referential integrity (warnings)
    INVALID_PARENT_REF = "INVALID_PARENT_REF"

    # Global and project config (warnings)
    MALFORMED_GLOBAL_CONFIG = "MALFORMED_GLOBAL_CONFIG"
    GLOBAL_SCHEMA_OUTDATED = "GLOBAL_SCHEMA_OUTDATED"
    MALFORMED_PROJECT_CONFIG = "MALFORMED_PROJECT_CONFIG"
    PROJECT_SCHEMA_OUTDATED = "PROJECT_SCHEMA_OUTDATED"


@dataclass
class Issue:
    """A single diagnostic finding."""

    severity: Severity
    code: IssueCode
    message: str
    board: str = ""
    card_id: str = ""
    fixable: bool = False
    fix_action: str = ""  # suggested fix, shown to the user
    fix_error: str = ""  # populated if a fix was attempted and failed
    fix_context: dict[str, str] = field(default_factory=dict)  # structured data for the fixer

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "severity": self.severity.value,
            "code": self.code.value,
        }
        if self.board:
            data["board"] = self.board
        if self.card_id:
            data["card_id"] = self.card_id
        data["message"] = self.message
        data["fixable"] = self.fixable
        if self.fix_action:
            data["fix_action"] = self.fix_action
        if self.fix_error:
            data["fix_error"] = self.fix_error
        if self.fix_context:
            data["fix_context"] = dict(self.fix_context)
        return data


@dataclass
class BoardDiagnostic:
    """Summary stats for one board, collected regardless of issues."""

    name: str
    card_files: int = 0
    cards_referenced: int = 0
    columns: int = 0


@dataclass
class ReportSummary:
    errors: int = 0
    warnings: int = 0
    fixed: int = 0
    fix_failed: int = 0


@dataclass
class DiagnosticReport:
    """All findings of a doctor run."""

    boards: list[BoardDiagnostic] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    summary: ReportSummary = field(default_factory=ReportSummary)

    @property
    def has_errors(self) -> bool:
        """Whether any error-level issue remains."""
        return self.summary.errors > 0

    @property
    def fixable_issues(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.fixable]

    def tally(self) -> None:
        """Recount error and warning totals from the issue list."""
        self.summary.errors = sum(1 for i in self.issues if i.severity == Severity.ERROR)
        self.summary.warnings = sum(1 for i in self.issues if i.severity == Severity.WARNING)

    def issues_with_code(self, code: IssueCode) -> list[Issue]:
        return [issue for issue in self.issues if issue.code == code]

    def to_dict(self) -> dict[str, Any]:
        """JSON output shape used by ``kan doctor --json``."""
        summary: dict[str, int] = {
            "errors": self.summary.errors,
            "warnings": self.summary.warnings,
            "fixed": self.summary.fixed,
        }
        if self.summary.fix_failed:
            summary["fix_failed"] = self.summary.fix_failed
        return {
            "boards": [
                {
                    "name": b.name,
                    "card_files": b.card_files,
                    "cards_referenced": b.cards_referenced,
                    "columns": b.columns,
                }
                for b in self.boards
            ],
            "issues": [issue.to_dict() for issue in self.issues],
            "summary": summary,
        }
