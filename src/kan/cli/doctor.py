"""Doctor command for checking and repairing board data."""

import json
import logging

from ..config import KanPaths
from ..models import DiagnosticReport, Issue, Severity
from ..services import BoardNotFoundError, DoctorService, FixService
from .output import RED, YELLOW, colorize, error, header, hint, info, success

logger = logging.getLogger(__name__)


def run_doctor(
    paths: KanPaths,
    board: str = "",
    fix: bool = False,
    dry_run: bool = False,
    json_output: bool = False,
) -> int:
    """
    Diagnose (and optionally fix) consistency issues.

    Args:
        paths: Path resolver for the project
        board: Only check this board (empty for all)
        fix: Apply automatic fixes for fixable issues
        dry_run: Show which fixes would be applied without making changes
        json_output: Print the report as JSON

    Returns:
        Exit code (0 = healthy, 1 = errors remain or the check could not run)
    """
    if fix and dry_run:
        error("--fix and --dry-run cannot be used together")
        return 1

    if not paths.kan_root.exists():
        error(f"No Kan data found at {paths.kan_root} (run 'kan init' first)")
        return 1

    try:
        report = DoctorService(paths).diagnose(board)
    except BoardNotFoundError as e:
        boards = paths.list_boards()
        available = ", ".join(boards) if boards else "no boards exist"
        error(f"{e} (available: {available})")
        return 1
    except OSError as e:
        error(f"Cannot read boards: {e}")
        return 1

    if fix and report.issues:
        report = FixService(paths).fix(report)

    if json_output:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report, did_fix=fix, dry_run=dry_run)

    return 1 if report.has_errors else 0


def print_report(report: DiagnosticReport, did_fix: bool = False, dry_run: bool = False) -> None:
    """Render a diagnostic report for the terminal."""
    for board in report.boards:
        header(f'Checking board "{board.name}"...')
        print(f"  Cards: {board.card_files} files, {board.cards_referenced} referenced")
        print(f"  Columns: {board.columns}")
        print()

    if not report.boards and not report.issues:
        info("No boards found")
        return

    fixed = report.summary.fixed if did_fix else 0
    if fixed:
        success(f"Fixed {fixed} issue(s)")
        print()

    if dry_run and report.fixable_issues:
        info(f"Dry run: {len(report.fixable_issues)} issue(s) would be fixed")
        print()

    if not report.issues:
        success("All issues resolved" if fixed else "No issues found")
        return

    # Errors first, then warnings
    for issue in report.issues:
        if issue.severity == Severity.ERROR:
            _print_issue(issue)
    for issue in report.issues:
        if issue.severity == Severity.WARNING:
            _print_issue(issue)

    parts: list[str] = []
    if report.summary.errors:
        parts.append(colorize(f"{report.summary.errors} error(s)", RED))
    if report.summary.warnings:
        parts.append(colorize(f"{report.summary.warnings} warning(s)", YELLOW))
    if fixed:
        parts.append(f"{fixed} fixed")
    if report.summary.fix_failed:
        parts.append(colorize(f"{report.summary.fix_failed} fix failed", RED))
    print()
    print(f"Summary: {', '.join(parts)}")

    if not did_fix and report.fixable_issues:
        print()
        if dry_run:
            info("Run 'kan doctor --fix' to apply these fixes")
        else:
            info("Run 'kan doctor --fix' to apply automatic fixes")


def _print_issue(issue: Issue) -> None:
    color = RED if issue.severity == Severity.ERROR else YELLOW
    location = ""
    if issue.board:
        location = f" {issue.board}"
        if issue.card_id:
            location += f"/{issue.card_id}"
    print(f"{colorize(f'[{issue.code.value}]', color)}{location}: {issue.message}")
    if issue.fix_error:
        hint(f"Fix failed: {issue.fix_error}")
    elif issue.fix_action:
        prefix = "Fix" if issue.fixable else "Action"
        hint(f"{prefix}: {issue.fix_action}")
