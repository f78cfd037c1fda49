"""Migrate command for upgrading data to the current schema."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config import KanPaths
from ..models import GlobalConfig, MigrationPlan, MigrationResult
from ..repositories import RawStateReader
from ..services import MigrateService, MigrationError
from .output import error, header, hint, info, success, warning

logger = logging.getLogger(__name__)


def run_migrate(paths: KanPaths, dry_run: bool = False) -> int:
    """
    Migrate the current project's data and the global config.

    Args:
        paths: Path resolver for the project
        dry_run: Show what would change without modifying files

    Returns:
        Exit code (0 = success, 1 = error)
    """
    if not paths.kan_root.exists():
        error(f"No Kan data found at {paths.kan_root} (run 'kan init' first)")
        return 1

    service = MigrateService(paths)
    try:
        plan = service.plan()
    except MigrationError as e:
        error(str(e))
        return 1

    _print_plan_errors(plan)

    if not plan.has_changes():
        success("Everything is up to date. No migration needed.")
        return 1 if plan.errors else 0

    if dry_run:
        header("Migration plan (dry run):")
        print()

    result = service.execute(plan, dry_run=dry_run)
    _print_result(result)

    if result.has_errors:
        print()
        error(f"Migration finished with {len(result.errors)} error(s)")
        return 1

    if not dry_run:
        print()
        success("Migration complete.")
        hint("Tip: Commit this migration separately so bulk changes are easy to skip in blame.")
    return 1 if plan.errors else 0


class Outcome(str, Enum):
    MIGRATED = "migrated"
    UP_TO_DATE = "up to date"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProjectEntry:
    name: str
    path: Path
    data_location: str = ""


def run_migrate_all(global_config_path: Path, dry_run: bool = False) -> int:
    """
    Migrate the global config once, then every project registered in it.

    Args:
        global_config_path: Path to the global config.toml
        dry_run: Show what would change without modifying files

    Returns:
        Exit code (0 = success, 1 = a project failed)
    """
    if not global_config_path.exists():
        error("No global config found")
        return 1

    try:
        raw = RawStateReader().read_toml(global_config_path)
        global_config = GlobalConfig.from_raw(raw)
    except (OSError, ValueError) as e:
        error(f"Failed to read global config: {e}")
        return 1

    projects = _build_project_list(global_config)
    if not projects:
        info("No projects found in global config.")
        return 0

    _migrate_global_once(global_config_path, dry_run)

    counts = dict.fromkeys(Outcome, 0)
    for project in projects:
        outcome = _migrate_project(project, global_config_path, dry_run)
        counts[outcome] += 1

    parts = [
        f"{counts[Outcome.MIGRATED]} {'need migration' if dry_run else 'migrated'}",
        f"{counts[Outcome.UP_TO_DATE]} up to date",
    ]
    if counts[Outcome.SKIPPED]:
        parts.append(f"{counts[Outcome.SKIPPED]} skipped")
    if counts[Outcome.FAILED]:
        parts.append(f"{counts[Outcome.FAILED]} failed")
    summary = ", ".join(parts)

    print()
    if counts[Outcome.FAILED]:
        error(f"Migration finished with errors: {summary}.")
        return 1
    if dry_run:
        success(f"Dry run complete: {summary}.")
    else:
        success(f"Migration complete: {summary}.")
    return 0


def _build_project_list(config: GlobalConfig) -> list[ProjectEntry]:
    """Registered repos, named by their project alias where one exists."""
    path_to_name: dict[str, str] = {}
    for name, path in config.projects.items():
        existing = path_to_name.get(path)
        if existing is None or name < existing:
            path_to_name[path] = name

    projects = [
        ProjectEntry(
            name=path_to_name.get(repo_path, repo_path),
            path=Path(repo_path),
            data_location=repo_config.data_location,
        )
        for repo_path, repo_config in config.repos.items()
    ]
    return sorted(projects, key=lambda p: p.name)


def _migrate_global_once(global_config_path: Path, dry_run: bool) -> None:
    service = MigrateService(KanPaths(Path(), global_config_path=global_config_path))
    plan = service.plan_global_only()
    if plan.global_config is None or not plan.global_config.needs_migration:
        if plan.global_config is not None and plan.global_config.error:
            warning(plan.global_config.error)
        else:
            info("Global config: up to date")
        return

    result = service.execute(plan, dry_run=dry_run)
    _print_result(result)


def _migrate_project(project: ProjectEntry, global_config_path: Path, dry_run: bool) -> Outcome:
    title = f"Project: {project.name} ({project.path})"

    if not project.path.exists():
        warning(f'Skipping "{project.name}" ({project.path}) - path not found')
        return Outcome.SKIPPED

    paths = KanPaths(project.path, project.data_location, global_config_path)
    service = MigrateService(paths)
    try:
        plan = service.plan_boards_only()
    except MigrationError as e:
        warning(f'Skipping "{project.name}" - failed to plan: {e}')
        return Outcome.FAILED

    if not plan.has_changes():
        print()
        info(f"{title}: up to date")
        return Outcome.UP_TO_DATE

    print()
    header(title)
    _print_board_summary(plan)
    if dry_run:
        return Outcome.MIGRATED

    result = service.execute(plan, dry_run=False)
    _print_result(result)
    if result.has_errors:
        return Outcome.FAILED
    return Outcome.MIGRATED


def _print_board_summary(plan: MigrationPlan) -> None:
    for board in plan.boards:
        if not board.has_changes:
            continue
        parts: list[str] = []
        if board.needs_migration:
            parts.append(f"config {board.from_schema or '(missing)'} -> {board.to_schema}")
        if board.cards_to_migrate:
            parts.append(f"{len(board.cards_to_migrate)} cards")
        print(f'  Board "{board.board_name}": {", ".join(parts)}')


def _print_plan_errors(plan: MigrationPlan) -> None:
    for message in plan.errors:
        warning(f"Cannot migrate {message}")


def _print_result(result: MigrationResult) -> None:
    for action in result.actions:
        if result.dry_run:
            info(action)
        else:
            success(action)
    for message in result.errors:
        error(message)
