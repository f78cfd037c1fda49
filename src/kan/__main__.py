"""CLI entry point for kan."""

import argparse
import logging
from pathlib import Path

from . import __version__
from .config import KanPaths, Settings
from .config.paths import default_global_config_path
from .logging import setup_logging
from .models import GlobalConfig
from .repositories import RawStateReader

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="kan",
        description="Schema migration and consistency checks for Kan boards",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Path to project root containing .kan (default: current directory)",
    )
    parser.add_argument(
        "--data-location",
        default=None,
        help="Custom data directory relative to the project root (default: .kan)",
    )
    parser.add_argument(
        "--global-config",
        type=Path,
        default=None,
        help="Path to the global config.toml (default: ~/.config/kan/config.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Migrate data to the current schema version")
    migrate.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be changed without modifying files",
    )
    migrate.add_argument(
        "--all",
        action="store_true",
        dest="all_projects",
        help="Migrate all projects registered in the global config",
    )

    doctor = subparsers.add_parser(
        "doctor",
        help="Check board data for consistency issues (exit 1 if errors found)",
    )
    doctor.add_argument(
        "--fix",
        action="store_true",
        help="Apply automatic fixes for issues with deterministic solutions",
    )
    doctor.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what fixes would be applied without making changes",
    )
    doctor.add_argument(
        "-b",
        "--board",
        default="",
        help="Check only a specific board (default: all)",
    )
    doctor.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the report as JSON",
    )

    return parser.parse_args(argv)


def build_paths(settings: Settings) -> KanPaths:
    """Resolve data paths, using the global config's repo entry when no location is given."""
    global_config_path = settings.global_config or default_global_config_path()
    data_location = settings.data_location
    if not data_location and global_config_path.exists():
        try:
            raw = RawStateReader().read_toml(global_config_path)
            repo = GlobalConfig.from_raw(raw).get_repo_config(
                str(settings.project_root.resolve())
            )
        except (OSError, ValueError) as e:
            logger.debug("Ignoring unreadable global config %s: %s", global_config_path, e)
        else:
            if repo is not None:
                data_location = repo.data_location
    return KanPaths(settings.project_root, data_location, global_config_path)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.project_root:
        settings_kwargs["project_root"] = args.project_root
    if args.data_location:
        settings_kwargs["data_location"] = args.data_location
    if args.global_config:
        settings_kwargs["global_config"] = args.global_config
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)

    setup_logging(settings.verbose, settings.log_file)

    paths = build_paths(settings)

    if args.command == "migrate":
        from .cli.migrate import run_migrate, run_migrate_all

        if args.all_projects:
            exit_code = run_migrate_all(paths.global_config_path, dry_run=args.dry_run)
        else:
            exit_code = run_migrate(paths, dry_run=args.dry_run)
        raise SystemExit(exit_code)

    from .cli.doctor import run_doctor

    exit_code = run_doctor(
        paths,
        board=args.board,
        fix=args.fix,
        dry_run=args.dry_run,
        json_output=args.json_output,
    )
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
