"""Service layer for business logic."""

from .doctor_service import BoardNotFoundError, DoctorService
from .fix_service import FixError, FixService
from .migrate_service import MigrateService, MigrationError, MigrationExecutor, MigrationPlanner

__all__ = [
    "BoardNotFoundError",
    "DoctorService",
    "FixError",
    "FixService",
    "MigrateService",
    "MigrationError",
    "MigrationExecutor",
    "MigrationPlanner",
]
