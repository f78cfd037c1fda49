"""Data models."""

from .board import (
    BoardConfig,
    CardDisplay,
    Column,
    CustomFieldOption,
    CustomFieldSchema,
    FieldType,
    LinkRule,
    PatternHook,
)
from .card import (
    Card,
    Comment,
    CustomFieldValue,
    DateValue,
    EnumValue,
    RawValue,
    ReservedFieldPrefixError,
    SetValue,
    StringValue,
)
from .diagnostic import (
    BoardDiagnostic,
    DiagnosticReport,
    Issue,
    IssueCode,
    ReportSummary,
    Severity,
)
from .global_config import GlobalConfig, RepoConfig
from .migration import (
    BoardMigration,
    CardMigration,
    ConfigMigration,
    MigrationPlan,
    MigrationResult,
)
from .project import FaviconConfig, ProjectConfig
from .version import SchemaVersionError

__all__ = [
    "BoardConfig",
    "BoardDiagnostic",
    "BoardMigration",
    "Card",
    "CardDisplay",
    "CardMigration",
    "Column",
    "Comment",
    "ConfigMigration",
    "CustomFieldOption",
    "CustomFieldSchema",
    "CustomFieldValue",
    "DateValue",
    "DiagnosticReport",
    "EnumValue",
    "FaviconConfig",
    "FieldType",
    "GlobalConfig",
    "Issue",
    "IssueCode",
    "LinkRule",
    "MigrationPlan",
    "MigrationResult",
    "PatternHook",
    "ProjectConfig",
    "RawValue",
    "RepoConfig",
    "ReportSummary",
    "ReservedFieldPrefixError",
    "SchemaVersionError",
    "SetValue",
    "Severity",
    "StringValue",
]
