"""Application settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    project_root: Path = Field(
        default=Path(),
        description="Path to project root containing the .kan directory",
    )

    data_location: str = Field(
        default="",
        description="Custom data directory relative to project root (default: .kan)",
    )

    global_config: Path | None = Field(
        default=None,
        description="Override path to the global config.toml",
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    model_config = {
        "env_prefix": "KAN_",
    }
