from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FoundrySettings(BaseSettings):
    """Configuration for the fragment foundry command line.

    Resolution order: programmatic, environment vars, .env files, defaults.
    The library itself never reads settings; callers pass a store explicitly.
    """

    registry_path: Path = Field(
        default=Path("~/.agmd"), description="Root of the item registry (one directory per kind)"
    )
    directives_file: str = Field(
        default="directives.md", description="Directive document read by sync/promote/extract"
    )
    output_file: str = Field(default="AGENTS.md", description="Rendered document written by sync")
    heading_level: int = Field(default=3, ge=1, le=6, description="Heading level for item names")
    log_level: str = Field(default="INFO", description="DEBUG | INFO | WARNING | ERROR")
    log_format: str = Field(default="simple", description="simple | detailed")

    model_config = SettingsConfigDict(env_prefix="FRAGMENT_FOUNDRY_", env_file=".env", extra="ignore")

    @property
    def registry_dir(self) -> Path:
        return self.registry_path.expanduser()
