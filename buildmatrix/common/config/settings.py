from functools import lru_cache
from typing import Optional, List

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from buildmatrix.common.config.constants import (
    BASELINE_CONFIGURE_FLAGS,
    DEFAULT_BOOTSTRAP_COMMAND,
    DEFAULT_CONFIGURE_COMMAND,
    DEFAULT_MAKE_COMMAND,
    DEFAULT_TEST_LOG_PATH,
    LOG_EXCERPT_MAX_CHARS,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUILDMATRIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit logs as JSON lines")
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for the rotating log file and per-variant phase logs"
    )

    configure_command: str = Field(default=DEFAULT_CONFIGURE_COMMAND)
    bootstrap_command: Optional[str] = Field(
        default=DEFAULT_BOOTSTRAP_COMMAND,
        description="Run before configure when the configure script is missing"
    )
    make_command: str = Field(default=DEFAULT_MAKE_COMMAND)
    baseline_configure_flags: List[str] = Field(
        default_factory=lambda: list(BASELINE_CONFIGURE_FLAGS)
    )
    test_log_path: str = Field(default=DEFAULT_TEST_LOG_PATH)
    log_excerpt_max_chars: int = Field(default=LOG_EXCERPT_MAX_CHARS, ge=256)
    process_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    library_name: Optional[str] = Field(
        default=None,
        description="Library name for ABI/API reports, defaults to the project directory name"
    )

    browser: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("BROWSER", "BUILDMATRIX_BROWSER"),
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("configure_command", "make_command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Command must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_bootstrap(self) -> "Settings":
        if self.bootstrap_command is not None and not self.bootstrap_command.strip():
            self.bootstrap_command = None
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
