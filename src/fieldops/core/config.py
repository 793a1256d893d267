"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string for the partitioned document store",
    )

    # Migrations
    dry_run: bool = Field(
        default=True,
        description="Run migrations without writing (only an explicit 'false' disables it)",
    )
    live_run_grace_seconds: int = Field(
        default=5,
        description="Seconds to wait before a live migration or rollback starts writing",
        ge=0,
    )
    target_ac_keys: str = Field(
        default="",
        description="Comma-separated AC keys to restrict migration runs to (empty = all registered)",
    )

    @field_validator("dry_run", mode="before")
    @classmethod
    def validate_dry_run(cls, v: object) -> bool:
        if isinstance(v, str):
            return v.strip().lower() != "false"
        if v is None:
            return True
        return bool(v)

    @property
    def target_ac_key_list(self) -> list[int]:
        """Parse the target AC keys string into a list of integers.

        Returns:
            AC keys in the order given; empty when unrestricted.

        Raises:
            ValueError: If an entry is not an integer.
        """
        if not self.target_ac_keys.strip():
            return []
        return [int(k.strip()) for k in self.target_ac_keys.split(",") if k.strip()]

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
