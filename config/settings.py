"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """All configuration for the statement normalizer.

    Values are loaded from ``STATEMENT_*`` environment variables or the
    .env file automatically.
    """

    # Canonical record limits
    payee_max_length: int = Field(default=100, description="Max payee length before truncation")
    memo_max_length: int = Field(default=200, description="Max memo length before truncation")

    # Parsing heuristics
    year_pivot_window: int = Field(
        default=20,
        description="Two-digit years above (current year % 100) + window go to the previous century",
    )
    header_sniff_lines: int = Field(
        default=30, description="Lines scanned for a known header when the dialect is unknown"
    )
    axis_recovery_window: int = Field(
        default=20, description="Lines after the Axis header scanned by the recovery pass"
    )

    # Export
    preview_rows: int = Field(default=5, description="Rows shown in the text preview")
    export_date_format: str = Field(
        default="%Y-%m-%d", description="strftime format for dates in the CSV extract"
    )

    log_level: str = Field(default="INFO", description="Logging level for the CLI")

    model_config = {
        "env_prefix": "STATEMENT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def get_settings() -> Settings:
    """Load and return application settings."""
    return Settings()
