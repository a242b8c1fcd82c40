"""
Configuration module for the salon scheduling service.
Loads environment variables and provides typed configuration.

Business rules (opening hours, booking limits) are not environment
configuration: they live in the ``business_settings`` table and are read
fresh for every validation through :mod:`scheduling.configuration`.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # service_role key, bypasses RLS

    # Scheduling
    timezone: str = "Europe/Prague"  # Reference timezone for hours and calendar days
    slot_increment_minutes: int = 30
    max_suggestions: int = 5

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"
    max_request_size_bytes: int = 64 * 1024

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Whether the service runs in the production environment."""
        return self.environment.lower() == "production"

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = ["supabase_url", "supabase_key"]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Check for placeholder values
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )

        if self.slot_increment_minutes < 1:
            raise ValueError(
                f"SLOT_INCREMENT_MINUTES must be >= 1, got {self.slot_increment_minutes}"
            )
        if self.max_suggestions < 1:
            raise ValueError(
                f"MAX_SUGGESTIONS must be >= 1, got {self.max_suggestions}"
            )


# Global settings instance
settings = Settings()
