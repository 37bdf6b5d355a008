"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Database holding the admin-authored catalog
    database_url: str = "sqlite:///./menu_pricing.db"

    # Environment
    environment: str = "development"
    debug: bool = True
    # Overrides the debug-derived level when set (DEBUG, INFO, WARNING...)
    log_level: str = ""

    # IANA zone used by the default clock; daily specials and validity
    # windows are evaluated against local wall time
    timezone: str = "America/Guatemala"

    # Defaults used by the CLI when no zone/service type is given
    default_zone: str = "capital"
    default_service_type: str = "pickup"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_settings(self) -> list[str]:
        """
        Validate that the configuration is usable in production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.default_zone not in {"capital", "interior"}:
            errors.append(f"DEFAULT_ZONE must be 'capital' or 'interior', got '{self.default_zone}'")

        if self.default_service_type not in {"pickup", "delivery"}:
            errors.append(
                f"DEFAULT_SERVICE_TYPE must be 'pickup' or 'delivery', got '{self.default_service_type}'"
            )

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")

            if self.database_url.startswith("sqlite"):
                errors.append("DATABASE_URL must point to a server database in production")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

DATABASE_URL = settings.database_url
