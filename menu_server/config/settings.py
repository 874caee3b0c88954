import os

from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    # Database
    database_url: str = "duckdb://./data/kindergarten_menu.duckdb"

    # Operator tokens
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7 days

    # API
    api_title: str = "Kindergarten Menu API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # Menu planning
    default_child_count: int = 30
    apply_failure_mode: Literal["best_effort", "fail_fast"] = "best_effort"
    month_horizon_days: int = 30

    debug: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False


def load_settings(environment: str = None) -> Settings:
    """Build settings for the named environment (MENU_ENV when omitted)."""
    environment = (environment or os.getenv("MENU_ENV") or "").lower()
    if environment in ("dev", "development"):
        from .environments.development import DevelopmentSettings
        return DevelopmentSettings()
    return Settings()


# Global settings instance, profile chosen by MENU_ENV
settings = load_settings()
