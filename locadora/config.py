"""
Configuration settings for the rental API.

Values come from the environment (or a local ``.env`` file) through
Pydantic settings; ``create_app`` copies them into ``app.config``.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    secret_key: str = "dev-secret-change-me"
    app_env: str = "production"
    locadora_data_path: Optional[str] = None
    log_level: str = "INFO"
    # unset: exposed only in development
    expose_error_details: Optional[bool] = None

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    def flask_config(self) -> dict:
        expose = self.expose_error_details
        if expose is None:
            expose = self.app_env == "development"
        return {
            "SECRET_KEY": self.secret_key,
            "APP_ENV": self.app_env,
            "DATA_PATH": self.locadora_data_path,
            "LOG_LEVEL": self.log_level,
            "EXPOSE_ERROR_DETAILS": expose,
        }


def get_settings() -> Settings:
    """Read the settings afresh, so environment changes are picked up."""
    return Settings()
