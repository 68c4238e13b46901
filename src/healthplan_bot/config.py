"""Configuration for the bot using pydantic-settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from healthplan_bot.exceptions import MissingConfigurationError

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/healthplan_bot/ -> project root

DEFAULT_DEPLOYMENT = "gpt-35-turbo-16k"
DEFAULT_API_VERSION = "2024-02-15-preview"
DEFAULT_SEARCH_INDEX = "healthplan"

REQUIRED_VARIABLES = (
    "AZURE_OPENAI_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_SEARCH_KEY",
    "AZURE_SEARCH_ENDPOINT",
)


@dataclass(frozen=True)
class BotAppConfig:
    """App registration in the attribute names the Bot Framework SDK reads."""

    APP_ID: str
    APP_PASSWORD: str
    APP_TYPE: str
    APP_TENANTID: str


class Settings(BaseSettings):
    """All bot settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Azure OpenAI: Chat model
    # ------------------------------------------------------------------
    azure_openai_key: str = ""
    azure_openai_endpoint: str = ""
    azure_openai_deployment: str = DEFAULT_DEPLOYMENT
    azure_openai_api_version: str = DEFAULT_API_VERSION

    # ------------------------------------------------------------------
    # Azure AI Search: data source for "on your data" completions
    # ------------------------------------------------------------------
    azure_search_endpoint: str = ""
    azure_search_key: str = ""
    azure_search_index: str = DEFAULT_SEARCH_INDEX

    # ------------------------------------------------------------------
    # Bot identity: leave BOT_ID/BOT_PASSWORD empty for the Teams Test Tool
    # ------------------------------------------------------------------
    bot_id: str = ""
    bot_password: str = ""
    bot_app_type: str = "MultiTenant"
    bot_tenant_id: str = ""

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------
    prompts_folder: Path = _PACKAGE_DIR / "prompts"

    # ------------------------------------------------------------------
    # Server / logging
    # ------------------------------------------------------------------
    port: int = 3978
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------------
    # Observability: "off", "logfire" or "otel"
    # ------------------------------------------------------------------
    observability: str = "off"
    otel_service_name: str = "healthplan-bot"
    otel_exporter_otlp_endpoint: str = "http://localhost:4318"
    otel_console_exporter: bool = False

    # ------------------------------------------------------------------
    # Empty optional values fall back to their defaults
    # ------------------------------------------------------------------
    @model_validator(mode="after")
    def _apply_defaults(self) -> "Settings":
        if not self.azure_openai_deployment:
            self.azure_openai_deployment = DEFAULT_DEPLOYMENT
        if not self.azure_openai_api_version:
            self.azure_openai_api_version = DEFAULT_API_VERSION
        if not self.azure_search_index:
            self.azure_search_index = DEFAULT_SEARCH_INDEX
        return self

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def missing_variables(self) -> list[str]:
        """Return the names of required variables that are unset or empty."""
        values = {
            "AZURE_OPENAI_KEY": self.azure_openai_key,
            "AZURE_OPENAI_ENDPOINT": self.azure_openai_endpoint,
            "AZURE_SEARCH_KEY": self.azure_search_key,
            "AZURE_SEARCH_ENDPOINT": self.azure_search_endpoint,
        }
        return [name for name in REQUIRED_VARIABLES if not values[name]]

    def bot_app_config(self) -> BotAppConfig:
        """Credentials for the channel adapter (empty app id = Teams Test Tool)."""
        return BotAppConfig(
            APP_ID=self.bot_id,
            APP_PASSWORD=self.bot_password,
            APP_TYPE=self.bot_app_type,
            APP_TENANTID=self.bot_tenant_id,
        )

    def validate_runtime(self) -> None:
        """Check that all required values are present.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        missing = self.missing_variables()
        if missing:
            raise MissingConfigurationError(
                "Missing environment variables - please check that "
                f"{', '.join(REQUIRED_VARIABLES)} are all set. "
                f"Missing: {', '.join(missing)}",
                missing=missing,
            )


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()
