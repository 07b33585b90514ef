"""
Gateway configuration.

Settings are loaded from the environment (and an optional ``.env`` file)
once per process and bound to the application at startup. Resolvers only
ever see them through the per-request context.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Bound environment for a gateway instance.

    Attributes:
        deepseek_api_key: Credential for the chat-completion upstream
        environment: Static label reported by the ``debug`` field
        pokeapi_base_url: Base URL of the Pokémon data API
        deepseek_base_url: Base URL of the chat-completion API
        upstream_timeout: Per-call timeout in seconds (None disables it)
        log_level: Minimum log level name
        log_dir: Directory for JSONL log files (console only if unset)
    """

    model_config = SettingsConfigDict(
        env_prefix="GQLPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    deepseek_api_key: SecretStr | None = Field(default=None, validation_alias="DEEPSEEK_API_KEY")
    environment: str = "production"
    pokeapi_base_url: str = "https://pokeapi.co"
    deepseek_base_url: str = "https://api.deepseek.com"
    upstream_timeout: float | None = 60.0
    log_level: str = "INFO"
    log_dir: Path | None = None

    def secrets(self) -> dict[str, SecretStr | None]:
        """Secrets keyed by the environment variable that provides them."""
        return {"DEEPSEEK_API_KEY": self.deepseek_api_key}

    def secret_values(self) -> list[str]:
        """Raw values of all configured secrets (for log redaction only)."""
        return [s.get_secret_value() for s in self.secrets().values() if s and s.get_secret_value()]


@lru_cache
def get_settings() -> GatewaySettings:
    """Get cached settings instance."""
    return GatewaySettings()
