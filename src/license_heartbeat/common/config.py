"""License heartbeat configuration via pydantic-settings."""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HeartbeatSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KEYGEN_")

    account_id: str = ""
    api_url: str = "https://api.keygen.sh"

    # Verbose error reporting; the bare DEBUG variable is honoured too.
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("KEYGEN_DEBUG", "DEBUG", "debug"),
    )
    log_level: str = "INFO"

    # Heartbeat cadence
    heartbeat_safety_margin: int = 30  # seconds subtracted from the server interval
    heartbeat_min_period: float = 1.0  # seconds

    @property
    def account_url(self) -> str:
        """Base URL for all account-scoped API requests."""
        return f"{self.api_url.rstrip('/')}/v1/accounts/{self.account_id}"

    def validate_required(self) -> None:
        """Raise if settings needed to reach the licensing API are missing."""
        if not self.account_id:
            raise RuntimeError("Environment variable KEYGEN_ACCOUNT_ID is required")


@lru_cache
def get_settings() -> HeartbeatSettings:
    settings = HeartbeatSettings()
    settings.validate_required()
    return settings
