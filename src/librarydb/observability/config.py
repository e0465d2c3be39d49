"""Logfire settings, read from the usual ``LOGFIRE_*`` environment variables."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilityConfig(BaseSettings):
    """Tracing settings for tool and resource spans.

    Spans are only exported when ``LOGFIRE_SEND`` is true, so a bare checkout
    never talks to Logfire.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGFIRE_",
        populate_by_name=True,
        extra="ignore",
    )

    token: str | None = None
    service_name: str = "librarydb"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("LOGFIRE_ENVIRONMENT", "ENVIRONMENT"),
    )

    enabled: bool = True
    console: bool = False
    send_to_logfire: bool = Field(default=False, validation_alias="LOGFIRE_SEND")
    # None means "only in production"
    system_metrics: bool | None = None

    @property
    def collect_system_metrics(self) -> bool:
        if self.system_metrics is None:
            return self.environment == "production"
        return self.system_metrics
