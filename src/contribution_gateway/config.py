"""Configuration management for the Contribution Gateway."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StripeSettings(BaseSettings):
    """Stripe gateway credentials and call settings."""

    secret_key: str = Field(default="", description="Stripe secret API key")
    publishable_key: str = Field(default="", description="Stripe publishable key")
    timeout_seconds: int = Field(default=30, description="Per-call request timeout")
    livemode: bool = Field(default=False, description="Live (True) or test (False) mode")


class RoutingSettings(BaseSettings):
    """Retry destinations used when a payment is bounced back to the payer."""

    site_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the contribution site"
    )
    event_retry_route: str = Field(
        default="civicrm/event/register",
        description="Route for event registration retries"
    )
    contribution_retry_route: str = Field(
        default="civicrm/contribute/transact",
        description="Route for contribution/membership retries"
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./contribution_gateway.db",
        description="Mirror store connection string"
    )

    # Application
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # Default gateway
    processor_name: str = Field(default="stripe", description="Registered gateway name")

    stripe: StripeSettings = Field(default_factory=StripeSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
    )


# Global settings instance
settings = Settings()


class ProcessorConfig(BaseModel):
    """
    Configuration for one payment processor instance.

    Live/test mode is carried here and threaded through every call rather
    than read from shared state.
    """

    name: str = "stripe"
    secret_key: str = ""
    publishable_key: str = ""
    timeout_seconds: int = 30
    is_live: bool = False

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "ProcessorConfig":
        """Build a processor config from application settings."""
        source = source or settings
        return cls(
            name=source.processor_name,
            secret_key=source.stripe.secret_key,
            publishable_key=source.stripe.publishable_key,
            timeout_seconds=source.stripe.timeout_seconds,
            is_live=source.stripe.livemode,
        )


def check_config(config: ProcessorConfig) -> list[str]:
    """
    Check that a processor has the credentials it needs.

    Returns:
        Human-readable problems; an empty list means the config is usable.
    """
    problems: list[str] = []
    if not config.secret_key:
        problems.append('The "Secret Key" is not set in the Stripe Payment Processor settings.')
    if not config.publishable_key:
        problems.append('The "Publishable Key" is not set in the Stripe Payment Processor settings.')
    return problems
