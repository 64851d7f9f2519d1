"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-orders", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase (document store)
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Signing key JWK (JSON string) for JWT token verification")

    # Authorization
    admin_role: str = Field(default="admin", description="Role claim value granting administrator access")

    # PayPal
    paypal_api_base: str = Field(default="https://api-m.sandbox.paypal.com", description="PayPal REST API base URL")
    paypal_client_id: str = Field(default="", description="PayPal REST client id")
    paypal_client_secret: str = Field(default="", description="PayPal REST client secret")
    paypal_currency: str = Field(default="USD", description="Currency code for all payment intents")
    paypal_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for every PayPal HTTP call")
    paypal_token_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the single retry of a failed access token request",
    )
    paypal_token_expiry_margin_seconds: int = Field(
        default=60,
        ge=0,
        description="Access tokens are treated as expired this many seconds early",
    )

    # Order lifecycle
    strict_order_transitions: bool = Field(
        default=True,
        description="Reject delivery changes out of terminal states, past processing while unpaid, or backwards",
    )

    # Notifications
    notification_feed_limit: int = Field(default=50, ge=1, description="Max notifications returned in a user feed")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def is_paypal_configured(self) -> bool:
        """Check if PayPal credentials are present."""
        return bool(self.paypal_client_id and self.paypal_client_secret)

    @property
    def is_paypal_sandbox(self) -> bool:
        """Check if pointed at the PayPal sandbox."""
        return "sandbox" in self.paypal_api_base


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
