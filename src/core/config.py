"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, model_validator
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
    app_name: str = Field(default="storefront-checkout", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(default=1_048_576, description="Maximum request body size in bytes")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Commerce backend
    commerce_api_url: str = Field(..., description="Base URL of the commerce backend (e.g. https://shop.example.com)")
    commerce_api_path: str = Field(default="/wp-json/wc/v3", description="REST API prefix on the commerce backend")
    commerce_consumer_key: str = Field(..., description="Commerce API consumer key")
    commerce_consumer_secret: str = Field(..., description="Commerce API consumer secret")
    commerce_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-call timeout for backend requests")

    # Cache invalidation webhook (consumed by the storefront, not by checkout)
    revalidation_secret: str | None = Field(default=None, description="Shared secret for the cache-invalidation webhook")

    # Checkout submission
    checkout_max_retries: int = Field(default=2, ge=0, description="Retries for transient order-creation failures")
    checkout_retry_initial_delay_ms: int = Field(default=100, ge=0, description="Initial backoff delay in milliseconds")
    checkout_retry_max_delay_ms: int = Field(default=1000, ge=0, description="Backoff delay cap in milliseconds")
    checkout_retry_jitter_ms: int = Field(default=50, ge=0, description="Upper bound of random jitter in milliseconds")

    # Store
    store_currency: str = Field(default="EUR", description="Currency recorded on price snapshots")
    prices_include_tax: bool = Field(default=False, description="Whether catalogue prices include tax")
    payment_method: str = Field(default="bacs", description="Payment method id sent with new orders")
    payment_method_title: str = Field(default="Direct Bank Transfer", description="Payment method title sent with new orders")

    @model_validator(mode="after")
    def check_retry_delays(self) -> "Settings":
        """Ensure the backoff cap is never below the initial delay."""
        if self.checkout_retry_max_delay_ms < self.checkout_retry_initial_delay_ms:
            raise ValueError("CHECKOUT_RETRY_MAX_DELAY_MS must be >= CHECKOUT_RETRY_INITIAL_DELAY_MS")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def commerce_base_url(self) -> str:
        """Full REST base URL, without a trailing slash."""
        path = "/" + self.commerce_api_path.strip("/") if self.commerce_api_path.strip("/") else ""
        return self.commerce_api_url.rstrip("/") + path


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
