from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "ops-subscriptions"
    api_version: str = "v1"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "ops"
    db_use_nullpool: bool = False
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # OpenTelemetry
    otel_service_name: str = "ops-subscriptions"
    otel_service_version: str = "0.1.0"
    # Spans are only exported when an OTLP endpoint is configured
    otel_exporter_otlp_endpoint: Optional[str] = None
    otel_exporter_otlp_token: Optional[str] = None

    # Firebase Auth (uses Workload Identity on GKE - no API keys needed)
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Billing - Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance_seconds: int = 300
    # Stripe API version pinned for ephemeral keys issued to mobile clients
    stripe_ephemeral_key_api_version: str = "2024-06-20"

    # Stripe price IDs, one per plan and billing period
    stripe_price_starter_monthly: str = ""
    stripe_price_starter_annual: str = ""
    stripe_price_team_monthly: str = ""
    stripe_price_team_annual: str = ""
    stripe_price_business_monthly: str = ""
    stripe_price_business_annual: str = ""

    # Rate limiting (SlowAPI)
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_default: List[str] = ["10/second", "300/minute"]

    # Trial
    trial_period_days: int = 30
    trial_max_seats: int = 10

    # Entitlement thresholds
    renewal_warning_days: int = 7

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return [
            "https://app.opsmanager.io",
            "https://api.opsmanager.io",
        ]


settings = Settings()
