"""Central environment-driven settings for the dispatcher.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "dispatcher"
    log_level: str = "INFO"
    postgres_dsn: str
    redis_url: str = "redis://redis:6379/0"
    kafka_bootstrap_servers: str = "kafka:9092"
    callbacks_topic: str = "provider.callbacks"
    consume_callbacks: bool = False
    extractor: str = "paypal_ipn"
    account_id_field: str = "payer_id"
    account_lock_timeout_seconds: int = 10
    account_lock_blocking_timeout_seconds: int = 5
    notify_webhook_url: str | None = None
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
