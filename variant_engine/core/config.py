# variant_engine/core/config.py
import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Variant Engine"
    API_V1_STR: str = "/api/v1"

    # Product service (variant persistence)
    PRODUCT_SERVICE_URL: str = os.getenv("PRODUCT_SERVICE_URL", "http://product-service:8000")
    GATEWAY_TIMEOUT_SECONDS: float = 5.0

    # Variant editing rules
    MAX_IMAGES_PER_VARIANT: int = 5
    TEMP_ID_PREFIX: str = "temp_"
    CLONE_NAME_SUFFIX: str = " (Copy)"
    DEFAULT_VARIANT_NAME: str = "Default Variant"

    # Editing sessions not touched for this long are dropped (0 disables)
    SESSION_IDLE_TIMEOUT_SECONDS: float = 1800.0

    # Logging / OpenTelemetry
    LOG_LEVEL: str = "INFO"
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "variant-engine"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://otel-collector:4317"
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
