"""Service configuration — flow sources, session limits and telemetry endpoints."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "DIAG_"}

    # Flow catalog
    flows_dir: str = "flows"
    strict_flow_validation: bool = True

    # Sessions
    session_ttl_seconds: int = 1800
    max_sessions: int = 10000

    # Telemetry
    service_name: str = "diagnostics"
    service_version: str = "1.0.0"
    log_level: str = "INFO"
    otel_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"

    # Server
    host: str = "0.0.0.0"
    port: int = 8100


settings = Settings()
