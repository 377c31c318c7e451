from __future__ import annotations

from uuid import uuid4

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEASEHOLD_", env_file=".env", extra="ignore")

    app_name: str = "leasehold"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080

    # Instance ID, used as the prefix of generated owner tokens
    instance_id: str = Field(default_factory=lambda: str(uuid4())[:8])

    # Lease store
    store_backend: str = Field(default="memory", validation_alias="LEASE_STORE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_key_prefix: str = "leasehold:"

    # Lock manager (seconds)
    default_ttl: float = Field(default=30.0, gt=0)
    default_max_wait: float = Field(default=10.0, ge=0)
    backoff_base: float = Field(default=0.05, gt=0)
    backoff_max: float = Field(default=1.0, gt=0)

    # Expiry sweeper
    enable_sweeper: bool = True
    sweep_interval: float = Field(default=1.0, gt=0)
    sweep_batch_size: int = Field(default=100, gt=0)

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
