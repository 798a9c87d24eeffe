"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with SMSRELAY_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: The same Settings object drives both processes — the API server
(in-process broadcast source by default) and the standalone listener
(Redis gateway source).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Android's IntentFilter.SYSTEM_HIGH_PRIORITY / SYSTEM_LOW_PRIORITY
SYSTEM_HIGH_PRIORITY = 1000
SYSTEM_LOW_PRIORITY = -1000


class Settings(BaseSettings):
    """All app configuration. Set via SMSRELAY_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Message source: "broadcast" (in-process) or "redis" (gateway channel)
    source: str = "broadcast"

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    deliveries_channel: str = "smsrelay:deliveries"
    events_channel: str = "smsrelay:events"

    # Receiver registration
    receiver_priority: int = SYSTEM_HIGH_PRIORITY
    receiver_exported: bool = False

    # Start listening as soon as the app boots
    autostart: bool = False

    model_config = {"env_prefix": "SMSRELAY_"}

    @model_validator(mode="after")
    def validate_source_settings(self):
        """Reject source/priority combinations the listener can't register with."""
        if self.source not in ("broadcast", "redis"):
            raise ValueError(
                f"SMSRELAY_SOURCE must be 'broadcast' or 'redis', got {self.source!r}"
            )
        if self.source == "redis" and not self.redis_url:
            raise ValueError("SMSRELAY_REDIS_URL is required when SMSRELAY_SOURCE=redis")
        if not SYSTEM_LOW_PRIORITY <= self.receiver_priority <= SYSTEM_HIGH_PRIORITY:
            raise ValueError(
                "SMSRELAY_RECEIVER_PRIORITY must be between "
                f"{SYSTEM_LOW_PRIORITY} and {SYSTEM_HIGH_PRIORITY}"
            )
        return self


# Singleton — import this everywhere
settings = Settings()
