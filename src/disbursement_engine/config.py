"""Configuration management for the disbursement engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

LEDGER_BACKENDS = ("memory", "sql")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    ledger_backend: str
    paystack_secret_key: str
    paystack_webhook_secret: str
    paystack_base_url: str
    transfer_currency: str
    gateway_timeout_seconds: float
    status_retry_count: int
    host: str
    port: int
    debug: bool
    log_level: str

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.ledger_backend not in LEDGER_BACKENDS:
            raise ValueError(f"ledger_backend must be one of {LEDGER_BACKENDS}")
        if self.gateway_timeout_seconds <= 0:
            raise ValueError("gateway_timeout_seconds must be positive")
        if self.status_retry_count < 0:
            raise ValueError("status_retry_count cannot be negative")

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./disbursement.db"),
            ledger_backend=os.getenv("LEDGER_BACKEND", "memory").lower(),
            paystack_secret_key=os.getenv("PAYSTACK_SECRET_KEY", ""),
            paystack_webhook_secret=os.getenv("PAYSTACK_WEBHOOK_SECRET", ""),
            paystack_base_url=os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co"),
            transfer_currency=os.getenv("TRANSFER_CURRENCY", "NGN"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "30")),
            status_retry_count=int(os.getenv("STATUS_RETRY_COUNT", "3")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
