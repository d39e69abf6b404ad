"""
Kline Fetcher — Configuration
All tunable parameters in one place.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from exchange.errors import InputValidationError


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise InputValidationError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class ExchangeConfig:
    testnet: bool = False
    base_url_mainnet: str = "https://api.bybit.com"
    base_url_testnet: str = "https://api-testnet.bybit.com"
    base_url_override: str = ""
    request_timeout_sec: float = 10.0

    @property
    def base_url(self) -> str:
        if self.base_url_override:
            return self.base_url_override
        return self.base_url_testnet if self.testnet else self.base_url_mainnet


@dataclass
class FetchConfig:
    per_call_limit: int = 1000          # Bybit max records per kline call
    request_spacing_ms: int = 100       # Min gap after each request completes
    max_retries: int = 3                # Extra attempts per chunk on transient errors

    @property
    def request_spacing_sec(self) -> float:
        return self.request_spacing_ms / 1000


@dataclass
class AppConfig:
    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config with environment variable overrides."""
        load_dotenv()
        config = cls()
        config.exchange.testnet = os.getenv("BYBIT_TESTNET", "false").lower() == "true"
        config.exchange.base_url_override = os.getenv("BYBIT_BASE_URL", "")
        config.exchange.request_timeout_sec = _env_number("KLINE_REQUEST_TIMEOUT_SEC", "10", float)
        config.fetch.per_call_limit = _env_number("KLINE_PER_CALL_LIMIT", "1000", int)
        config.fetch.request_spacing_ms = _env_number("KLINE_REQUEST_SPACING_MS", "100", int)
        config.fetch.max_retries = _env_number("KLINE_MAX_RETRIES", "3", int)
        config.log_level = os.getenv("LOG_LEVEL", "INFO")
        return config
