"""Configuration management for the kline pipeline."""
import os
from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Load and validate environment configuration."""

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    APP_NAME: str = os.getenv("APP_NAME", "klinepipe")

    # Market data provider
    MARKET_DATA_PROVIDER: str = os.getenv("MARKET_DATA_PROVIDER", "mock")
    PROVIDER_BASE_URL: str = os.getenv("PROVIDER_BASE_URL", "https://fapi.binance.com")
    PROVIDER_API_KEY: str = os.getenv("PROVIDER_API_KEY", "")
    PROVIDER_TIMEOUT_SECONDS: float = 10.0
    KLINE_LIMIT: int = 500

    # Symbol filter (fixed per pipeline)
    QUOTE_ASSET: str = os.getenv("QUOTE_ASSET", "USDT")
    CONTRACT_TYPE: str = os.getenv("CONTRACT_TYPE", "PERPETUAL")

    # Fan-out
    MAX_CONCURRENCY: int = 5
    RUN_TIMEOUT_SECONDS: float = 0.0

    # Content store
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "database")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./klines.db")
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "./data/klines")

    # Scheduler trigger
    SCHEDULE_TIMEFRAME: str = os.getenv("SCHEDULE_TIMEFRAME", "4h")
    SCHEDULE_INTERVAL_SECONDS: int = 14400
    SCHEDULER_AUTOSTART: bool = _env_bool("SCHEDULER_AUTOSTART", "false")
    SCHEDULER_ALLOW_OVERLAP: bool = _env_bool("SCHEDULER_ALLOW_OVERLAP", "true")

    # Observability webhook (optional)
    WEBHOOK_URL: str = os.getenv("WEBHOOK_URL", "")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and parse numeric settings."""
        try:
            timeout = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
            if timeout <= 0:
                raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive")
            cls.PROVIDER_TIMEOUT_SECONDS = timeout
        except ValueError as e:
            raise ValueError(f"Invalid PROVIDER_TIMEOUT_SECONDS: {e}")

        try:
            limit = int(os.getenv("KLINE_LIMIT", "500"))
            if not 1 <= limit <= 1500:
                raise ValueError("KLINE_LIMIT must be between 1 and 1500")
            cls.KLINE_LIMIT = limit
        except ValueError as e:
            raise ValueError(f"Invalid KLINE_LIMIT: {e}")

        try:
            concurrency = int(os.getenv("MAX_CONCURRENCY", "5"))
            if concurrency < 1:
                raise ValueError("MAX_CONCURRENCY must be at least 1")
            cls.MAX_CONCURRENCY = concurrency
        except ValueError as e:
            raise ValueError(f"Invalid MAX_CONCURRENCY: {e}")

        try:
            run_timeout = float(os.getenv("RUN_TIMEOUT_SECONDS", "0"))
            if run_timeout < 0:
                raise ValueError("RUN_TIMEOUT_SECONDS must be non-negative")
            cls.RUN_TIMEOUT_SECONDS = run_timeout
        except ValueError as e:
            raise ValueError(f"Invalid RUN_TIMEOUT_SECONDS: {e}")

        try:
            interval = int(os.getenv("SCHEDULE_INTERVAL_SECONDS", "14400"))
            if interval <= 0:
                raise ValueError("SCHEDULE_INTERVAL_SECONDS must be a positive integer")
            cls.SCHEDULE_INTERVAL_SECONDS = interval
        except ValueError as e:
            raise ValueError(f"Invalid SCHEDULE_INTERVAL_SECONDS: {e}")

        if cls.MARKET_DATA_PROVIDER not in ("mock", "binance"):
            raise ValueError(f"Invalid MARKET_DATA_PROVIDER: {cls.MARKET_DATA_PROVIDER}")

        if cls.STORAGE_BACKEND not in ("database", "filesystem"):
            raise ValueError(f"Invalid STORAGE_BACKEND: {cls.STORAGE_BACKEND}")

        if cls.STORAGE_BACKEND == "database" and not cls.DATABASE_URL.startswith(("postgresql", "sqlite")):
            raise ValueError("DATABASE_URL must be postgresql or sqlite")

        if not cls.QUOTE_ASSET:
            raise ValueError("QUOTE_ASSET must not be empty")

        if not cls.SCHEDULE_TIMEFRAME:
            raise ValueError("SCHEDULE_TIMEFRAME must not be empty")
