import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        default_currency: str,
        trend_months: int,
        health_window_months: int,
        auto_save_interval_minutes: int,
        scheduler_enabled: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.default_currency = default_currency
        self.trend_months = trend_months
        self.health_window_months = health_window_months
        self.auto_save_interval_minutes = auto_save_interval_minutes
        self.scheduler_enabled = scheduler_enabled


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("LEDGER_TIMEZONE", "Asia/Kolkata")
    default_currency = os.getenv("LEDGER_DEFAULT_CURRENCY", "INR")
    trend_months = int(os.getenv("LEDGER_TREND_MONTHS", "6"))
    health_window_months = int(os.getenv("LEDGER_HEALTH_WINDOW_MONTHS", "3"))
    auto_save_interval_minutes = int(
        os.getenv("LEDGER_AUTO_SAVE_INTERVAL_MINUTES", "60")
    )
    scheduler_enabled = _env_flag("LEDGER_SCHEDULER_ENABLED", "true")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        default_currency=default_currency,
        trend_months=trend_months,
        health_window_months=health_window_months,
        auto_save_interval_minutes=auto_save_interval_minutes,
        scheduler_enabled=scheduler_enabled,
    )
