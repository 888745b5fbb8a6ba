"""
Application settings.

Values come from environment variables (a local ``.env`` file is loaded
first) and fall back to the defaults below.
"""

import logging
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).parent.parent

load_dotenv(PROJECT_ROOT / ".env")

LOG_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Top-level application settings."""
    store_timezone: str = Field(
        default="Asia/Kolkata",
        description="Zone every schedule comparison is made in"
    )
    price_sweep_interval_seconds: float = Field(default=30.0, gt=0)
    price_sweep_enabled: bool = True
    data_dir: Path = PROJECT_ROOT / "data"
    log_level: str = "INFO"
    max_cart_quantity: int = Field(default=50, ge=1)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.store_timezone)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, keeping defaults for unset keys."""
        defaults = cls()
        return cls(
            store_timezone=os.getenv("STORE_TIMEZONE", defaults.store_timezone),
            price_sweep_interval_seconds=float(
                os.getenv("PRICE_SWEEP_INTERVAL_SECONDS", defaults.price_sweep_interval_seconds)
            ),
            price_sweep_enabled=_env_bool("PRICE_SWEEP_ENABLED", defaults.price_sweep_enabled),
            data_dir=Path(os.getenv("DATA_DIR", str(defaults.data_dir))),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            max_cart_quantity=int(os.getenv("MAX_CART_QUANTITY", defaults.max_cart_quantity)),
        )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging in the format used across the services."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings(settings: Optional[Settings] = None) -> Optional[Settings]:
    """Replace the settings singleton (useful for testing)."""
    global _settings
    _settings = settings
    return _settings
