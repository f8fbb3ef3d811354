"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from .calculations import DEFAULT_SOON_DAYS
from .errors import ConfigurationError

DEFAULT_DATA_FILE = Path("data") / "fleet.yaml"


@dataclass(frozen=True)
class Settings:
    data_file: Path = DEFAULT_DATA_FILE
    soon_days: int = DEFAULT_SOON_DAYS
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from CHASSIS_* environment variables."""
        env = os.environ if environ is None else environ
        soon_days = env.get("CHASSIS_SOON_DAYS")
        try:
            soon_days = int(soon_days) if soon_days else DEFAULT_SOON_DAYS
        except ValueError:
            raise ConfigurationError(
                f"CHASSIS_SOON_DAYS must be an integer, got '{soon_days}'"
            ) from None
        return cls(
            data_file=Path(env.get("CHASSIS_DATA_FILE") or DEFAULT_DATA_FILE),
            soon_days=soon_days,
            log_level=(env.get("CHASSIS_LOG_LEVEL") or "WARNING").upper(),
        )
