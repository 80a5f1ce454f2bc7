"""
User settings, stored as JSON in the platform config directory.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from .formatting import DEFAULT_MAX_DEPTH
from .net import DEFAULT_TIMEOUT, MAX_FRAME_SIZE
from .versions import DEFAULT_CANDIDATES, resolve_candidates

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_settings_path() -> Path:
    return Path(user_config_dir("motdping")) / "settings.json"


@dataclass
class Settings:
    timeout: float = DEFAULT_TIMEOUT
    default_port: int = 25565
    candidates: list[str] = field(default_factory=lambda: list(DEFAULT_CANDIDATES))
    max_frame_size: int = MAX_FRAME_SIZE
    max_depth: int = DEFAULT_MAX_DEPTH
    convert_rgb: bool = False
    log_level: str = "WARNING"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError for values the query path can't use"""
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ValueError(f"timeout must be a number, not {self.timeout!r}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, not {self.timeout}")

        for name in ("default_port", "max_frame_size", "max_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, not {value!r}")
        if self.default_port > 65535:
            raise ValueError(f"default_port {self.default_port} is out of range")

        if not isinstance(self.convert_rgb, bool):
            raise ValueError(f"convert_rgb must be true or false, not {self.convert_rgb!r}")

        if not isinstance(self.candidates, list):
            raise ValueError("candidates must be a list of protocol versions")
        self.candidates = [str(c) for c in self.candidates]
        resolve_candidates(self.candidates)

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. Valid levels: {list(LOG_LEVELS)}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_settings(path: Path | str | None = None) -> Settings:
    """
    Load settings from disk. A missing or unreadable file gives the defaults;
    a readable file with bad values raises ValueError.
    """
    storage_file = Path(path) if path is not None else default_settings_path()
    if not storage_file.exists():
        return Settings()

    try:
        with open(storage_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("ignoring unreadable settings file %s: %s", storage_file, e)
        return Settings()

    if not isinstance(data, dict):
        logger.warning("ignoring settings file %s: not a JSON object", storage_file)
        return Settings()

    known = {f.name for f in fields(Settings)}
    for key in data.keys() - known:
        logger.warning("ignoring unknown setting %r in %s", key, storage_file)

    return Settings(**{k: v for k, v in data.items() if k in known})


def save_settings(settings: Settings, path: Path | str | None = None) -> Path:
    """Save settings to disk."""
    storage_file = Path(path) if path is not None else default_settings_path()
    storage_file.parent.mkdir(parents=True, exist_ok=True)
    with open(storage_file, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return storage_file
