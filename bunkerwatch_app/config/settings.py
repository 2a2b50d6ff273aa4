"""
Basic settings and logging configuration for the bunkerwatch sounding app.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

_DATA_DIR_ENV = "BUNKERWATCH_DATA_DIR"
_LOG_LEVEL_ENV = "BUNKERWATCH_LOG_LEVEL"


def _get_resource_root() -> Path:

    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys._MEIPASS)
    return Path(__file__).resolve().parents[2]


def _get_user_data_dir(resource_root: Path) -> Path:

    override = os.environ.get(_DATA_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if getattr(sys, "frozen", False):
        exe_path = Path(getattr(sys, "executable", resource_root))
        return exe_path.parent / "bunkerwatch_app_data"
    return resource_root / "bunkerwatch_app_data"


@dataclass(slots=True)
class Settings:
    """Application-level settings."""

    project_root: Path
    data_dir: Path
    db_path: Path
    log_level: str = "INFO"

    @classmethod
    def default(cls) -> "Settings":
        resource_root = _get_resource_root()
        data_dir = _get_user_data_dir(resource_root)
        data_dir.mkdir(parents=True, exist_ok=True)

        log_level = os.environ.get(_LOG_LEVEL_ENV, "INFO").strip().upper() or "INFO"

        return cls(
            project_root=resource_root,
            data_dir=data_dir,
            db_path=data_dir / "bunkerwatch.db",
            log_level=log_level,
        )


def init_logging(settings: Settings) -> None:
    """Configure basic logging to the data directory log file."""
    log_file = settings.data_dir / "bunkerwatch.log"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )

    logging.getLogger(__name__).info("Logging initialized. DB at %s", settings.db_path)
