from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys

DEFAULT_DB_TIMEOUT = 5.0


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "StoreBackend") -> AppPaths:
    override = os.environ.get("STOREBACK_HOME")
    if override:
        base = Path(override)
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "store.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def get_db_timeout() -> float:
    """Seconds a connection waits on a locked database (STOREBACK_DB_TIMEOUT)."""
    raw = os.environ.get("STOREBACK_DB_TIMEOUT", "").strip()
    if not raw:
        return DEFAULT_DB_TIMEOUT
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"STOREBACK_DB_TIMEOUT must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"STOREBACK_DB_TIMEOUT must be >= 0, got {raw!r}")
    return value
