from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


BASE_CURRENCY = "USD"


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path
    images_dir: Path
    cookie_path: Path


@dataclass(frozen=True)
class Settings:
    admin_token: str
    fx_api_url: str
    images_base_url: str
    low_stock_threshold: int = 5


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "Tienda") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    images = base / "images"
    db = base / "tienda.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    images.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs, images_dir=images, cookie_path=base / "cookies.json")


def load_settings(paths: AppPaths) -> Settings:
    threshold = os.environ.get("TIENDA_LOW_STOCK_THRESHOLD", "").strip()
    return Settings(
        admin_token=os.environ.get("TIENDA_ADMIN_TOKEN", "").strip(),
        fx_api_url=os.environ.get("TIENDA_FX_API_URL", "").strip() or "https://api.exchangerate-api.com/v4/latest/USD",
        images_base_url=os.environ.get("TIENDA_IMAGES_BASE_URL", "").strip() or paths.images_dir.as_uri(),
        low_stock_threshold=int(threshold) if threshold else 5,
    )
