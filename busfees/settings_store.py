from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import DATA_JSON_PATH, DEFAULT_UNIT_FEE, EXPORT_DIR, SCHOOL_NAME, SETTINGS_JSON_PATH

BACKENDS = ("local", "remote")


def _float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    backend: str = "local"  # local | remote
    data_path: str = str(DATA_JSON_PATH)
    mongo_uri: str = "mongodb://localhost:27017"
    database_name: str = "busfees"
    unit_fee: float = DEFAULT_UNIT_FEE  # Per paid student per day
    currency_symbol: str = "$"
    school_name: str = SCHOOL_NAME
    export_dir: str = str(EXPORT_DIR)
    login_max_attempts: int = 5
    login_window_seconds: int = 300
    appearance_mode: str = "Light"  # Light | Dark | System
    ui_scaling: float = 1.0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Settings":
        backend = str(d.get("backend", "local")).strip().lower()
        if backend not in BACKENDS:
            backend = "local"
        unit_fee = _float(d.get("unit_fee", DEFAULT_UNIT_FEE), DEFAULT_UNIT_FEE)
        if unit_fee < 0:
            unit_fee = 0.0
        scale = _float(d.get("ui_scaling", 1.0), 1.0)
        # Keep scaling in a sane range to avoid blurry fractional scaling.
        if scale < 0.8:
            scale = 0.8
        if scale > 1.4:
            scale = 1.4
        return Settings(
            backend=backend,
            data_path=str(d.get("data_path", DATA_JSON_PATH)),
            mongo_uri=str(d.get("mongo_uri", "mongodb://localhost:27017")),
            database_name=str(d.get("database_name", "busfees")),
            unit_fee=unit_fee,
            currency_symbol=str(d.get("currency_symbol", "$")),
            school_name=str(d.get("school_name", SCHOOL_NAME)),
            export_dir=str(d.get("export_dir", EXPORT_DIR)),
            login_max_attempts=max(1, _int(d.get("login_max_attempts", 5), 5)),
            login_window_seconds=max(1, _int(d.get("login_window_seconds", 300), 300)),
            appearance_mode=str(d.get("appearance_mode", "Light")),
            ui_scaling=scale,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "data_path": self.data_path,
            "mongo_uri": self.mongo_uri,
            "database_name": self.database_name,
            "unit_fee": self.unit_fee,
            "currency_symbol": self.currency_symbol,
            "school_name": self.school_name,
            "export_dir": self.export_dir,
            "login_max_attempts": self.login_max_attempts,
            "login_window_seconds": self.login_window_seconds,
            "appearance_mode": self.appearance_mode,
            "ui_scaling": self.ui_scaling,
        }

    def money(self, amount: float) -> str:
        return f"{self.currency_symbol}{amount:.2f}"


class SettingsStore:
    def __init__(self, path: Path = SETTINGS_JSON_PATH):
        self.path = path

    def load(self) -> Settings:
        if not self.path.exists():
            settings = Settings()
            self.save(settings)
            return settings

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return Settings.from_dict(data if isinstance(data, dict) else {})

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
            f.write("\n")
