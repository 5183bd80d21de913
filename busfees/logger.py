from __future__ import annotations

import json
import traceback
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .constants import ACTIVITY_LOG_PATH, ERROR_LOG_PATH


@dataclass
class AppEvent:
    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    details: str = ""


class ErrorLogger:
    def __init__(self, path: Path = ERROR_LOG_PATH):
        self.path = path

    def log_exception(self, exc: BaseException, context: str = "") -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        ts = now_ts()
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f"[{ts}] {context}\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            f.write("\n")


class ActivityLog:
    """Append-only audit trail of successful mutations, one JSON object per line."""

    def __init__(self, path: Path = ACTIVITY_LOG_PATH, err_logger: ErrorLogger | None = None):
        self.path = path
        self.err_logger = err_logger or ErrorLogger()

    def record(self, event: AppEvent) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(asdict(event)) + "\n")
        except OSError as e:
            self.err_logger.log_exception(e, f"activity_log: {event.action}")

    def emit(self, action: str, entity_type: str, entity_id: str, details: str = "") -> None:
        self.record(AppEvent(timestamp=now_ts(), action=action, entity_type=entity_type, entity_id=entity_id, details=details))

    def recent(self, limit: int = 500) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        rows: list[dict[str, Any]] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError:
                    # Half-written line from an interrupted append.
                    continue
        return rows[-limit:]


def now_ts() -> str:
    return datetime.now().isoformat(timespec="seconds")
