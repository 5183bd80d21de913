from __future__ import annotations

from pathlib import Path

APP_NAME = "School Bus Fee Tracker"
SCHOOL_NAME = "Advent Reformed Institute"

WORKSPACE_ROOT = Path(__file__).resolve().parents[1]
DATA_JSON_PATH = WORKSPACE_ROOT / "busfees_data.json"
SETTINGS_JSON_PATH = WORKSPACE_ROOT / "settings.json"
ERROR_LOG_PATH = WORKSPACE_ROOT / "error_log.txt"
ACTIVITY_LOG_PATH = WORKSPACE_ROOT / "activity_log.jsonl"
EXPORT_DIR = WORKSPACE_ROOT / "exports"

USERS = "users"
STATIONS = "stations"
STUDENTS = "students"
PAYMENTS = "payments"
CREDENTIALS = "credentials"
CURRENT_USER = "currentUser"

COLLECTIONS = (USERS, STATIONS, STUDENTS, PAYMENTS)

DEFAULT_UNIT_FEE = 5.00
ALL_STATIONS = "all"
