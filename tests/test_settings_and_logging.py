"""
Tests for settings persistence, error log and activity log
"""
import json

from busfees.logger import ActivityLog, AppEvent, ErrorLogger
from busfees.settings_store import Settings, SettingsStore


class TestSettings:
    """Test settings parsing and storage"""

    def test_defaults_written_on_first_load(self, tmp_path):
        path = tmp_path / "settings.json"

        settings = SettingsStore(path).load()

        assert settings.unit_fee == 5.0
        assert settings.backend == "local"
        assert json.loads(path.read_text(encoding="utf-8"))["unit_fee"] == 5.0

    def test_bad_values_fall_back(self):
        settings = Settings.from_dict({"unit_fee": "abc", "backend": "ftp", "ui_scaling": 9, "login_max_attempts": 0})

        assert settings.unit_fee == 5.0
        assert settings.backend == "local"
        assert settings.ui_scaling == 1.4
        assert settings.login_max_attempts == 1

    def test_negative_fee_clamps(self):
        assert Settings.from_dict({"unit_fee": -3}).unit_fee == 0.0

    def test_save_load(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        store.save(Settings(backend="remote", unit_fee=7.5, currency_symbol="KES "))

        loaded = store.load()

        assert loaded.backend == "remote"
        assert loaded.money(15) == "KES 15.00"

    def test_non_dict_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[]", encoding="utf-8")

        assert SettingsStore(path).load() == Settings()


class TestLogs:
    """Test the error and activity logs"""

    def test_error_logger_appends_traceback(self, tmp_path):
        logger = ErrorLogger(tmp_path / "logs" / "error_log.txt")
        try:
            raise RuntimeError("store down")
        except RuntimeError as e:
            logger.log_exception(e, "add_station")

        text = logger.path.read_text(encoding="utf-8")
        assert "add_station" in text
        assert "RuntimeError: store down" in text

    def test_activity_recent(self, tmp_path):
        log = ActivityLog(tmp_path / "activity.jsonl", ErrorLogger(tmp_path / "err.txt"))
        log.record(AppEvent("t1", "add_station", "station", "s1", "West"))
        log.emit("delete_station", "station", "s1")
        with log.path.open("a", encoding="utf-8") as f:
            f.write('{"broken"\n')

        events = log.recent()

        assert [e["action"] for e in events] == ["add_station", "delete_station"]
        assert log.recent(limit=1)[0]["action"] == "delete_station"

    def test_activity_missing_file(self, tmp_path):
        assert ActivityLog(tmp_path / "none.jsonl").recent() == []
