"""
Tests for the desktop app's data wiring, without opening a window
"""
import pytest

ctk = pytest.importorskip("customtkinter")

from busfees.app import BusFeesApp, _parse_date_entry  # noqa: E402
from busfees.errors import ValidationError  # noqa: E402
from busfees.logger import ActivityLog, ErrorLogger  # noqa: E402
from busfees.session import AppState  # noqa: E402
from busfees.settings_store import Settings  # noqa: E402

from conftest import DAY  # noqa: E402


@pytest.fixture
def app(tmp_path):
    # Skip CTk.__init__ so no display is needed.
    app = BusFeesApp.__new__(BusFeesApp)
    app.settings = Settings(data_path=str(tmp_path / "data.json"))
    app.err_logger = ErrorLogger(tmp_path / "error_log.txt")
    app.activity = ActivityLog(tmp_path / "activity.jsonl", app.err_logger)
    app._open_data()
    return app


class TestOpenData:
    """Test the store, snapshot and session wiring"""

    def test_window_state_method_is_not_shadowed(self, app):
        assert isinstance(app.app_state, AppState)
        assert "state" not in vars(app)
        assert BusFeesApp.state is ctk.CTk.state

    def test_snapshot_is_loaded(self, app):
        assert app.app_state.stations == []
        assert app.sessions.current is None


class TestParseDateEntry:
    """Test the report date field"""

    def test_blank_means_all_dates(self):
        assert _parse_date_entry("  ") is None

    def test_valid_date(self):
        assert _parse_date_entry(" 2024-01-10 ") == DAY

    def test_trailing_text_is_rejected(self):
        with pytest.raises(ValidationError):
            _parse_date_entry("2024-01-10junk")
