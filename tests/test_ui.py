"""
Tests for the mic window and history dialog.
"""

from unittest.mock import patch

import pytest
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QMessageBox

from whisperclip.core.asr.backends import BackendKind
from whisperclip.core.asr.model_downloader import DownloadProgress
from whisperclip.core.settings.history import HistoryLog
from whisperclip.core.state_machine import RecordingState
from whisperclip.ui.history_dialog import HistoryDialog
from whisperclip.ui.mic_window import MicWindow, format_download_progress

MB = 1024 * 1024


@pytest.fixture
def window(qtbot):
    window = MicWindow()
    qtbot.addWidget(window)
    window.show()
    return window


class TestDownloadProgressText:
    def test_with_total(self):
        progress = DownloadProgress(12 * MB, 148 * MB)
        assert format_download_progress(progress) == "Downloading: 12 / 148 MB"

    def test_without_total(self):
        assert format_download_progress(DownloadProgress(3 * MB)) == "Downloading: 3 MB"


class TestMicWindow:
    def test_click_requests_toggle(self, qtbot, window):
        with qtbot.waitSignal(window.toggle_requested, timeout=1000):
            qtbot.mouseClick(window.button, Qt.LeftButton)

    def test_escape_requests_stop(self, qtbot, window):
        with qtbot.waitSignal(window.stop_requested, timeout=1000):
            qtbot.keyClick(window, Qt.Key_Escape)

    def test_status_expires(self, qtbot, window):
        window.show_status("Copied!", timeout_ms=50)
        assert window.status_text == "Copied!"

        qtbot.waitUntil(lambda: window.status_text == "", timeout=2000)

    def test_status_without_timeout_persists(self, qtbot, window):
        window.show_status("Downloading model...")
        qtbot.wait(100)
        assert window.status_text == "Downloading model..."

    def test_recording_states(self, window):
        window.set_recording_state(RecordingState.RECORDING)
        assert window.status_text == "Recording..."
        assert window.button.property("state") == "recording"

        window.set_recording_state(RecordingState.PROCESSING)
        assert window.status_text == "Transcribing..."

    def test_menu_emits_picked_backend(self, qtbot, window):
        local_action = next(a for a in window.menu.actions() if a.text() == "Local Mode")

        with qtbot.waitSignal(window.backend_requested, timeout=1000) as blocker:
            local_action.trigger()

        assert blocker.args == [BackendKind.LOCAL]
        # Checks follow set_backend, not the click.
        assert not local_action.isChecked()

    def test_set_backend_checks_action(self, window):
        window.set_backend(BackendKind.LOCAL)
        checked = [a.text() for a in window.menu.actions() if a.isChecked()]
        assert checked == ["Local Mode"]


class TestHistoryDialog:
    @pytest.fixture
    def history(self, tmp_path):
        return HistoryLog(tmp_path / "history.json")

    def test_shows_newest_first_with_full_text(self, qtbot, history):
        history.append("first", backend="api")
        history.append("second " + "x" * 200, backend="local")

        dialog = HistoryDialog(history)
        qtbot.addWidget(dialog)
        dialog.refresh_history()

        assert dialog.table.rowCount() == 2
        assert dialog.table.item(0, 1).text() == "Local"
        assert dialog.table.item(0, 2).text().endswith("...")
        assert dialog.full_text(0) == "second " + "x" * 200
        assert dialog.full_text(1) == "first"

    @patch.object(QMessageBox, "question", return_value=QMessageBox.Yes)
    def test_clear_after_confirmation(self, mock_question, qtbot, history):
        history.append("gone")
        dialog = HistoryDialog(history)
        qtbot.addWidget(dialog)
        dialog.refresh_history()

        dialog._clear_history()

        assert dialog.table.rowCount() == 0
        assert history.load() == []

    @patch.object(QMessageBox, "question", return_value=QMessageBox.No)
    def test_clear_cancelled(self, mock_question, qtbot, history):
        history.append("kept")
        dialog = HistoryDialog(history)
        qtbot.addWidget(dialog)

        dialog._clear_history()

        assert [r.text for r in history.load()] == ["kept"]
