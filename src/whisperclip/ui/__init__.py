from .history_dialog import HistoryDialog
from .mic_window import MicWindow, format_download_progress

__all__ = ["HistoryDialog", "MicWindow", "format_download_progress"]
