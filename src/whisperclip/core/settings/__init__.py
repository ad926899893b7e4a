from .config import MAX_HISTORY_ENTRIES
from .history import HistoryLog, TranscriptionRecord
from .settings import (
    HotkeyConfig,
    Settings,
    SettingsStore,
    get_config_dir,
    get_data_dir,
    get_models_dir,
)

__all__ = [
    "MAX_HISTORY_ENTRIES",
    "HistoryLog",
    "TranscriptionRecord",
    "HotkeyConfig",
    "Settings",
    "SettingsStore",
    "get_config_dir",
    "get_data_dir",
    "get_models_dir",
]
