"""
Developer-facing knobs that are read once at import time.

These are not user settings; they come from the process environment so a
debug session does not need a rebuilt settings file.
"""

import logging
import os
from typing import Optional

LOG_LEVEL_ENV = "WHISPERCLIP_LOG_LEVEL"
LOG_CONSOLE_ENV = "WHISPERCLIP_LOG_CONSOLE"

LOG_LEVEL = os.environ.get(LOG_LEVEL_ENV, "INFO")
LOG_TO_CONSOLE = os.environ.get(LOG_CONSOLE_ENV, "1").lower() not in (
    "0",
    "false",
    "no",
)

# Oldest records are dropped past this many.
MAX_HISTORY_ENTRIES = 20


def get_log_level(name: Optional[str] = None) -> int:
    """Map a level name such as ``"debug"`` to its ``logging`` constant."""
    level = getattr(logging, (name or LOG_LEVEL).upper(), None)
    return level if isinstance(level, int) else logging.INFO
