"""
Clipboard output for finished transcriptions.

Uses the platform's copy command (xclip, pbcopy or clip).
"""

import subprocess
from typing import List, Optional

from ...utils.logger import get_logger
from ...utils.platform import get_clipboard_command, get_subprocess_kwargs
from ..errors import ClipboardError

logger = get_logger(__name__)

CLIPBOARD_TIMEOUT_S = 2


class Clipboard:
    def __init__(self, copy_cmd: Optional[List[str]] = None):
        self._copy_cmd = copy_cmd or get_clipboard_command()

    def copy(self, text: str) -> None:
        if not self._copy_cmd:
            raise ClipboardError("Clipboard is not supported on this platform")

        logger.debug(
            f"Copying text to clipboard: '{text[:50]}{'...' if len(text) > 50 else ''}'"
        )

        try:
            subprocess.run(
                self._copy_cmd,
                **get_subprocess_kwargs(
                    input=text, text=True, timeout=CLIPBOARD_TIMEOUT_S, check=True
                ),
            )
        except FileNotFoundError as e:
            raise ClipboardError(f"{self._copy_cmd[0]} not found") from e
        except (subprocess.TimeoutExpired, subprocess.CalledProcessError) as e:
            raise ClipboardError(f"Failed to set clipboard: {e}") from e
