"""Platform-specific utilities for cross-platform compatibility."""

import platform
import subprocess
from typing import List, Optional

from .logger import get_logger

logger = get_logger(__name__)


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def get_subprocess_kwargs(**kwargs) -> dict:
    """Keyword arguments for ``subprocess.run`` that keep console windows hidden."""
    if get_platform() == "windows":
        kwargs.setdefault("creationflags", subprocess.CREATE_NO_WINDOW)
    return kwargs


def get_clipboard_command(system: Optional[str] = None) -> Optional[List[str]]:
    system = system or get_platform()

    if system == "linux":
        return ["xclip", "-selection", "clipboard"]
    if system == "macos":
        return ["pbcopy"]
    if system == "windows":
        return ["clip"]

    logger.warning(f"No clipboard command known for platform {system}")
    return None
