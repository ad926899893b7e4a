from .hotkey import HotkeyListener

__all__ = ["HotkeyListener"]
