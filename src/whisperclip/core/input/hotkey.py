"""
Global toggle hotkey.

Uses pynput so the shortcut works while another application has focus.
"""

from typing import Optional, Set

from PySide6.QtCore import QObject, Signal

from ...utils.logger import get_logger
from ..settings.settings import HotkeyConfig

logger = get_logger(__name__)

_MODIFIER_KEYS = {
    "ctrl": ("ctrl", "ctrl_l", "ctrl_r"),
    "alt": ("alt", "alt_l", "alt_r"),
    "shift": ("shift", "shift_l", "shift_r"),
    "cmd": ("cmd", "cmd_l", "cmd_r"),
    "meta": ("cmd", "cmd_l", "cmd_r"),
}


class HotkeyListener(QObject):
    """
    Emits ``activated`` once each time the configured combination goes down.

    pynput calls back on its own thread; the queued signal connection brings
    the event onto the Qt main thread.
    """

    activated = Signal()

    def __init__(self, config: Optional[HotkeyConfig] = None, parent=None):
        super().__init__(parent)
        self._keyboard_listener = None
        self._pressed_keys: set = set()
        self._is_active = False
        self.update_config(config or HotkeyConfig())

    def update_config(self, config: HotkeyConfig) -> None:
        self._display = config.to_display_string()
        self._required_modifiers: Set[str] = set(config.modifiers)
        self._trigger_key = self._resolve_key(config.key)

    @staticmethod
    def _resolve_key(key_name: str):
        from pynput import keyboard

        try:
            return getattr(keyboard.Key, key_name)
        except AttributeError:
            return keyboard.KeyCode.from_char(key_name)

    def _modifier_down(self, mod_type: str) -> bool:
        from pynput import keyboard

        names = _MODIFIER_KEYS.get(mod_type, ())
        return any(getattr(keyboard.Key, name) in self._pressed_keys for name in names)

    def _check_hotkey(self) -> bool:
        if self._trigger_key not in self._pressed_keys:
            return False
        return all(self._modifier_down(mod) for mod in self._required_modifiers)

    def _on_press(self, key) -> None:
        self._pressed_keys.add(key)

        if self._check_hotkey() and not self._is_active:
            self._is_active = True
            self.activated.emit()

    def _on_release(self, key) -> None:
        self._pressed_keys.discard(key)

        if not self._check_hotkey():
            self._is_active = False

    def start(self) -> None:
        from pynput import keyboard

        logger.info(f"Starting hotkey listener: {self._display}")
        self._keyboard_listener = keyboard.Listener(
            on_press=self._on_press, on_release=self._on_release
        )
        self._keyboard_listener.start()

    def stop(self) -> None:
        if self._keyboard_listener:
            self._keyboard_listener.stop()
            self._keyboard_listener = None
