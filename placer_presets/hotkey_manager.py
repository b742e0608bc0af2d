import logging
import threading
from typing import Callable, Optional, Protocol, Tuple


log = logging.getLogger(__name__)

# Canonical modifier names in the order they are written out
MODIFIER_ORDER = ('Cmd', 'Ctrl', 'Alt', 'Shift')

MODIFIER_ALIASES = {
    'CMD': 'Cmd', 'COMMAND': 'Cmd', 'SUPER': 'Cmd', 'WIN': 'Cmd', 'META': 'Cmd',
    'CTRL': 'Ctrl', 'CONTROL': 'Ctrl',
    'ALT': 'Alt', 'OPTION': 'Alt', 'OPT': 'Alt',
    'SHIFT': 'Shift',
}

NAMED_KEYS = {
    'SPACE': 'Space', 'ENTER': 'Enter', 'RETURN': 'Enter', 'TAB': 'Tab',
    'ESC': 'Esc', 'ESCAPE': 'Esc', 'BACKSPACE': 'Backspace', 'DELETE': 'Delete',
    'UP': 'Up', 'DOWN': 'Down', 'LEFT': 'Left', 'RIGHT': 'Right',
    'HOME': 'Home', 'END': 'End', 'PAGEUP': 'PageUp', 'PAGEDOWN': 'PageDown',
}
NAMED_KEYS.update({f'F{n}': f'F{n}' for n in range(1, 21)})

# pynput spells a few keys differently
PYNPUT_NAMES = {
    'Cmd': 'cmd', 'Ctrl': 'ctrl', 'Alt': 'alt', 'Shift': 'shift',
    'Enter': 'enter', 'Esc': 'esc', 'PageUp': 'page_up', 'PageDown': 'page_down',
}


def parse_hotkey_string(hotkey_str) -> Optional[Tuple[Tuple[str, ...], str]]:
    """
    Parse hotkey string like "Cmd+Shift+1" to (modifiers, key).
    Returns None if invalid: at least one modifier and exactly one key are required.
    """
    if not isinstance(hotkey_str, str) or not hotkey_str.strip():
        return None

    parts = [p.strip() for p in hotkey_str.split('+')]
    if len(parts) < 2 or any(not p for p in parts):
        return None

    modifiers = set()
    key = None

    for part in parts:
        part_upper = part.upper()
        if part_upper in MODIFIER_ALIASES:
            modifiers.add(MODIFIER_ALIASES[part_upper])
        elif key is not None:
            return None
        elif len(part) == 1 and part.isascii() and part.isalnum():
            key = part.upper()
        elif part_upper in NAMED_KEYS:
            key = NAMED_KEYS[part_upper]
        else:
            return None

    if key is None or not modifiers:
        return None

    return tuple(m for m in MODIFIER_ORDER if m in modifiers), key


def format_hotkey(modifiers, key) -> str:
    """Convert modifiers and key back to the canonical string"""
    ordered = [m for m in MODIFIER_ORDER if m in modifiers]
    return '+'.join(ordered + [key])


def normalize_hotkey(hotkey_str) -> Optional[str]:
    parsed = parse_hotkey_string(hotkey_str)
    if parsed is None:
        return None
    return format_hotkey(*parsed)


def to_pynput_hotkey(hotkey_str) -> Optional[str]:
    """Cmd+Shift+F1 -> <cmd>+<shift>+<f1>; single characters stay bare."""
    parsed = parse_hotkey_string(hotkey_str)
    if parsed is None:
        return None
    modifiers, key = parsed
    parts = [f"<{PYNPUT_NAMES[m]}>" for m in modifiers]
    if len(key) == 1:
        parts.append(key.lower())
    else:
        parts.append(f"<{PYNPUT_NAMES.get(key, key.lower())}>")
    return '+'.join(parts)


class ShortcutPort(Protocol):
    """OS-level global shortcut table. All operations are idempotent."""

    def register(self, shortcut: str, callback: Callable[[], None]) -> bool:
        ...

    def unregister(self, shortcut: str) -> None:
        ...

    def is_registered(self, shortcut: str) -> bool:
        ...


class HotkeyManager:
    """
    ShortcutPort backed by a pynput GlobalHotKeys listener.
    Callbacks run on the listener thread.
    """

    def __init__(self):
        self.registered = {}
        self._listener = None
        self._lock = threading.RLock()

    def register(self, shortcut, callback=None):
        """
        Register a global shortcut.
        Returns False if the string is invalid or the shortcut is already
        bound to a different callback.
        """
        normalized = normalize_hotkey(shortcut)
        if normalized is None:
            return False

        with self._lock:
            if normalized in self.registered:
                return self.registered[normalized] is callback
            self.registered[normalized] = callback
            if not self._restart_listener():
                del self.registered[normalized]
                self._restart_listener()
                return False

        log.info("Registered hotkey %s", normalized)
        return True

    def unregister(self, shortcut):
        normalized = normalize_hotkey(shortcut)
        with self._lock:
            if normalized not in self.registered:
                return
            del self.registered[normalized]
            self._restart_listener()
        log.info("Unregistered hotkey %s", normalized)

    def is_registered(self, shortcut):
        return normalize_hotkey(shortcut) in self.registered

    def unregister_all(self):
        with self._lock:
            self.registered.clear()
            self._restart_listener()

    def stop_listening(self):
        self.unregister_all()

    def _fire(self, normalized):
        callback = self.registered.get(normalized)
        log.debug("Hotkey %s pressed", normalized)
        if callback is not None:
            callback()

    def _restart_listener(self):
        """Swap the pynput listener for one that knows the current bindings"""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

        if not self.registered:
            return True

        try:
            # Imported lazily: pynput needs a display connection at import time
            from pynput import keyboard as pynput_keyboard

            hotkey_map = {
                to_pynput_hotkey(s): (lambda s=s: self._fire(s))
                for s in self.registered
            }
            self._listener = pynput_keyboard.GlobalHotKeys(hotkey_map)
            self._listener.start()
        except Exception as e:
            log.error("Hotkey listener failed to start: %s", e)
            self._listener = None
            return False
        return True
