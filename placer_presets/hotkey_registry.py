"""
Keeps the global shortcut table consistent with the preset store.

Each shortcut is either unregistered or bound to exactly one preset id.
Registering a shortcut that is already bound fails instead of replacing the
binding. When the store changes, `reconcile` drops stale bindings, registers
new ones and asks the tray to rebuild its menu.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from PyQt6.QtCore import QObject, Qt, pyqtSignal

from placer_presets.errors import HotkeyAlreadyRegistered, HotkeyInvalidFormat
from placer_presets.hotkey_manager import normalize_hotkey


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HotkeyBinding:
    preset_id: str
    shortcut: str

    @property
    def description(self) -> str:
        return f"Apply preset with {self.shortcut}"


@dataclass(frozen=True)
class HotkeyConflict:
    """A preset whose hotkey could not be bound during reconciliation."""

    preset_id: str
    shortcut: str
    reason: str


class HotkeyRegistry(QObject):
    hotkey_fired = pyqtSignal(str)  # Emits the preset id
    menu_rebuild_requested = pyqtSignal()

    def __init__(self, port):
        super().__init__()
        self.port = port
        self._bindings: Dict[str, str] = {}  # normalized shortcut -> preset id
        self._lock = threading.RLock()

    def validate(self, shortcut) -> str:
        """Return the canonical form of `shortcut` or raise HotkeyInvalidFormat."""
        normalized = normalize_hotkey(shortcut)
        if normalized is None:
            raise HotkeyInvalidFormat(shortcut)
        return normalized

    def is_available(self, shortcut) -> bool:
        normalized = self.validate(shortcut)
        with self._lock:
            return normalized not in self._bindings and not self.port.is_registered(normalized)

    def preset_for(self, shortcut) -> Optional[str]:
        normalized = normalize_hotkey(shortcut)
        with self._lock:
            return self._bindings.get(normalized)

    def bindings(self) -> List[HotkeyBinding]:
        with self._lock:
            return [HotkeyBinding(preset_id, s) for s, preset_id in self._bindings.items()]

    def register(self, preset_id, shortcut) -> HotkeyBinding:
        normalized = self.validate(shortcut)
        with self._lock:
            if normalized in self._bindings:
                raise HotkeyAlreadyRegistered(normalized, self._bindings[normalized])
            if self.port.is_registered(normalized):
                raise HotkeyAlreadyRegistered(normalized)
            if not self.port.register(normalized, lambda: self._fire(normalized)):
                raise HotkeyAlreadyRegistered(normalized)
            self._bindings[normalized] = preset_id

        log.info("Hotkey %s bound to preset %s", normalized, preset_id)
        return HotkeyBinding(preset_id, normalized)

    def unregister(self, shortcut) -> None:
        normalized = normalize_hotkey(shortcut)
        if normalized is None:
            return
        with self._lock:
            if self._bindings.pop(normalized, None) is None:
                return
            self.port.unregister(normalized)

        log.info("Hotkey %s unregistered", normalized)

    def unregister_all(self) -> None:
        with self._lock:
            shortcuts = list(self._bindings)
        for shortcut in shortcuts:
            self.unregister(shortcut)

    def reconcile(self, presets) -> List[HotkeyConflict]:
        """
        Make the registered shortcuts match the hotkeys of `presets`.
        Accepts a PresetStore or a list of presets. When two presets claim the
        same shortcut the earlier one keeps it.
        """
        presets = getattr(presets, 'presets', presets)
        conflicts = []
        desired: Dict[str, str] = {}

        for preset in presets:
            if not preset.hotkey:
                continue
            normalized = normalize_hotkey(preset.hotkey)
            if normalized is None:
                conflicts.append(HotkeyConflict(preset.id, preset.hotkey, "invalid format"))
                continue
            if normalized in desired:
                conflicts.append(HotkeyConflict(
                    preset.id, normalized, f"already used by preset {desired[normalized]}"
                ))
                continue
            desired[normalized] = preset.id

        with self._lock:
            for shortcut, preset_id in list(self._bindings.items()):
                if desired.get(shortcut) != preset_id:
                    self.unregister(shortcut)

            for shortcut, preset_id in desired.items():
                if self._bindings.get(shortcut) == preset_id:
                    continue
                try:
                    self.register(preset_id, shortcut)
                except HotkeyAlreadyRegistered as e:
                    conflicts.append(HotkeyConflict(preset_id, shortcut, str(e)))

        for conflict in conflicts:
            log.warning("Hotkey %s for preset %s not bound: %s",
                        conflict.shortcut, conflict.preset_id, conflict.reason)

        self.menu_rebuild_requested.emit()
        return conflicts

    def attach(self, service) -> None:
        """Reconcile on every store mutation."""
        service.presets_changed.connect(self.reconcile, type=Qt.ConnectionType.DirectConnection)

    def _fire(self, normalized):
        with self._lock:
            preset_id = self._bindings.get(normalized)
        if preset_id is not None:
            log.info("Hotkey %s activated preset %s", normalized, preset_id)
            self.hotkey_fired.emit(preset_id)
