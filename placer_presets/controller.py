"""
Command surface used by the tray, the CLI and hotkeys.

Tool calls are coroutines; preset store calls run in a worker thread through
asyncio.to_thread so the event loop is never blocked by file I/O. Outbound
notifications are Qt signals, emitted on the thread that awaited the command
and without waiting for any receiver.
"""

import asyncio
import logging
from typing import List, Optional

from PyQt6.QtCore import QObject, Qt, pyqtSignal

from placer_presets.displayplacer import DisplayplacerClient
from placer_presets.errors import HotkeyAlreadyRegistered
from placer_presets.hotkey_registry import HotkeyBinding, HotkeyConflict
from placer_presets.models import DisplayConfiguration, Preset, PresetStore
from placer_presets.preset_service import UNSET, PresetService


log = logging.getLogger(__name__)


class DisplayController(QObject):
    presets_changed = pyqtSignal(object)  # Emits the new PresetStore
    apply_preset_requested = pyqtSignal(str)
    refresh_displays_requested = pyqtSignal()
    hotkey_fired = pyqtSignal(str)

    def __init__(self, client=None, presets=None, hotkeys=None):
        super().__init__()
        self.client = client or DisplayplacerClient()
        self.presets = presets or PresetService()
        self.hotkeys = hotkeys
        self.last_configuration: Optional[DisplayConfiguration] = None

        direct = Qt.ConnectionType.DirectConnection
        if self.hotkeys is not None:
            self.hotkeys.attach(self.presets)
            self.hotkeys.hotkey_fired.connect(self.hotkey_fired, type=direct)
            self.hotkeys.hotkey_fired.connect(self.apply_preset_requested, type=direct)

    # Displays

    async def get_displays(self) -> DisplayConfiguration:
        config = await self.client.list_displays()
        self.last_configuration = config
        return config

    async def apply_config(self, config: str) -> None:
        await self.client.apply_config(config)
        log.info("Applied display configuration")
        self.refresh_displays_requested.emit()

    async def toggle_display(self, display_id: str, enabled: bool) -> None:
        """
        Switch one display on or off. Refuses to switch off the last enabled
        display of the most recent report.
        """
        current = self.last_configuration
        if not enabled and current is not None:
            remaining = [d for d in current.enabled_displays if d.id != display_id]
            if current.find(display_id) is not None and not remaining:
                raise ValueError("Cannot disable the last enabled display")

        await self.client.toggle_display_enabled(display_id, enabled)
        log.info("Display %s %s", display_id, "enabled" if enabled else "disabled")
        self.refresh_displays_requested.emit()

    async def apply_preset(self, preset_id: str) -> Preset:
        preset = await asyncio.to_thread(self.presets.get, preset_id)
        await self.apply_config(preset.config)
        return preset

    def request_refresh(self) -> None:
        self.refresh_displays_requested.emit()

    # Presets

    async def load_presets(self) -> PresetStore:
        return await asyncio.to_thread(self.presets.load)

    async def _mutate(self, operation, *args):
        # presets_changed goes out on the caller's thread, not the worker's
        result, store = await asyncio.to_thread(self.presets.run_locked, operation, *args)
        self.presets_changed.emit(store)
        return result

    async def save_presets(self, store: PresetStore) -> None:
        await self._mutate(self.presets.replace_all, store)

    async def add_preset(self, name, config, hotkey=None) -> Preset:
        return await self._mutate(self.presets.add, name, config, hotkey)

    async def delete_preset(self, preset_id) -> None:
        await self._mutate(self.presets.delete, preset_id)

    async def update_preset(self, preset_id, name=None, config=None, hotkey=UNSET) -> Preset:
        return await self._mutate(self.presets.update, preset_id, name, config, hotkey)

    # Hotkeys

    def validate_hotkey(self, shortcut) -> str:
        return self._registry().validate(shortcut)

    def is_hotkey_available(self, shortcut) -> bool:
        return self._registry().is_available(shortcut)

    def registered_hotkeys(self) -> List[HotkeyBinding]:
        return self._registry().bindings()

    async def register_hotkey(self, preset_id, shortcut) -> Preset:
        """Bind `shortcut` to a preset; the store change triggers registration."""
        registry = self._registry()
        normalized = registry.validate(shortcut)
        owner = registry.preset_for(normalized)
        if owner is not None and owner != preset_id:
            raise HotkeyAlreadyRegistered(normalized, owner)
        if owner is None and not registry.is_available(normalized):
            raise HotkeyAlreadyRegistered(normalized)

        previous = (await asyncio.to_thread(self.presets.get, preset_id)).hotkey
        preset = await self.update_preset(preset_id, hotkey=normalized)
        if registry.preset_for(normalized) != preset_id:
            # The OS refused the shortcut during reconcile
            await self.update_preset(preset_id, hotkey=previous)
            raise HotkeyAlreadyRegistered(normalized)
        return preset

    async def unregister_hotkey(self, preset_id) -> Preset:
        return await self.update_preset(preset_id, hotkey=None)

    async def sync_hotkeys(self) -> List[HotkeyConflict]:
        """Bind the hotkeys of every stored preset, e.g. at startup."""
        store = await self.load_presets()
        return self._registry().reconcile(store)

    def _registry(self):
        if self.hotkeys is None:
            raise RuntimeError("No hotkey registry configured")
        return self.hotkeys
