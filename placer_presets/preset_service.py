import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from placer_presets.config import get_presets_file
from placer_presets.errors import PresetNotFound, StoreReadFailure, StoreWriteFailure
from placer_presets.models import Preset, PresetStore, STORE_VERSION


log = logging.getLogger(__name__)

# Marks "argument not supplied" where None is a meaningful value
UNSET = object()

_locks: Dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    """One writer lock per preset file, shared by every service in the process."""
    key = path.resolve()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


def _major(version: str) -> int:
    return int(str(version).split('.')[0])


class PresetService(QObject):
    """
    File-backed preset collection.

    Every mutation is a load-modify-save cycle on the JSON file, run under a
    per-file lock so that mutations made anywhere in this process never lose
    each other's writes. Other processes writing the same file are not
    serialized; the last writer wins.
    """

    presets_changed = pyqtSignal(object)  # Emits the new PresetStore

    def __init__(self, path=None):
        super().__init__()
        self.path = Path(path) if path else get_presets_file()
        self._lock = _lock_for(self.path)

    def load(self) -> PresetStore:
        if not self.path.exists():
            return PresetStore()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreReadFailure(self.path, str(e)) from e

        return self._from_data(data)

    def _from_data(self, data) -> PresetStore:
        if not isinstance(data, dict) or not isinstance(data.get('presets', []), list):
            raise StoreReadFailure(self.path, "unexpected file structure")

        version = str(data.get('version') or STORE_VERSION)
        try:
            major = _major(version)
        except ValueError:
            raise StoreReadFailure(self.path, f"unrecognized version {version!r}") from None
        if major > _major(STORE_VERSION):
            raise StoreReadFailure(
                self.path, f"file version {version} is newer than supported {STORE_VERSION}"
            )

        presets = []
        for entry in data.get('presets', []):
            try:
                presets.append(Preset.from_dict(entry))
            except (KeyError, TypeError, AttributeError) as e:
                raise StoreReadFailure(self.path, f"malformed preset entry: {e}") from e

        return PresetStore(version=STORE_VERSION, presets=presets)

    def save(self, store: PresetStore) -> None:
        store.version = STORE_VERSION
        content = json.dumps(store.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"

        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
            except OSError as e:
                raise StoreWriteFailure(self.path, str(e)) from e

            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.path)
            except OSError as e:
                try:
                    os.unlink(tmp)
                except FileNotFoundError:
                    pass
                raise StoreWriteFailure(self.path, str(e)) from e

    def _commit(self, store: PresetStore) -> None:
        self.save(store)
        self.presets_changed.emit(store.copy())

    def list(self) -> List[Preset]:
        return [p.copy() for p in self.load().presets]

    def get(self, preset_id: str) -> Preset:
        preset = self.load().find(preset_id)
        if preset is None:
            raise PresetNotFound(preset_id)
        return preset.copy()

    def find_by_name(self, name: str) -> Optional[Preset]:
        for preset in self.load().presets:
            if preset.name == name:
                return preset.copy()
        return None

    def add(self, name, config, hotkey=None) -> Preset:
        with self._lock:
            store = self.load()
            preset = Preset.create(name, config, hotkey)
            store.presets.append(preset)
            self._commit(store)

        log.info("Added preset %s (%s)", preset.id, preset.name)
        return preset.copy()

    def delete(self, preset_id: str) -> None:
        with self._lock:
            store = self.load()
            before = len(store.presets)
            store.presets = [p for p in store.presets if p.id != preset_id]
            self._commit(store)

        if len(store.presets) != before:
            log.info("Deleted preset %s", preset_id)

    def update(self, preset_id, name=None, config=None, hotkey=UNSET) -> Preset:
        """
        Replace the supplied fields of a preset.
        Omitting `hotkey` keeps the binding; passing None or "" clears it.
        """
        with self._lock:
            store = self.load()
            preset = store.find(preset_id)
            if preset is None:
                raise PresetNotFound(preset_id)

            if name is not None:
                preset.name = name
            if config is not None:
                preset.config = config
            if hotkey is not UNSET:
                preset.hotkey = hotkey or None

            self._commit(store)

        log.info("Updated preset %s", preset_id)
        return preset.copy()

    def run_locked(self, operation, *args, **kwargs):
        """
        Run one mutation and read back the store it committed, with no other
        writer in this process in between. Returns (result, store).
        """
        with self._lock:
            result = operation(*args, **kwargs)
            return result, self.load()

    def replace_all(self, store: PresetStore) -> None:
        """Overwrite the whole collection, e.g. from an imported file."""
        with self._lock:
            self._commit(store.copy())
