"""Data model: displays reported by displayplacer and saved presets."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import uuid


STANDARD_ROTATIONS = (0, 90, 180, 270)
STORE_VERSION = "1.0"


@dataclass(frozen=True)
class Display:
    """One physical or virtual output, as reported by a single `list` call."""

    id: str
    resolution: Optional[str] = None
    origin: Tuple[int, int] = (0, 0)
    rotation: int = 0
    enabled: bool = True
    hertz: Optional[str] = None
    color_depth: Optional[str] = None
    scaling: Optional[str] = None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """(width, height) decoded from `resolution`, or None if unknown."""
        if not self.resolution:
            return None
        parts = self.resolution.lower().split('x')
        if len(parts) != 2:
            return None
        try:
            width, height = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if width <= 0 or height <= 0:
            return None
        return width, height

    @property
    def has_standard_rotation(self) -> bool:
        return self.rotation in STANDARD_ROTATIONS

    def to_dict(self):
        size = self.size
        return {
            'id': self.id,
            'resolution': self.resolution,
            'width': size[0] if size else None,
            'height': size[1] if size else None,
            'origin': {'x': self.origin[0], 'y': self.origin[1]},
            'rotation': self.rotation,
            'enabled': self.enabled,
            'hertz': self.hertz,
            'color_depth': self.color_depth,
            'scaling': self.scaling,
        }


@dataclass(frozen=True)
class DisplayConfiguration:
    """The displays from one report plus the verbatim tool output."""

    displays: Tuple[Display, ...]
    raw_output: str = ""
    apply_command: Optional[str] = None

    def find(self, display_id: str) -> Optional[Display]:
        for display in self.displays:
            if display.id == display_id:
                return display
        return None

    @property
    def enabled_displays(self) -> List[Display]:
        return [d for d in self.displays if d.enabled]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_preset_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Preset:
    id: str
    name: str
    config: str
    hotkey: Optional[str] = None
    created_at: str = field(default_factory=_now_iso)

    @classmethod
    def create(cls, name, config, hotkey=None):
        return cls(id=new_preset_id(), name=name, config=config, hotkey=hotkey or None)

    def copy(self) -> "Preset":
        return replace(self)

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'config': self.config,
            'createdAt': self.created_at,
        }
        if self.hotkey:
            data['hotkey'] = self.hotkey
        return data

    @classmethod
    def from_dict(cls, data) -> "Preset":
        # Older files wrote the snake_case key
        created_at = data.get('createdAt', data.get('created_at'))
        for key in ('id', 'name', 'config'):
            if not isinstance(data[key], str):
                raise TypeError(f"{key} must be a string, got {type(data[key]).__name__}")
        hotkey = data.get('hotkey')
        if hotkey is not None and not isinstance(hotkey, str):
            raise TypeError(f"hotkey must be a string, got {type(hotkey).__name__}")

        return cls(
            id=data['id'],
            name=data['name'],
            config=data['config'],
            hotkey=hotkey or None,
            created_at=str(created_at) if created_at is not None else "",
        )


@dataclass
class PresetStore:
    version: str = STORE_VERSION
    presets: List[Preset] = field(default_factory=list)

    def find(self, preset_id: str) -> Optional[Preset]:
        for preset in self.presets:
            if preset.id == preset_id:
                return preset
        return None

    def copy(self) -> "PresetStore":
        return PresetStore(version=self.version, presets=[p.copy() for p in self.presets])

    def to_dict(self):
        return {
            'version': self.version,
            'presets': [p.to_dict() for p in self.presets],
        }
