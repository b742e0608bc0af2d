"""placer-presets - save and restore macOS display arrangements via displayplacer."""

__version__ = "1.0.0"
