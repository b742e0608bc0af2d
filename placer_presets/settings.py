import json
import logging
import os
from pathlib import Path

from placer_presets.config import TOOL_ENV, get_settings_file, get_tool_path


log = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 15.0


class Settings:
    def __init__(self, file=None):
        self.file = Path(file) if file else get_settings_file()

        # External tool
        self.tool_path = get_tool_path()
        self.tool_timeout = DEFAULT_TOOL_TIMEOUT

        # Notification Settings
        self.notify_preset_applied = True
        self.confirm_preset_delete = True
        self.show_error_messages = True

        self.load()

    def load(self):
        if not self.file.exists():
            # First run: write the defaults so they can be edited by hand
            try:
                self.save()
            except OSError as e:
                log.warning("Could not write default settings to %s: %s", self.file, e)
            return
        try:
            with open(self.file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", self.file, e)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring settings file %s: not a JSON object", self.file)
            return

        # The environment overrides the file
        if TOOL_ENV not in os.environ:
            self.tool_path = data.get('tool_path', self.tool_path)
        try:
            self.tool_timeout = float(data.get('tool_timeout', self.tool_timeout))
        except (TypeError, ValueError):
            log.warning("Invalid tool_timeout in %s, using %ss", self.file, DEFAULT_TOOL_TIMEOUT)
            self.tool_timeout = DEFAULT_TOOL_TIMEOUT

        self.notify_preset_applied = data.get('notify_preset_applied', True)
        self.confirm_preset_delete = data.get('confirm_preset_delete', True)
        self.show_error_messages = data.get('show_error_messages', True)

    def save(self):
        self.file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.file, 'w') as f:
            json.dump(self.export_to_dict(), f, indent=2)

    def export_to_dict(self):
        return {
            'tool_path': self.tool_path,
            'tool_timeout': self.tool_timeout,
            'notify_preset_applied': self.notify_preset_applied,
            'confirm_preset_delete': self.confirm_preset_delete,
            'show_error_messages': self.show_error_messages,
        }
