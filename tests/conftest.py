"""Shared fixtures: sample displayplacer output, a fake tool, a fake shortcut table."""

from pathlib import Path

import pytest

from placer_presets.displayplacer import parse_configuration
from placer_presets.preset_service import PresetService


MAIN_ID = "37D8832A-2D66-02CA-B9F7-8F30A301B230"
SIDE_ID = "F466F621-B5FA-04A0-0800-CFA6C258DECD"

SAMPLE_REPORT = f"""Persistent screen id: {MAIN_ID}
Contextual screen id: 1
Serial screen id: s4251086178
Type: MacBook built in screen
Resolution: 1440x900
Hertz: 60
Color Depth: 8
Scaling: on
Origin: (0,0) - main display
Rotation: 0
Enabled: true
Resolutions for rotation 0:
  mode 0: res:1440x900 hz:60 color_depth:4
  mode 1: res:1440x900 hz:60 color_depth:8 scaling:on <-- current mode

Persistent screen id: {SIDE_ID}
Contextual screen id: 2
Type: 27 inch external screen
Resolution: 2560x1440
Origin: (-2560,-540)
Rotation: 90
Enabled: true

Usage example, do not copy:
displayplacer "id:<screenId> res:<width>x<height> origin:(<x>,<y>) degree:<0/90/180/270>"

Execute the command below to set your screens to the current arrangement. If screen ids are switching, please run `displayplacer --help` for info on using contextual or serial ids instead of persistent ids.

displayplacer "id:{MAIN_ID} res:1440x900 hz:60 color_depth:8 enabled:true scaling:on origin:(0,0) degree:0" "id:{SIDE_ID} res:2560x1440 hz:60 color_depth:8 enabled:true scaling:off origin:(-2560,-540) degree:90"
"""


class FakeShortcutPort:
    """In-memory stand-in for the OS global shortcut table."""

    def __init__(self):
        self.registered = {}
        self.blocked = set()

    def register(self, shortcut, callback):
        if shortcut in self.blocked:
            return False
        if shortcut in self.registered:
            return self.registered[shortcut] is callback
        self.registered[shortcut] = callback
        return True

    def unregister(self, shortcut):
        self.registered.pop(shortcut, None)

    def is_registered(self, shortcut):
        return shortcut in self.registered or shortcut in self.blocked

    def press(self, shortcut):
        self.registered[shortcut]()


class FakeClient:
    """DisplayplacerClient double that records every call."""

    def __init__(self, report=SAMPLE_REPORT):
        self.report = report
        self.calls = []

    async def list_displays(self):
        self.calls.append(('list',))
        return parse_configuration(self.report)

    async def apply_config(self, config):
        self.calls.append(('apply', config))

    async def toggle_display_enabled(self, display_id, enabled):
        self.calls.append(('toggle', display_id, enabled))


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Never touch the real ~/.config during tests."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("PLACER_PRESETS_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def preset_file(tmp_path) -> Path:
    return tmp_path / "presets.json"


@pytest.fixture
def service(preset_file) -> PresetService:
    return PresetService(preset_file)


@pytest.fixture
def port() -> FakeShortcutPort:
    return FakeShortcutPort()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def qt_app():
    """A core application so queued signals can be delivered; no display needed."""
    from PyQt6.QtCore import QCoreApplication

    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable shell script that plays the part of displayplacer."""

    def _make(body: str) -> str:
        script = tmp_path / "displayplacer"
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(0o755)
        return str(script)

    return _make
