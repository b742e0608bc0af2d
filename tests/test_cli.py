"""Tests for the command line interface."""

import json

import pytest

from placer_presets.cli import run_cli
from placer_presets.controller import DisplayController
from placer_presets.displayplacer import extract_apply_command
from tests.conftest import MAIN_ID, SAMPLE_REPORT, SIDE_ID


@pytest.fixture
def controller(client, service):
    return DisplayController(client=client, presets=service)


def _json_out(capsys):
    return json.loads(capsys.readouterr().out)


class TestDisplays:
    def test_current(self, controller, capsys):
        assert run_cli(["current"], controller) == 0

        out = capsys.readouterr().out
        assert "2 displays" in out
        assert MAIN_ID in out
        assert "(-2560, -540)" in out

    def test_current_json(self, controller, capsys):
        assert run_cli(["--json", "current"], controller) == 0

        data = _json_out(capsys)
        assert data["total"] == 2
        assert data["displays"][1]["rotation"] == 90
        assert data["displays"][1]["width"] == 2560

    def test_toggle(self, controller, client):
        assert run_cli(["toggle", SIDE_ID, "off"], controller) == 0
        assert client.calls[-1] == ('toggle', SIDE_ID, False)


class TestPresets:
    def test_save_current_layout(self, controller, service):
        assert run_cli(["save", "Desk", "--hotkey", "shift+cmd+1"], controller) == 0

        preset = service.find_by_name("Desk")
        assert preset.config == extract_apply_command(SAMPLE_REPORT)
        assert preset.hotkey == "Cmd+Shift+1"

    def test_save_explicit_config(self, controller, service):
        assert run_cli(["save", "Mirror", "--config", "id:A origin:(0,0)"], controller) == 0
        assert service.find_by_name("Mirror").config == "id:A origin:(0,0)"

    def test_save_rejects_hotkey_in_use(self, controller, service, capsys):
        service.add("Desk", "id:A", "Cmd+Shift+1")

        assert run_cli(["save", "Sofa", "--hotkey", "Cmd+Shift+1"], controller) == 1

        assert "already in use" in capsys.readouterr().err
        assert service.find_by_name("Sofa") is None

    def test_save_rejects_invalid_hotkey(self, controller, capsys):
        assert run_cli(["save", "Desk", "--hotkey", "Shift"], controller) == 1
        assert "Invalid shortcut format" in capsys.readouterr().err

    def test_list(self, controller, service, capsys):
        service.add("Desk", "id:A")
        service.add("Sofa", "id:B")

        assert run_cli(["list"], controller) == 0

        out = capsys.readouterr().out
        assert "Saved Presets (2)" in out
        assert out.index("Desk") < out.index("Sofa")

    def test_list_empty(self, controller, capsys):
        assert run_cli(["list"], controller) == 0
        assert "No presets saved yet." in capsys.readouterr().out

    def test_list_json_detailed(self, controller, service, capsys):
        preset = service.add("Desk", "id:A", "Cmd+1")

        assert run_cli(["--json", "list", "--detailed"], controller) == 0

        assert _json_out(capsys)["presets"] == [preset.to_dict()]

    def test_apply_by_name(self, controller, service, client):
        preset = service.add("Desk", "id:A origin:(0,0)")

        assert run_cli(["apply", "Desk"], controller) == 0
        assert client.calls == [('apply', preset.config)]

    def test_apply_by_id(self, controller, service, client):
        preset = service.add("Desk", "id:A origin:(0,0)")

        assert run_cli(["apply", preset.id], controller) == 0
        assert client.calls == [('apply', preset.config)]

    def test_apply_unknown(self, controller, capsys):
        assert run_cli(["--json", "apply", "Nope"], controller) == 1

        data = _json_out(capsys)
        assert data["success"] is False
        assert "Preset not found" in data["error"]

    def test_rename(self, controller, service):
        preset = service.add("Desk", "id:A")

        assert run_cli(["rename", "Desk", "Office"], controller) == 0
        assert service.get(preset.id).name == "Office"

    def test_delete(self, controller, service):
        service.add("Desk", "id:A")

        assert run_cli(["delete", "Desk", "--yes"], controller) == 0
        assert service.list() == []

    def test_delete_cancelled(self, controller, service, monkeypatch):
        service.add("Desk", "id:A")
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert run_cli(["delete", "Desk"], controller) == 0
        assert len(service.list()) == 1

    def test_hotkey_set_show_clear(self, controller, service, capsys):
        preset = service.add("Desk", "id:A")

        assert run_cli(["hotkey", "Desk", "ctrl+alt+d"], controller) == 0
        assert service.get(preset.id).hotkey == "Ctrl+Alt+D"
        capsys.readouterr()

        assert run_cli(["hotkey", "Desk"], controller) == 0
        assert capsys.readouterr().out.strip() == "Ctrl+Alt+D"

        assert run_cli(["hotkey", "Desk", "--clear"], controller) == 0
        assert service.get(preset.id).hotkey is None

    def test_info(self, controller, service, capsys):
        service.add("Desk", extract_apply_command(SAMPLE_REPORT), "Cmd+1")

        assert run_cli(["--json", "info", "Desk"], controller) == 0

        data = _json_out(capsys)
        assert data["hotkey"] == "Cmd+1"
        assert [d["id"] for d in data["displays"]] == [MAIN_ID, SIDE_ID]


class TestStoreErrors:
    def test_unreadable_store_is_reported(self, controller, preset_file, capsys):
        preset_file.write_text("{broken")

        assert run_cli(["list"], controller) == 1

        assert "Failed to read presets" in capsys.readouterr().err
        assert preset_file.read_text() == "{broken"
