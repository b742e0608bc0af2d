"""
Tests for the displayplacer bindings

Validates:
- Report parsing, including the examples that must be ignored
- Per-field leniency and the "no displays" failure
- Command building
- The subprocess runner and its failure kinds
"""

import asyncio
import logging

import pytest

from placer_presets.displayplacer import (
    DisplayplacerClient,
    build_apply_arguments,
    build_toggle_argument,
    extract_apply_command,
    parse_configuration,
    parse_coordinates,
    parse_display_string,
    parse_report,
)
from placer_presets.errors import (
    ErrorKind,
    ExternalToolFailed,
    ExternalToolTimeout,
    ExternalToolUnavailable,
    ParseFailure,
)
from tests.conftest import MAIN_ID, SAMPLE_REPORT, SIDE_ID


MARKER = "Execute the command below to set your screens to the current arrangement."


class TestParseCoordinates:
    def test_origin(self):
        assert parse_coordinates("(0,0)") == (0, 0)

    def test_positive(self):
        assert parse_coordinates("(2560,0)") == (2560, 0)

    def test_negative(self):
        assert parse_coordinates("(-1920,0)") == (-1920, 0)
        assert parse_coordinates("(-1920,-1080)") == (-1920, -1080)

    def test_explicit_plus_sign(self):
        assert parse_coordinates("(+5,-3)") == (5, -3)

    def test_without_parentheses(self):
        assert parse_coordinates("10,20") == (10, 20)

    @pytest.mark.parametrize("value", [
        "bad", "(1,2,3)", "(1)", "(a,b)", "", "(1,)", "( 1_0, 0)", "(1_0,0)", "( 1,0)", "(1.5,0)",
    ])
    def test_malformed_yields_none(self, value):
        assert parse_coordinates(value) is None


class TestParseDisplayString:
    def test_all_fields(self):
        """Test a complete clause."""
        display = parse_display_string("id:1 res:2560x1440 origin:(0,0) degree:0")

        assert display.id == "1"
        assert display.resolution == "2560x1440"
        assert display.size == (2560, 1440)
        assert display.origin == (0, 0)
        assert display.rotation == 0
        assert display.enabled is True

    def test_token_order_is_irrelevant(self):
        display = parse_display_string("degree:180 origin:(-1920,0) res:1920x1080 id:ABC")

        assert display.id == "ABC"
        assert display.resolution == "1920x1080"
        assert display.origin == (-1920, 0)
        assert display.rotation == 180

    def test_missing_id_is_discarded(self):
        assert parse_display_string("res:1920x1080 origin:(0,0) degree:0") is None
        assert parse_display_string("id: res:1920x1080 origin:(0,0)") is None

    def test_disabled_substring_anywhere(self):
        """A clause mentioning "disabled" anywhere is a disabled display."""
        assert parse_display_string("id:A origin:(0,0) disabled").enabled is False
        assert parse_display_string("id:A mode:disabled origin:(0,0)").enabled is False
        assert parse_display_string("id:A origin:(0,0) enabled:true").enabled is True

    def test_malformed_origin_falls_back_to_default(self):
        display = parse_display_string("id:A res:800x600 origin:(oops) degree:90")

        assert display.origin == (0, 0)
        assert display.rotation == 90

    def test_missing_or_bad_degree_defaults_to_zero(self):
        assert parse_display_string("id:A origin:(0,0)").rotation == 0
        assert parse_display_string("id:A origin:(0,0) degree:sideways").rotation == 0

    def test_non_standard_rotation_is_kept_and_reported(self, caplog):
        """Unexpected rotations are not coerced into the standard set."""
        with caplog.at_level(logging.WARNING):
            display = parse_display_string("id:A origin:(0,0) degree:45")

        assert display.rotation == 45
        assert display.has_standard_rotation is False
        assert "non-standard rotation" in caplog.text

    def test_missing_resolution_is_unknown(self):
        display = parse_display_string("id:A origin:(0,0)")

        assert display.resolution is None
        assert display.size is None

    def test_extra_fields(self):
        display = parse_display_string(
            "id:A res:1440x900 hz:60 color_depth:8 scaling:on origin:(0,0) degree:0"
        )

        assert display.hertz == "60"
        assert display.color_depth == "8"
        assert display.scaling == "on"


class TestParseReport:
    def test_sample_report(self):
        """Test the two displays of a real report, ignoring the usage example."""
        displays = parse_report(SAMPLE_REPORT)

        assert [d.id for d in displays] == [MAIN_ID, SIDE_ID]
        assert displays[0].resolution == "1440x900"
        assert displays[0].origin == (0, 0)
        assert displays[1].origin == (-2560, -540)
        assert displays[1].rotation == 90
        assert all(d.enabled for d in displays)

    def test_two_quoted_segments_any_token_order(self):
        report = "\n".join([
            MARKER,
            'displayplacer "origin:(0,0) id:A degree:0 res:1920x1080" '
            '"res:1280x1024 degree:270 id:B origin:(1920,-200)"',
        ])

        displays = parse_report(report)

        assert len(displays) == 2
        a, b = displays
        assert (a.id, a.resolution, a.origin, a.rotation) == ("A", "1920x1080", (0, 0), 0)
        assert (b.id, b.resolution, b.origin, b.rotation) == ("B", "1280x1024", (1920, -200), 270)

    def test_lines_before_marker_are_ignored(self):
        report = "\n".join([
            'displayplacer "id:EXAMPLE res:1x1 origin:(0,0) degree:0"',
            MARKER,
            'displayplacer "id:REAL res:1920x1080 origin:(0,0) degree:0"',
        ])

        assert [d.id for d in parse_report(report)] == ["REAL"]

    def test_only_examples_fails(self):
        report = 'displayplacer "id:<screenId> res:<width>x<height> origin:(<x>,<y>) degree:0"\n'

        with pytest.raises(ParseFailure) as exc_info:
            parse_report(report)
        assert exc_info.value.kind is ErrorKind.PARSE_FAILURE

    def test_marker_without_invocation_fails(self):
        report = "\n".join([
            MARKER,
            "",
            "Example: id:A origin:(0,0) is how a clause looks",
            'displayplacer "id:A res:1920x1080"',
        ])

        with pytest.raises(ParseFailure):
            parse_report(report)

    def test_empty_report_fails(self):
        with pytest.raises(ParseFailure):
            parse_report("")

    def test_segments_without_id_are_skipped(self):
        report = "\n".join([
            MARKER,
            'displayplacer "res:1920x1080 origin:(0,0)" "id:B origin:(0,0)"',
        ])

        assert [d.id for d in parse_report(report)] == ["B"]

    def test_configuration_keeps_raw_output(self):
        config = parse_configuration(SAMPLE_REPORT)

        assert config.raw_output == SAMPLE_REPORT
        assert len(config.displays) == 2
        assert config.find(SIDE_ID).rotation == 90
        assert config.find("missing") is None


class TestCommandBuilding:
    def test_toggle_argument(self):
        assert build_toggle_argument("ABC", False) == "id:ABC enabled:false"
        assert build_toggle_argument("ABC", True) == "id:ABC enabled:true"

    def test_extract_apply_command(self):
        command = extract_apply_command(SAMPLE_REPORT)

        assert command.startswith(f'"id:{MAIN_ID} ')
        assert command.endswith('degree:90"')

    def test_extract_apply_command_without_marker(self):
        assert extract_apply_command("nothing here") is None

    def test_unquoted_config_is_one_argument(self):
        config = "id:A res:1920x1080 origin:(0,0) degree:0"
        assert build_apply_arguments(config) == [config]

    def test_quoted_config_splits_per_display(self):
        args = build_apply_arguments('"id:A origin:(0,0)" "id:B origin:(1920,0)"')
        assert args == ["id:A origin:(0,0)", "id:B origin:(1920,0)"]

    def test_unbalanced_quotes_are_passed_verbatim(self):
        assert build_apply_arguments('"id:A origin:(0,0)') == ['"id:A origin:(0,0)']


class TestDisplayplacerClient:
    def test_list_displays(self, tmp_path, make_tool):
        report_file = tmp_path / "report.txt"
        report_file.write_text(SAMPLE_REPORT)
        tool = make_tool(f'[ "$1" = "list" ] && cat "{report_file}"')

        config = asyncio.run(DisplayplacerClient(tool=tool).list_displays())

        assert [d.id for d in config.displays] == [MAIN_ID, SIDE_ID]
        assert config.apply_command == extract_apply_command(SAMPLE_REPORT)

    def test_apply_passes_one_argument_per_clause(self, tmp_path, make_tool):
        args_file = tmp_path / "args.txt"
        tool = make_tool(f'printf "%s\\n" "$@" > "{args_file}"')

        asyncio.run(DisplayplacerClient(tool=tool).apply_config(extract_apply_command(SAMPLE_REPORT)))

        lines = args_file.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith(f"id:{MAIN_ID} ")
        assert lines[1].startswith(f"id:{SIDE_ID} ")

    def test_toggle_passes_single_argument(self, tmp_path, make_tool):
        args_file = tmp_path / "args.txt"
        tool = make_tool(f'printf "%s\\n" "$@" > "{args_file}"')

        asyncio.run(DisplayplacerClient(tool=tool).toggle_display_enabled("ABC", False))

        assert args_file.read_text().splitlines() == ["id:ABC enabled:false"]

    def test_non_zero_exit(self, make_tool):
        tool = make_tool('echo "Unable to find screen ABC" >&2\nexit 3')

        with pytest.raises(ExternalToolFailed) as exc_info:
            asyncio.run(DisplayplacerClient(tool=tool).apply_config("id:ABC enabled:true"))

        assert exc_info.value.kind is ErrorKind.EXTERNAL_TOOL_FAILED
        assert exc_info.value.returncode == 3
        assert "Unable to find screen ABC" in exc_info.value.stderr

    def test_failed_list_is_not_parsed(self, make_tool):
        """A failing tool is a process failure even if its output is garbage."""
        tool = make_tool('echo "garbage"\nexit 1')

        with pytest.raises(ExternalToolFailed):
            asyncio.run(DisplayplacerClient(tool=tool).list_displays())

    def test_unparsable_list_output(self, make_tool):
        tool = make_tool('echo "no screens here"')

        with pytest.raises(ParseFailure):
            asyncio.run(DisplayplacerClient(tool=tool).list_displays())

    def test_missing_tool(self, tmp_path):
        client = DisplayplacerClient(tool=str(tmp_path / "does-not-exist"))

        with pytest.raises(ExternalToolUnavailable) as exc_info:
            asyncio.run(client.list_displays())
        assert exc_info.value.kind is ErrorKind.EXTERNAL_TOOL_UNAVAILABLE

    def test_timeout(self, make_tool):
        tool = make_tool("exec sleep 5")
        client = DisplayplacerClient(tool=tool, timeout=0.2)

        with pytest.raises(ExternalToolTimeout) as exc_info:
            asyncio.run(client.list_displays())
        assert exc_info.value.kind is ErrorKind.EXTERNAL_TOOL_TIMEOUT

    def test_tool_path_from_environment(self, monkeypatch):
        monkeypatch.setenv("PLACER_PRESETS_TOOL", "/opt/bin/displayplacer")
        assert DisplayplacerClient().tool == "/opt/bin/displayplacer"
