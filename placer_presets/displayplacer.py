"""
Bindings for the displayplacer command-line tool.

`displayplacer list` prints a human readable description of every screen,
several illustrative example commands, and finally the one command that would
recreate the current arrangement:

    Execute the command below to set your screens to the current arrangement...

    displayplacer "id:37D8832A res:2560x1440 hz:60 color_depth:8 enabled:true scaling:off origin:(0,0) degree:0" "id:..."

Only that last command is authoritative. The parser ignores everything before
the marker line and only trusts tool invocations that carry both an `id:` and
an `origin:` token, so the examples in the help text are never mistaken for
real screens.
"""

import asyncio
import logging
import re
import shlex
from typing import List, Optional, Tuple

from placer_presets.config import TOOL_NAME, get_tool_path
from placer_presets.errors import (
    ExternalToolFailed,
    ExternalToolTimeout,
    ExternalToolUnavailable,
    ParseFailure,
)
from placer_presets.models import Display, DisplayConfiguration, STANDARD_ROTATIONS
from placer_presets.settings import DEFAULT_TOOL_TIMEOUT


log = logging.getLogger(__name__)

EXECUTE_MARKER = "Execute the command below"
ID_TOKEN = "id:"
ORIGIN_TOKEN = "origin:"
DEFAULT_ORIGIN = (0, 0)

# Plain signed decimal integers only: no spaces, no underscores
_COORDINATES = re.compile(r"([+-]?[0-9]+),([+-]?[0-9]+)")


def parse_coordinates(s: str) -> Optional[Tuple[int, int]]:
    """
    Parse "(x,y)" into a pair of signed ints.
    Returns None for anything that is not exactly two integers.
    """
    if s.startswith('('):
        s = s[1:]
    if s.endswith(')'):
        s = s[:-1]

    match = _COORDINATES.fullmatch(s)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_display_string(config: str) -> Optional[Display]:
    """
    Parse one quoted display clause like
    "id:XXX res:2560x1440 origin:(0,0) degree:0".
    Returns None if the clause has no id.
    """
    display_id = ""
    resolution = None
    origin = DEFAULT_ORIGIN
    rotation = 0
    extras = {}
    enabled = "disabled" not in config

    for part in config.split():
        key, sep, value = part.partition(':')
        if not sep:
            continue

        if key == 'id':
            display_id = value
        elif key == 'res':
            resolution = value or None
        elif key == 'origin':
            coords = parse_coordinates(value)
            if coords is None:
                log.debug("Unparsable origin %r, using %s", value, DEFAULT_ORIGIN)
            else:
                origin = coords
        elif key == 'degree':
            try:
                rotation = int(value)
            except ValueError:
                log.debug("Unparsable degree %r, using 0", value)
                rotation = 0
        elif key == 'hz':
            extras['hertz'] = value
        elif key in ('color_depth', 'scaling'):
            extras[key] = value

    if not display_id:
        return None

    if rotation not in STANDARD_ROTATIONS:
        log.warning("Display %s reports non-standard rotation %d", display_id, rotation)

    return Display(
        id=display_id,
        resolution=resolution,
        origin=origin,
        rotation=rotation,
        enabled=enabled,
        **extras
    )


def _command_lines(output: str, tool: str = TOOL_NAME):
    """Yield the real tool invocations that follow the execute marker."""
    found_marker = False
    for line in output.splitlines():
        if EXECUTE_MARKER in line:
            found_marker = True
            continue
        if not found_marker:
            continue

        stripped = line.strip()
        if stripped.startswith(tool) and ID_TOKEN in stripped and ORIGIN_TOKEN in stripped:
            yield stripped


def parse_report(output: str) -> List[Display]:
    """
    Turn `displayplacer list` output into Display records.

    Individual fields are parsed leniently; a report that yields no display
    at all raises ParseFailure.
    """
    displays = []
    for line in _command_lines(output):
        for segment in line.split('"'):
            if ID_TOKEN not in segment:
                continue
            display = parse_display_string(segment)
            if display is not None:
                displays.append(display)

    if not displays:
        raise ParseFailure("No displays found in displayplacer output")
    return displays


def extract_apply_command(output: str) -> Optional[str]:
    """Arguments of the authoritative command line, suitable as a preset config."""
    for line in _command_lines(output):
        return line[len(TOOL_NAME):].strip()
    return None


def parse_configuration(output: str) -> DisplayConfiguration:
    return DisplayConfiguration(
        displays=tuple(parse_report(output)),
        raw_output=output,
        apply_command=extract_apply_command(output),
    )


def build_toggle_argument(display_id: str, enabled: bool) -> str:
    """The single argument that switches one display on or off."""
    return f"id:{display_id} enabled:{'true' if enabled else 'false'}"


def build_apply_arguments(config: str) -> List[str]:
    """
    Split a stored config into argv entries.

    A config copied from the tool's own output holds one quoted clause per
    screen and becomes one argument per clause. Anything else is passed
    through unchanged as a single argument.
    """
    config = config.strip()
    if '"' not in config:
        return [config]
    try:
        args = shlex.split(config)
    except ValueError:
        log.debug("Unbalanced quotes in config, passing it verbatim")
        return [config]
    return args or [config]


class DisplayplacerClient:
    """Runs displayplacer as a subprocess without blocking the event loop."""

    def __init__(self, tool=None, timeout=DEFAULT_TOOL_TIMEOUT):
        self.tool = tool or get_tool_path()
        self.timeout = timeout

    async def _run(self, *args) -> str:
        log.debug("Running %s %s", self.tool, " ".join(shlex.quote(a) for a in args))
        try:
            proc = await asyncio.create_subprocess_exec(
                self.tool, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExternalToolUnavailable(self.tool, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise ExternalToolTimeout(self.tool, self.timeout) from None

        if proc.returncode != 0:
            raise ExternalToolFailed(
                self.tool, proc.returncode, stderr.decode('utf-8', errors='replace')
            )
        return stdout.decode('utf-8', errors='replace')

    async def list_displays(self) -> DisplayConfiguration:
        output = await self._run('list')
        return parse_configuration(output)

    async def apply_config(self, config: str) -> None:
        await self._run(*build_apply_arguments(config))

    async def toggle_display_enabled(self, display_id: str, enabled: bool) -> None:
        await self._run(build_toggle_argument(display_id, enabled))
