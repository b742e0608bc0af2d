"""
Error types for placer-presets.

Every failure that crosses a public boundary is a PlacerPresetsError with a
`kind` from the closed ErrorKind enum, so callers can branch on the kind
instead of the message text.
"""

from enum import Enum


class ErrorKind(Enum):
    EXTERNAL_TOOL_UNAVAILABLE = "external_tool_unavailable"
    EXTERNAL_TOOL_FAILED = "external_tool_failed"
    EXTERNAL_TOOL_TIMEOUT = "external_tool_timeout"
    PARSE_FAILURE = "parse_failure"
    STORE_READ_FAILURE = "store_read_failure"
    STORE_WRITE_FAILURE = "store_write_failure"
    PRESET_NOT_FOUND = "preset_not_found"
    HOTKEY_INVALID_FORMAT = "hotkey_invalid_format"
    HOTKEY_ALREADY_REGISTERED = "hotkey_already_registered"


class PlacerPresetsError(Exception):
    """Base exception for all placer-presets failures."""

    kind: ErrorKind


class ExternalToolUnavailable(PlacerPresetsError):
    """Raised when the display tool could not be started at all."""

    kind = ErrorKind.EXTERNAL_TOOL_UNAVAILABLE

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"Failed to execute {tool}: {reason}")


class ExternalToolFailed(PlacerPresetsError):
    """Raised when the display tool exits with a non-zero status."""

    kind = ErrorKind.EXTERNAL_TOOL_FAILED

    def __init__(self, tool: str, returncode: int, stderr: str):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"{tool} failed: {detail}")


class ExternalToolTimeout(PlacerPresetsError):
    """Raised when the display tool does not finish within the timeout."""

    kind = ErrorKind.EXTERNAL_TOOL_TIMEOUT

    def __init__(self, tool: str, timeout: float):
        self.tool = tool
        self.timeout = timeout
        super().__init__(f"{tool} did not finish within {timeout:g}s")


class ParseFailure(PlacerPresetsError):
    """Raised when a display report yields no displays."""

    kind = ErrorKind.PARSE_FAILURE

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class StoreReadFailure(PlacerPresetsError):
    """Raised when the preset file exists but cannot be read or understood."""

    kind = ErrorKind.STORE_READ_FAILURE

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read presets from {path}: {reason}")


class StoreWriteFailure(PlacerPresetsError):
    """Raised when the preset file cannot be written."""

    kind = ErrorKind.STORE_WRITE_FAILURE

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write presets to {path}: {reason}")


class PresetNotFound(PlacerPresetsError):
    """Raised when no preset matches the requested id."""

    kind = ErrorKind.PRESET_NOT_FOUND

    def __init__(self, preset_id: str):
        self.preset_id = preset_id
        super().__init__(f"Preset not found: {preset_id}")


class HotkeyInvalidFormat(PlacerPresetsError):
    """Raised when a shortcut string does not follow the hotkey grammar."""

    kind = ErrorKind.HOTKEY_INVALID_FORMAT

    def __init__(self, shortcut: str):
        self.shortcut = shortcut
        super().__init__(
            f"Invalid shortcut format: {shortcut!r}. Examples: Cmd+Shift+1, Ctrl+Alt+D"
        )


class HotkeyAlreadyRegistered(PlacerPresetsError):
    """Raised when registering a shortcut that already has a binding."""

    kind = ErrorKind.HOTKEY_ALREADY_REGISTERED

    def __init__(self, shortcut: str, preset_id=None):
        self.shortcut = shortcut
        self.preset_id = preset_id
        super().__init__(f"Shortcut {shortcut} is already in use")
