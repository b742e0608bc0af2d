import logging
import os
import sys
from pathlib import Path


APP_DIR_NAME = "dpui"
TOOL_NAME = "displayplacer"
TOOL_ENV = "PLACER_PRESETS_TOOL"
LOG_FORMAT = "%(asctime)s [placer-presets] %(levelname)s %(message)s"


def get_app_dir():
    override = os.environ.get('PLACER_PRESETS_CONFIG_DIR')
    if override:
        d = Path(override)
    else:
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / ".config"))
        d = base / APP_DIR_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_presets_file():
    return get_app_dir() / "presets.json"


def get_settings_file():
    return get_app_dir() / "settings.json"


def get_tool_path():
    """displayplacer executable, overridable for testing and custom installs."""
    return os.environ.get(TOOL_ENV, TOOL_NAME)


def configure_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
