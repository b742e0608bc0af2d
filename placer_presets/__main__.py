"""
placer-presets - Display arrangement presets for macOS

Usage:
    python -m placer_presets              Launch the menu bar application
    python -m placer_presets <command>    Run CLI command

CLI Commands:
    current                 Show current display configuration
    list                    List all saved presets
    apply <preset>          Apply a preset
    save <name>             Save current display layout
    delete <preset>         Delete a preset
    rename <preset> <new>   Rename a preset
    hotkey <preset> [keys]  Show, set or clear a hotkey
    toggle <id> on|off      Enable or disable a display
    info <preset>           Show preset details
    --help                  Show help
    --version               Show version
"""

import sys

from placer_presets.config import configure_logging


def check_dependencies():
    """Check if required GUI dependencies are installed"""
    missing = []

    try:
        import PyQt6  # noqa: F401
    except ImportError:
        missing.append('PyQt6')

    try:
        import pynput  # noqa: F401
    except ImportError:
        missing.append('pynput')

    return missing


def main():
    """Main entry point - routes to the tray app or CLI based on arguments"""
    from placer_presets.cli import COMMANDS

    is_cli_mode = len(sys.argv) > 1 and (
        sys.argv[1] in COMMANDS or
        sys.argv[1].startswith('-')
    )

    if is_cli_mode:
        from placer_presets.cli import run_cli
        sys.exit(run_cli())

    configure_logging()
    missing = check_dependencies()
    if missing:
        print("ERROR: Missing required dependencies!", file=sys.stderr)
        print(f"Missing: {', '.join(missing)}", file=sys.stderr)
        print("\nPlease install dependencies:", file=sys.stderr)
        print("  pip install -r requirements.txt", file=sys.stderr)
        sys.exit(1)

    from placer_presets.tray import TrayApp
    app = TrayApp()
    app.run()


if __name__ == "__main__":
    main()
