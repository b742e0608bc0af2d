"""
placer-presets CLI - Command line interface for display preset management.

Usage:
    placer-presets current                     Show current display configuration
    placer-presets list                        List all saved presets
    placer-presets apply <preset>              Apply a preset
    placer-presets save <name>                 Save current display config as preset
    placer-presets delete <preset>             Delete a preset
    placer-presets rename <preset> <new>       Rename a preset
    placer-presets hotkey <preset> [<keys>]    Show, set or clear (--clear) a hotkey
    placer-presets toggle <display-id> on|off  Enable or disable one display
    placer-presets info <preset>               Show detailed preset information
    placer-presets --version                   Show version
    placer-presets --help                      Show help

<preset> is a preset id or name.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from placer_presets import __version__
from placer_presets.config import configure_logging


def create_parser():
    parser = argparse.ArgumentParser(
        prog="placer-presets",
        description="placer-presets - Save and restore macOS display arrangements",
        epilog="Examples:\n"
               "  placer-presets list\n"
               "  placer-presets save \"Desk\" --hotkey Cmd+Shift+1\n"
               "  placer-presets apply \"Desk\"\n"
               "  placer-presets current\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"placer-presets {__version__}"
    )

    parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output in JSON format (for scripting)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug information to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # current command
    subparsers.add_parser("current", help="Show current display configuration")

    # list command
    list_parser = subparsers.add_parser("list", help="List all saved presets")
    list_parser.add_argument(
        "--detailed", "-d",
        action="store_true",
        help="Show detailed information for each preset"
    )

    # apply command
    apply_parser = subparsers.add_parser("apply", help="Apply a saved preset")
    apply_parser.add_argument("preset", help="Id or name of the preset to apply")

    # save command
    save_parser = subparsers.add_parser("save", help="Save current display configuration")
    save_parser.add_argument("name", help="Name for the new preset")
    save_parser.add_argument("--hotkey", help="Shortcut that applies the preset, e.g. Cmd+Shift+1")
    save_parser.add_argument(
        "--config", "-c",
        help="Store this displayplacer argument string instead of the current layout"
    )

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a preset")
    delete_parser.add_argument("preset", help="Id or name of the preset to delete")
    delete_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt"
    )

    # rename command
    rename_parser = subparsers.add_parser("rename", help="Rename a preset")
    rename_parser.add_argument("preset", help="Id or name of the preset")
    rename_parser.add_argument("new_name", help="New preset name")

    # hotkey command
    hotkey_parser = subparsers.add_parser("hotkey", help="Show, set or clear a preset hotkey")
    hotkey_parser.add_argument("preset", help="Id or name of the preset")
    hotkey_parser.add_argument("shortcut", nargs="?", help="New shortcut, e.g. Cmd+Shift+1")
    hotkey_parser.add_argument("--clear", action="store_true", help="Remove the hotkey")

    # toggle command
    toggle_parser = subparsers.add_parser("toggle", help="Enable or disable one display")
    toggle_parser.add_argument("display_id", help="Persistent display id")
    toggle_parser.add_argument("state", choices=["on", "off"])

    # info command
    info_parser = subparsers.add_parser("info", help="Show detailed preset information")
    info_parser.add_argument("preset", help="Id or name of the preset")

    return parser


def print_error(message: str, json_output: bool = False):
    """Print error message"""
    if json_output:
        print(json.dumps({"success": False, "error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)


def print_success(message: str, data: Optional[dict] = None, json_output: bool = False):
    """Print success message"""
    if json_output:
        result = {"success": True, "message": message}
        if data:
            result["data"] = data
        print(json.dumps(result, indent=2))
    else:
        print(message)


def make_controller():
    from placer_presets.controller import DisplayController
    from placer_presets.displayplacer import DisplayplacerClient
    from placer_presets.settings import Settings

    settings = Settings()
    client = DisplayplacerClient(tool=settings.tool_path, timeout=settings.tool_timeout)
    return DisplayController(client=client)


def resolve_preset(controller, ref):
    """Find a preset by id, falling back to its name"""
    from placer_presets.errors import PresetNotFound

    try:
        return controller.presets.get(ref)
    except PresetNotFound:
        preset = controller.presets.find_by_name(ref)
        if preset is None:
            raise
        return preset


def _print_display(display, index):
    state = "" if display.enabled else " (Disabled)"
    print(f"  Display {index}{state}: {display.id}")
    print(f"    Resolution: {display.resolution or 'Unknown'}")
    print(f"    Position:   ({display.origin[0]}, {display.origin[1]})")
    print(f"    Rotation:   {display.rotation}")


def cmd_current(args, controller):
    """Show current display configuration"""
    config = asyncio.run(controller.get_displays())
    displays = list(config.displays)

    if args.json:
        print(json.dumps({
            "success": True,
            "displays": [d.to_dict() for d in displays],
            "total": len(displays),
            "command": config.apply_command,
        }, indent=2))
        return 0

    print(f"Current Display Configuration ({len(displays)} displays):")
    print("-" * 50)
    displays_sorted = sorted(displays, key=lambda d: (d.origin[1], d.origin[0]))
    for i, display in enumerate(displays_sorted, 1):
        _print_display(display, i)
    return 0


def cmd_list(args, controller):
    """List all presets"""
    presets = controller.presets.list()

    if args.json:
        if args.detailed:
            data = [p.to_dict() for p in presets]
        else:
            data = [{"id": p.id, "name": p.name} for p in presets]
        print(json.dumps({"success": True, "presets": data}, indent=2))
        return 0

    if not presets:
        print("No presets saved yet.")
        print("\nUse 'placer-presets save <name>' to save your current display configuration.")
        return 0

    print(f"Saved Presets ({len(presets)}):")
    print("-" * 40)

    for preset in presets:
        if args.detailed:
            created = preset.created_at[:10] if preset.created_at else 'Unknown'
            print(f"  {preset.name}")
            print(f"    Id: {preset.id}  |  Hotkey: {preset.hotkey or '-'}  |  Created: {created}")
        else:
            print(f"  - {preset.name}")

    return 0


def cmd_apply(args, controller):
    """Apply a preset"""
    preset = resolve_preset(controller, args.preset)
    asyncio.run(controller.apply_preset(preset.id))
    print_success(f"Preset '{preset.name}' applied successfully.", json_output=args.json)
    return 0


def _check_hotkey_free(controller, shortcut, preset_id=None):
    """Normalize a shortcut and make sure no other stored preset uses it"""
    from placer_presets.errors import HotkeyAlreadyRegistered, HotkeyInvalidFormat
    from placer_presets.hotkey_manager import normalize_hotkey

    normalized = normalize_hotkey(shortcut)
    if normalized is None:
        raise HotkeyInvalidFormat(shortcut)
    for other in controller.presets.list():
        if other.id != preset_id and other.hotkey and normalize_hotkey(other.hotkey) == normalized:
            raise HotkeyAlreadyRegistered(normalized, other.id)
    return normalized


def cmd_save(args, controller):
    """Save current display configuration"""
    if not args.name.strip():
        print_error("Name can't be empty", args.json)
        return 1

    hotkey = None
    if args.hotkey:
        hotkey = _check_hotkey_free(controller, args.hotkey)

    config = args.config
    if config is None:
        current = asyncio.run(controller.get_displays())
        config = current.apply_command
        if not config:
            print_error("Could not determine the current display arrangement.", args.json)
            return 1

    preset = asyncio.run(controller.add_preset(args.name.strip(), config, hotkey))
    print_success(
        f"Preset '{preset.name}' saved successfully.",
        data={"id": preset.id},
        json_output=args.json
    )
    return 0


def cmd_delete(args, controller):
    """Delete a preset"""
    preset = resolve_preset(controller, args.preset)

    # Confirmation
    if not args.yes and not args.json:
        response = input(f"Are you sure you want to delete '{preset.name}'? [y/N] ")
        if response.lower() not in ('y', 'yes'):
            print("Cancelled.")
            return 0

    asyncio.run(controller.delete_preset(preset.id))
    print_success(f"Preset '{preset.name}' deleted.", json_output=args.json)
    return 0


def cmd_rename(args, controller):
    """Rename a preset"""
    if not args.new_name.strip():
        print_error("Name can't be empty", args.json)
        return 1

    preset = resolve_preset(controller, args.preset)
    asyncio.run(controller.update_preset(preset.id, name=args.new_name.strip()))
    print_success(
        f"Preset renamed from '{preset.name}' to '{args.new_name.strip()}'.",
        json_output=args.json
    )
    return 0


def cmd_hotkey(args, controller):
    """Show, set or clear the hotkey of a preset"""
    preset = resolve_preset(controller, args.preset)

    if args.clear:
        asyncio.run(controller.update_preset(preset.id, hotkey=None))
        print_success(f"Hotkey removed from '{preset.name}'.", json_output=args.json)
        return 0

    if not args.shortcut:
        if args.json:
            print(json.dumps({"success": True, "hotkey": preset.hotkey}))
        else:
            print(preset.hotkey or "Not set")
        return 0

    normalized = _check_hotkey_free(controller, args.shortcut, preset.id)
    asyncio.run(controller.update_preset(preset.id, hotkey=normalized))
    print_success(f"Hotkey for '{preset.name}' set to {normalized}.", json_output=args.json)
    return 0


def cmd_toggle(args, controller):
    """Enable or disable a display"""
    enabled = args.state == "on"

    async def toggle():
        # A fresh report lets the controller refuse to disable the last display
        await controller.get_displays()
        await controller.toggle_display(args.display_id, enabled)

    asyncio.run(toggle())
    print_success(
        f"Display {args.display_id} {'enabled' if enabled else 'disabled'}.",
        json_output=args.json
    )
    return 0


def cmd_info(args, controller):
    """Show detailed preset information"""
    from placer_presets.displayplacer import build_apply_arguments, parse_display_string

    preset = resolve_preset(controller, args.preset)
    displays = []
    for clause in build_apply_arguments(preset.config):
        display = parse_display_string(clause)
        if display is not None:
            displays.append(display)

    if args.json:
        data = preset.to_dict()
        data["displays"] = [d.to_dict() for d in displays]
        print(json.dumps({"success": True, **data}, indent=2))
        return 0

    print(f"Preset: {preset.name}")
    print("=" * 50)
    print(f"  Id:         {preset.id}")
    print(f"  Hotkey:     {preset.hotkey or 'Not set'}")
    print(f"  Created:    {preset.created_at or 'Unknown'}")
    print(f"  Displays:   {len(displays)}")
    print()
    print("Display Configuration:")
    print("-" * 50)
    for i, display in enumerate(displays, 1):
        _print_display(display, i)
    return 0


COMMANDS = {
    'current': cmd_current,
    'list': cmd_list,
    'apply': cmd_apply,
    'save': cmd_save,
    'delete': cmd_delete,
    'rename': cmd_rename,
    'hotkey': cmd_hotkey,
    'toggle': cmd_toggle,
    'info': cmd_info,
}


def run_cli(args=None, controller=None):
    """Main CLI entry point"""
    from placer_presets.errors import PlacerPresetsError

    parser = create_parser()
    parsed_args = parser.parse_args(args)
    configure_logging(parsed_args.verbose)

    if not parsed_args.command:
        parser.print_help()
        return 0

    cmd_func = COMMANDS.get(parsed_args.command)
    if cmd_func is None:
        parser.print_help()
        return 1

    try:
        return cmd_func(parsed_args, controller or make_controller())
    except (PlacerPresetsError, ValueError) as e:
        print_error(str(e), parsed_args.json)
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
