from PyQt6.QtWidgets import QApplication, QSystemTrayIcon, QMenu
from PyQt6.QtGui import QIcon, QPixmap, QPainter, QColor, QAction
from PyQt6.QtCore import QObject, Qt
from tkinter import Tk, simpledialog, messagebox
from placer_presets.async_runner import AsyncRunner
from placer_presets.controller import DisplayController
from placer_presets.displayplacer import DisplayplacerClient
from placer_presets.errors import PlacerPresetsError
from placer_presets.hotkey_manager import HotkeyManager
from placer_presets.hotkey_registry import HotkeyRegistry
from placer_presets.preset_service import PresetService
from placer_presets.settings import Settings
import logging
import sys


log = logging.getLogger(__name__)


def _dialog_root():
    root = Tk()
    root.withdraw()
    root.attributes('-topmost', True)
    return root


class TrayApp(QObject):
    def __init__(self):
        super().__init__()
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)

        self.settings = Settings()
        self.hotkey_manager = HotkeyManager()
        self.hotkeys = HotkeyRegistry(self.hotkey_manager)
        self.controller = DisplayController(
            client=DisplayplacerClient(tool=self.settings.tool_path, timeout=self.settings.tool_timeout),
            presets=PresetService(),
            hotkeys=self.hotkeys,
        )
        self.displays = None
        self.runner = AsyncRunner()

        # Queued: these fire from the runner's loop thread or the pynput thread.
        # Reconcile after every store change already requests a menu rebuild.
        queued = Qt.ConnectionType.QueuedConnection
        self.hotkeys.menu_rebuild_requested.connect(self.build_menu, type=queued)
        self.controller.apply_preset_requested.connect(self.apply_preset, type=queued)
        self.controller.refresh_displays_requested.connect(self.refresh_displays, type=queued)

        self.setup_tray()
        self.setup_global_hotkeys()
        self.refresh_displays()

    def run_async(self, coro, on_success=None, error_title="Error"):
        """Run a controller coroutine off the GUI thread; report failures in a dialog"""
        def done(future):
            try:
                result = future.result()
            except (PlacerPresetsError, ValueError) as e:
                self.show_error(error_title, str(e))
                return
            if on_success is not None:
                on_success(result)

        self.runner.submit(coro, done)

    def create_icon(self):
        size = 64
        pixmap = QPixmap(size, size)
        pixmap.fill(Qt.GlobalColor.transparent)

        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor('#0969da'))

        # Two screens side by side
        painter.drawRoundedRect(6, 14, 30, 22, 2, 2)
        painter.drawRoundedRect(38, 18, 20, 14, 2, 2)
        painter.drawRect(17, 38, 8, 3)
        painter.drawRect(12, 41, 18, 3)

        painter.end()
        return QIcon(pixmap)

    def setup_tray(self):
        self.tray = QSystemTrayIcon(self.create_icon(), self.app)
        self.tray.setToolTip("Display Presets")
        self.build_menu()
        self.tray.show()

    def setup_global_hotkeys(self):
        def report(conflicts):
            if conflicts:
                lines = [f"{c.shortcut}: {c.reason}" for c in conflicts]
                self.show_error("Some Hotkeys Are Unavailable", "\n".join(lines))

        self.run_async(self.controller.sync_hotkeys(), report, "Hotkeys Not Registered")

    def build_menu(self, *_):
        menu = QMenu()

        displays_menu = menu.addMenu("Displays")
        if self.displays:
            for display in self.displays.displays:
                label = f"{display.id[:8]}  {display.resolution or '?'}  ({display.origin[0]}, {display.origin[1]})"
                action = QAction(label, displays_menu)
                action.setCheckable(True)
                action.setChecked(display.enabled)
                action.triggered.connect(
                    lambda checked, d=display.id: self.toggle_display(d, checked)
                )
                displays_menu.addAction(action)
        else:
            no_displays = QAction("(No display report)", displays_menu)
            no_displays.setEnabled(False)
            displays_menu.addAction(no_displays)

        refresh_action = QAction("Refresh Displays", menu)
        refresh_action.triggered.connect(self.controller.request_refresh)
        menu.addAction(refresh_action)

        menu.addSeparator()

        save_action = QAction("Save current layout as preset...", menu)
        save_action.triggered.connect(self.save_preset)
        menu.addAction(save_action)

        presets_menu = menu.addMenu("Presets")
        try:
            presets = self.controller.presets.list()
        except PlacerPresetsError as e:
            log.error("Cannot list presets: %s", e)
            presets = []

        if presets:
            for preset in presets:
                title = f"{preset.name}    {preset.hotkey}" if preset.hotkey else preset.name
                preset_submenu = presets_menu.addMenu(title)

                apply_action = QAction("Apply", preset_submenu)
                apply_action.triggered.connect(lambda checked, p=preset.id: self.apply_preset(p))
                preset_submenu.addAction(apply_action)

                rename_action = QAction("Rename...", preset_submenu)
                rename_action.triggered.connect(lambda checked, p=preset.id: self.rename_preset(p))
                preset_submenu.addAction(rename_action)

                hotkey_action = QAction("Set hotkey...", preset_submenu)
                hotkey_action.triggered.connect(lambda checked, p=preset.id: self.set_hotkey(p))
                preset_submenu.addAction(hotkey_action)

                delete_action = QAction("Delete", preset_submenu)
                delete_action.triggered.connect(lambda checked, p=preset.id: self.delete_preset(p))
                preset_submenu.addAction(delete_action)
        else:
            no_presets = QAction("(No presets)", presets_menu)
            no_presets.setEnabled(False)
            presets_menu.addAction(no_presets)

        menu.addSeparator()

        exit_action = QAction("Quit", menu)
        exit_action.triggered.connect(self.exit_app)
        menu.addAction(exit_action)

        self.tray.setContextMenu(menu)
        self._menu = menu

    def show_error(self, title, message):
        if not self.settings.show_error_messages:
            log.error("%s: %s", title, message)
            return
        root = _dialog_root()
        messagebox.showerror(title, message, parent=root)
        root.destroy()

    def refresh_displays(self):
        def done(future):
            try:
                self.displays = future.result()
            except PlacerPresetsError as e:
                self.displays = None
                self.show_error("Cannot Read Displays", str(e))
            self.build_menu()

        self.runner.submit(self.controller.get_displays(), done)

    def toggle_display(self, display_id, enabled):
        def done(future):
            try:
                future.result()
            except (PlacerPresetsError, ValueError) as e:
                self.show_error("Display Not Changed", str(e))
                # Undo the checkmark Qt already flipped
                self.build_menu()

        self.runner.submit(self.controller.toggle_display(display_id, enabled), done)

    def save_preset(self):
        root = _dialog_root()
        name = simpledialog.askstring(
            "Save Current Display Layout",
            "This will save your current display arrangement as a preset.\n\n"
            "Enter a name for this preset:",
            parent=root
        )
        root.destroy()
        if not name or not name.strip():
            return

        async def save():
            current = await self.controller.get_displays()
            if not current.apply_command:
                raise ValueError("Could not determine the current display arrangement.")
            return await self.controller.add_preset(name.strip(), current.apply_command)

        self.run_async(save(), error_title="Failed to Save Preset")

    def apply_preset(self, preset_id):
        def done(future):
            try:
                preset = future.result()
            except PlacerPresetsError as e:
                self.show_error(
                    "Failed to Apply Configuration",
                    f"{e}\n\nMake sure all displays from this preset are currently connected."
                )
                return
            if self.settings.notify_preset_applied:
                self.tray.showMessage("Display Presets", f"Preset '{preset.name}' applied.")

        self.runner.submit(self.controller.apply_preset(preset_id), done)

    def rename_preset(self, preset_id):
        try:
            preset = self.controller.presets.get(preset_id)
        except PlacerPresetsError as e:
            self.show_error("Error", str(e))
            return

        root = _dialog_root()
        new_name = simpledialog.askstring(
            "Rename Preset",
            f"Enter a new name for preset '{preset.name}':",
            initialvalue=preset.name,
            parent=root
        )
        root.destroy()
        if new_name and new_name.strip() and new_name != preset.name:
            self.run_async(
                self.controller.update_preset(preset_id, name=new_name.strip()),
                error_title="Failed to Rename Preset"
            )

    def set_hotkey(self, preset_id):
        try:
            preset = self.controller.presets.get(preset_id)
        except PlacerPresetsError as e:
            self.show_error("Error", str(e))
            return

        root = _dialog_root()
        shortcut = simpledialog.askstring(
            "Set Hotkey",
            f"Shortcut for '{preset.name}' (e.g. Cmd+Shift+1).\n"
            f"Leave empty to remove the hotkey:",
            initialvalue=preset.hotkey or "",
            parent=root
        )
        root.destroy()
        if shortcut is None:
            return

        if shortcut.strip():
            coro = self.controller.register_hotkey(preset_id, shortcut)
        else:
            coro = self.controller.unregister_hotkey(preset_id)
        self.run_async(coro, error_title="Hotkey Not Set")

    def delete_preset(self, preset_id):
        try:
            preset = self.controller.presets.get(preset_id)
        except PlacerPresetsError as e:
            self.show_error("Error", str(e))
            return

        confirm = True
        if self.settings.confirm_preset_delete:
            root = _dialog_root()
            confirm = messagebox.askyesno(
                "Delete Preset",
                f"Are you sure you want to delete preset '{preset.name}'?\n\n"
                f"This action cannot be undone.",
                parent=root
            )
            root.destroy()

        if confirm:
            self.run_async(
                self.controller.delete_preset(preset_id),
                error_title="Failed to Delete Preset"
            )

    def exit_app(self):
        self.hotkeys.unregister_all()
        self.hotkey_manager.stop_listening()
        self.runner.stop()
        self.tray.hide()
        self.app.quit()

    def run(self):
        sys.exit(self.app.exec())
