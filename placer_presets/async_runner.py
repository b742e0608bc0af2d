import asyncio
import logging
import threading

from PyQt6.QtCore import QObject, Qt, pyqtSignal


log = logging.getLogger(__name__)


class AsyncRunner(QObject):
    """
    Runs coroutines on a private event loop thread so the GUI thread never
    waits on displayplacer. Completion callbacks are delivered through a
    queued signal, i.e. on the thread that owns the runner.
    """

    _finished = pyqtSignal(object, object)  # concurrent Future, callback

    def __init__(self):
        super().__init__()
        self.loop = asyncio.new_event_loop()
        self._finished.connect(self._deliver, type=Qt.ConnectionType.QueuedConnection)
        self._thread = threading.Thread(target=self._run_loop, name="placer-presets-async", daemon=True)
        self._thread.start()

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_forever()
        finally:
            self.loop.close()

    def submit(self, coro, callback=None):
        """Schedule `coro`; `callback(future)` runs later on the owner's thread."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        future.add_done_callback(lambda f: self._finished.emit(f, callback))
        return future

    def _deliver(self, future, callback):
        if callback is not None:
            callback(future)
        elif future.exception() is not None:
            log.error("Background task failed: %s", future.exception())

    def stop(self, timeout=5.0):
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)
