"""Cancellable repeating task used to refresh the running timer display."""

from PySide6.QtCore import QTimer
from tt.common.logger import log


class RefreshTask:
    """Fires a callback every ``interval_ms`` on the Qt thread until cancelled.

    Each ``start`` hands the callback the epoch it was scheduled under. The
    owner compares that against its own epoch and drops ticks from a schedule
    it has since torn down, so a tick already queued when ``cancel`` ran can
    never commit stale state.
    """

    def __init__(self, interval_ms=1000, parent=None):
        self._timer = QTimer(parent)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self._fire)
        self._callback = None
        self._epoch = None

    @property
    def active(self):
        return self._epoch is not None

    @property
    def interval_ms(self):
        return self._timer.interval()

    def start(self, callback, epoch):
        self.cancel()
        self._callback = callback
        self._epoch = epoch
        self._timer.start()
        log.debug(f"Refresh task scheduled every {self._timer.interval()} ms under epoch {epoch}")

    def cancel(self):
        self._timer.stop()
        if self._epoch is not None:
            log.debug(f"Refresh task for epoch {self._epoch} cancelled")
        self._callback = None
        self._epoch = None

    def _fire(self):
        # A timeout can still be delivered after stop() if it was already queued
        if self._callback is None:
            return
        self._callback(self._epoch)
