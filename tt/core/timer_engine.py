from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from tt.common.logger import log
from tt.core.clock import SystemClock

# Anything shorter than this (in seconds) is treated as an accidental click and never becomes a session.
MINIMUM_SESSION_DURATION = 1.0


class TimerStatus(Enum):
    STOPPED = "Stopped"
    RUNNING = "Running"
    PAUSED = "Paused"


# What a successful stop() hands back. The engine never persists this itself.
@dataclass(frozen=True)
class SessionData:
    duration: float
    end_time: datetime

    @property
    def start_time(self):
        return self.end_time - timedelta(seconds=self.duration)


# Stopwatch-style engine with pause/resume accumulation. Run segments are measured with the clock's monotonic seconds,
# so a wall-clock change mid-session doesn't bend the total.
class TimerEngine:

    def __init__(self, clock=None, refresh=None, minimum_duration=MINIMUM_SESSION_DURATION):
        self.clock = clock or SystemClock()
        self.minimum_duration = float(minimum_duration)
        self.status = TimerStatus.STOPPED
        self.elapsed_time = 0.0
        self.short_session_notice = False

        self._refresh = refresh
        self._segment_start = None  # monotonic, only set while running
        self._accumulated = 0.0     # completed run segments since the last full stop
        self._epoch = 0             # bumped on every transition, stale refresh ticks compare against it
        self._listeners = []

    # Live running total straight from the clock, regardless of when the last refresh tick landed.
    @property
    def current_elapsed(self):
        if self.status is TimerStatus.RUNNING and self._segment_start is not None:
            return max(0.0, self._accumulated + (self.clock.monotonic() - self._segment_start))
        return self.elapsed_time

    @property
    def accumulated(self):
        return self._accumulated

    @property
    def is_running(self):
        return self.status is TimerStatus.RUNNING

    @property
    def is_stopped(self):
        return self.status is TimerStatus.STOPPED

    # Registers a zero-argument callback fired after every transition and accepted refresh tick.
    def subscribe(self, callback):
        self._listeners.append(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback()

    # Start and resume are the same button. Starting from STOPPED begins a fresh total, resuming from PAUSED keeps it.
    def start(self):
        if self.status is TimerStatus.RUNNING:
            log.debug("start() ignored, timer already running")
            return
        self._cancel_refresh()

        if self.status is TimerStatus.STOPPED:
            self.elapsed_time = 0.0
            self._accumulated = 0.0
            self.short_session_notice = False

        self._segment_start = self.clock.monotonic()
        self.status = TimerStatus.RUNNING
        self._epoch += 1
        if self._refresh is not None:
            self._refresh.start(self._on_refresh, self._epoch)
        log.debug(f"Timer running from mono {self._segment_start}, carrying {self._accumulated:.3f}s")
        self._notify()

    def pause(self):
        if self.status is not TimerStatus.RUNNING or self._segment_start is None:
            log.debug(f"pause() ignored while {self.status.value}")
            return
        self._cancel_refresh()

        now = self.clock.monotonic()
        self._accumulated += max(0.0, now - self._segment_start)
        self.elapsed_time = self._accumulated
        self._segment_start = None
        self.status = TimerStatus.PAUSED
        log.debug(f"Timer paused at mono {now} with {self._accumulated:.3f}s accumulated")
        self._notify()

    # Returns SessionData when the total reaches the minimum, otherwise None and raises short_session_notice so the
    # caller can tell the user why nothing was saved.
    def stop(self):
        if self.status is TimerStatus.STOPPED:
            log.debug("stop() ignored, timer already stopped")
            return None

        end_time = self.clock.now()
        if self.status is TimerStatus.RUNNING and self._segment_start is not None:
            duration = self._accumulated + max(0.0, self.clock.monotonic() - self._segment_start)
        else:
            duration = self._accumulated

        self._reset()

        if duration >= self.minimum_duration:
            log.info(f"Timer stopped with {duration:.3f}s, ending {end_time.isoformat()}")
            self._notify()
            return SessionData(duration=duration, end_time=end_time)

        self.short_session_notice = True
        log.info(f"Timer stopped after only {duration:.3f}s, session too short to save")
        self._notify()
        return None

    def discard(self):
        if self.status is TimerStatus.STOPPED:
            log.debug("discard() ignored, timer already stopped")
            return
        log.info(f"Discarded timer with {self.current_elapsed:.3f}s")
        self._reset()
        self._notify()

    def acknowledge_notice(self):
        self.short_session_notice = False

    def _reset(self):
        self._cancel_refresh()
        self._segment_start = None
        self._accumulated = 0.0
        self.elapsed_time = 0.0
        self.status = TimerStatus.STOPPED

    def _cancel_refresh(self):
        self._epoch += 1
        if self._refresh is not None:
            self._refresh.cancel()

    # Presentation refresh only. Stop and pause always read the clock themselves.
    def _on_refresh(self, epoch):
        if epoch != self._epoch or self.status is not TimerStatus.RUNNING:
            log.debug(f"Dropped stale refresh tick from epoch {epoch} (current {self._epoch})")
            return
        self.elapsed_time = self.current_elapsed
        self._notify()
