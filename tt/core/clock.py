import time
from tt.util.misc import now_local


# Clock source for the timer engine. Durations come from monotonic seconds (clock change immunity), wall-clock
# datetimes are only used to stamp when a session ended.
class SystemClock:

    def monotonic(self):
        return time.monotonic()

    def now(self):
        return now_local()
