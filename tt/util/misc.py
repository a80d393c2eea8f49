import math
from datetime import datetime


# Simply returns the current local time as an aware datetime.
def now_local():
    return datetime.now().astimezone()

# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return now_local().isoformat()


def format_duration(seconds):
    """Format a duration in seconds as HH:MM:SS.

    Rounds to the nearest whole second. Negative, NaN and None values clamp to zero.
    """
    if seconds is None or math.isnan(seconds) or seconds < 0:
        seconds = 0
    # Half-up, round() would send 2.5 to 2
    seconds = int(math.floor(seconds + 0.5))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"

# Clock-only rendering for session rows, e.g. 14:03:11
def format_clock(dt):
    return dt.astimezone().strftime("%H:%M:%S")
