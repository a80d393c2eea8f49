import os
import tempfile

# Keep logs and stores written during tests out of the real user data folder. Has to happen before anything imports
# tt.common.setup, which builds PATHS at import time.
os.environ.setdefault("TIMETRACKER_HOME", tempfile.mkdtemp(prefix="timetracker-tests-"))
