import os
import sys
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Works out where all user data lives. TIMETRACKER_HOME wins if set (handy for tests and portable installs),
# otherwise APPDATA on Windows and a dot folder in the home directory everywhere else.
def _default_data_root():
    override = os.getenv("TIMETRACKER_HOME")
    if override:
        return Path(override)
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        if not appdata:
            raise RuntimeError("Missing APPDATA environment variable, cannot determine data directories.")
        return Path(appdata) / "TimeTracker"
    return Path.home() / ".timetracker"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path

    store: Path
    preferences: Path

    @staticmethod
    def build(data_root: Path | None = None):
        data = ensure_directory(data_root or _default_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")

        return ProjectPaths(
            data = data,
            logs = logs,
            store = data / "sessions.json",
            preferences = data / "preferences.json",
        )
PATHS = ProjectPaths.build()
