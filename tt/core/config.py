import json
import os
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.errors import PreferenceError

# Preference key for the project the timer was last attached to.
LAST_SELECTED_PROJECT_ID = "lastSelectedProjectID"

# Default values for the settings stored alongside preferences.
_SETTINGS_DEFAULTS = {
    "refresh_interval_ms": 1000,
    "confirm_delete": True,
    "always_on_top": False,
}

# Expected type per setting, anything else gets defaulted on load.
_SETTINGS_TYPES = {
    "refresh_interval_ms": int,
    "confirm_delete": bool,
    "always_on_top": bool,
}


# Small key-value store backed by preferences.json. Every set/remove writes through to disk immediately, so there's
# never anything to flush on exit.
class PreferenceStore:

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else PATHS.preferences
        self._values = self._load()

    # Loads preferences, defaulting any missing or mistyped settings. Unreadable files fall back to defaults.
    def _load(self):
        if not self.path.exists():
            log.info(f"No preferences found at '{self.path}', using defaults.")
            return dict(_SETTINGS_DEFAULTS)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                values = json.load(f)
            if not isinstance(values, dict):
                raise TypeError(f"expected a JSON object, got {type(values).__name__}")
        except (json.JSONDecodeError, OSError, TypeError):
            log.warning(f"Ran into an error while loading '{self.path}', falling back to default preferences.",
                        exc_info=True)
            return dict(_SETTINGS_DEFAULTS)

        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            expected = _SETTINGS_TYPES[key]
            value = values.get(key)
            # bool is a subclass of int, don't let True pass as an interval
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                defaulted_values.add(key)
                values[key] = default
        if values["refresh_interval_ms"] <= 0:
            defaulted_values.add("refresh_interval_ms")
            values["refresh_interval_ms"] = _SETTINGS_DEFAULTS["refresh_interval_ms"]

        if LAST_SELECTED_PROJECT_ID in values and not isinstance(values[LAST_SELECTED_PROJECT_ID], str):
            defaulted_values.add(LAST_SELECTED_PROJECT_ID)
            del values[LAST_SELECTED_PROJECT_ID]

        if defaulted_values:
            log.warning(f"Loaded preferences from '{self.path}', but with missing values that were defaulted: "
                        f"{', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded preferences from '{self.path}'.")
        return values

    # Writes the given values, only adopting them in memory once they're on disk.
    def _save(self, values):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PreferenceError(f"Could not write preferences '{self.path}': {e}") from e
        self._values = values

    def get(self, key, default=None):
        return self._values.get(key, default)

    def set(self, key, value):
        self._save({**self._values, key: value})
        log.debug(f"Preference '{key}' set to {value!r}")

    def remove(self, key):
        if key in self._values:
            self._save({k: v for k, v in self._values.items() if k != key})
            log.debug(f"Preference '{key}' removed")

    def settings(self):
        return {key: self._values.get(key, default) for key, default in _SETTINGS_DEFAULTS.items()}
