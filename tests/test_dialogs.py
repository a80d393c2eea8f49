"""Tests for the session edit form's time handling.

Covers: tt.ui.dialogs
"""

import unittest
from datetime import datetime, timedelta, timezone

# Timer-recorded sessions carry sub-second precision
T = datetime(2025, 3, 26, 12, 0, 0, 734512, tzinfo=timezone.utc)


class TestResolveTime(unittest.TestCase):

    def test_untouched_field_keeps_original_precision(self):
        from tt.ui.dialogs import _resolve_time, _to_qdatetime
        self.assertEqual(_resolve_time(_to_qdatetime(T), T), T)

    def test_edited_field_takes_new_value(self):
        from tt.ui.dialogs import _resolve_time, _to_qdatetime
        edited = _to_qdatetime(T).addSecs(90)
        resolved = _resolve_time(edited, T)
        self.assertEqual(resolved, T.replace(microsecond=0) + timedelta(seconds=90))
        self.assertIsNotNone(resolved.tzinfo)

    def test_project_only_edit_keeps_duration(self):
        from tt.ui.dialogs import _resolve_time, _to_qdatetime
        start = T - timedelta(seconds=3599.5)
        new_start = _resolve_time(_to_qdatetime(start), start)
        new_end = _resolve_time(_to_qdatetime(T), T)
        self.assertEqual((new_end - new_start).total_seconds(), 3599.5)


if __name__ == "__main__":
    unittest.main()
