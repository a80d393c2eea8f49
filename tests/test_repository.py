"""Tests for the JSON session store.

Covers: tt.core.repository
"""

import json
import shutil
import tempfile
import unittest
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

T = datetime(2025, 3, 26, 12, 0, 0, tzinfo=timezone.utc)


def _session(minutes_ago_end, minutes_long, project_id=None):
    from tt.core.models import WorkSession
    end = T - timedelta(minutes=minutes_ago_end)
    return WorkSession(start_time=end - timedelta(minutes=minutes_long), end_time=end, project_id=project_id)


class RepositoryTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.store_path = Path(self.tmpdir) / "sessions.json"

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _repo(self):
        from tt.core.repository import SessionRepository
        return SessionRepository(self.store_path)


# ──────────────────────────────────────────────────────────────────────────
# Projects
# ──────────────────────────────────────────────────────────────────────────

class TestProjects(RepositoryTestCase):

    def test_fresh_store_is_empty(self):
        repo = self._repo()
        self.assertEqual(repo.list_projects(), [])
        self.assertEqual(repo.list_sessions(), [])
        self.assertFalse(self.store_path.exists())

    def test_projects_sorted_by_name(self):
        from tt.core.models import Project
        repo = self._repo()
        for name in ("Gamma", "Alpha", "Beta"):
            repo.insert_project(Project(name=name))
        self.assertEqual([p.name for p in repo.list_projects()], ["Alpha", "Beta", "Gamma"])

    def test_duplicate_project_id_rejected(self):
        from tt.core.errors import DuplicateIdError
        from tt.core.models import Project
        repo = self._repo()
        p = Project(name="Alpha")
        repo.insert_project(p)
        with self.assertRaises(DuplicateIdError):
            repo.insert_project(Project(name="Other", id=p.id))

    def test_get_project(self):
        from tt.core.models import Project
        repo = self._repo()
        p = repo.insert_project(Project(name="Alpha"))
        self.assertEqual(repo.get_project(p.id).name, "Alpha")
        self.assertIsNone(repo.get_project(uuid.uuid4()))

    def test_delete_project_keeps_sessions_unassigned(self):
        from tt.core.models import Project
        repo = self._repo()
        doomed = repo.insert_project(Project(name="Doomed"))
        kept = repo.insert_project(Project(name="Kept"))
        for i in range(3):
            repo.insert_session(_session(i * 10, 5, doomed.id))
        other = repo.insert_session(_session(100, 5, kept.id))

        self.assertEqual(repo.delete_project(doomed.id), 3)

        sessions = repo.list_sessions()
        self.assertEqual(len(sessions), 4)
        self.assertEqual(sum(1 for s in sessions if s.project_id is None), 3)
        self.assertEqual(repo.get_session(other.id).project_id, kept.id)
        self.assertIsNone(repo.get_project(doomed.id))

    def test_delete_missing_project_raises(self):
        from tt.core.errors import ProjectNotFoundError
        with self.assertRaises(ProjectNotFoundError):
            self._repo().delete_project(uuid.uuid4())

    def test_derived_sessions_and_total(self):
        from tt.core.models import Project
        repo = self._repo()
        p = repo.insert_project(Project(name="Alpha"))
        repo.insert_session(_session(0, 30, p.id))
        repo.insert_session(_session(60, 15, p.id))
        repo.insert_session(_session(120, 99))
        self.assertEqual(len(repo.sessions_for_project(p.id)), 2)
        self.assertEqual(repo.project_total_duration(p.id), 45 * 60)


# ──────────────────────────────────────────────────────────────────────────
# Sessions
# ──────────────────────────────────────────────────────────────────────────

class TestSessions(RepositoryTestCase):

    def test_sessions_sorted_by_end_time_descending(self):
        repo = self._repo()
        old = repo.insert_session(_session(120, 5))
        new = repo.insert_session(_session(0, 5))
        mid = repo.insert_session(_session(60, 5))
        self.assertEqual([s.id for s in repo.list_sessions()], [new.id, mid.id, old.id])

    def test_insert_with_unknown_project_rejected(self):
        from tt.core.errors import ProjectNotFoundError
        repo = self._repo()
        with self.assertRaises(ProjectNotFoundError):
            repo.insert_session(_session(0, 5, uuid.uuid4()))
        self.assertEqual(repo.list_sessions(), [])

    def test_duplicate_session_rejected(self):
        from tt.core.errors import DuplicateIdError
        repo = self._repo()
        s = repo.insert_session(_session(0, 5))
        with self.assertRaises(DuplicateIdError):
            repo.insert_session(s)

    def test_update_only_touches_given_fields(self):
        from tt.core.models import Project
        repo = self._repo()
        p = repo.insert_project(Project(name="Alpha"))
        s = repo.insert_session(_session(0, 5))
        updated = repo.update_session(s.id, project_id=p.id)
        self.assertEqual(updated.project_id, p.id)
        self.assertEqual(updated.start_time, s.start_time)
        self.assertEqual(updated.end_time, s.end_time)

        updated = repo.update_session(s.id, project_id=None)
        self.assertIsNone(updated.project_id)

    def test_update_times(self):
        repo = self._repo()
        s = repo.insert_session(_session(0, 5))
        repo.update_session(s.id, start_time=T - timedelta(hours=2), end_time=T - timedelta(hours=1))
        self.assertEqual(repo.get_session(s.id).duration, 3600.0)

    def test_update_missing_session_raises(self):
        from tt.core.errors import SessionNotFoundError
        with self.assertRaises(SessionNotFoundError):
            self._repo().update_session(uuid.uuid4(), project_id=None)

    def test_delete_session(self):
        from tt.core.errors import SessionNotFoundError
        repo = self._repo()
        s = repo.insert_session(_session(0, 5))
        repo.delete_session(s.id)
        self.assertIsNone(repo.get_session(s.id))
        with self.assertRaises(SessionNotFoundError):
            repo.delete_session(s.id)

    def test_returned_objects_are_copies(self):
        repo = self._repo()
        s = repo.insert_session(_session(0, 5))
        listed = repo.list_sessions()[0]
        listed.end_time = T + timedelta(days=1)
        self.assertEqual(repo.get_session(s.id).end_time, s.end_time)


# ──────────────────────────────────────────────────────────────────────────
# Persistence
# ──────────────────────────────────────────────────────────────────────────

class TestPersistence(RepositoryTestCase):

    def test_reload_roundtrip(self):
        from tt.core.models import Project
        repo = self._repo()
        p = repo.insert_project(Project(name="Alpha"))
        s1 = repo.insert_session(_session(0, 5, p.id))
        s2 = repo.insert_session(_session(30, 10))

        reloaded = self._repo()
        self.assertEqual([x.name for x in reloaded.list_projects()], ["Alpha"])
        self.assertEqual(reloaded.get_session(s1.id), s1)
        self.assertEqual(reloaded.get_session(s2.id), s2)

    def test_store_file_layout(self):
        repo = self._repo()
        repo.insert_session(_session(0, 5))
        with open(self.store_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        self.assertEqual(raw["meta"]["schema_version"], 1)
        self.assertIn("saved_at", raw["meta"])
        self.assertEqual(len(raw["sessions"]), 1)
        self.assertEqual(raw["projects"], [])

    def test_corrupt_store_moved_aside(self):
        with open(self.store_path, "w") as f:
            f.write("{invalid json!!")
        repo = self._repo()
        self.assertEqual(repo.list_sessions(), [])
        self.assertFalse(self.store_path.exists())
        leftovers = list(Path(self.tmpdir).glob("sessions.corrupt-*.json"))
        self.assertEqual(len(leftovers), 1)

    def test_malformed_records_skipped(self):
        good = _session(0, 5)
        with open(self.store_path, "w") as f:
            json.dump({
                "projects": [{"name": "No id"}],
                "sessions": [good.to_dict(), {"id": "x"}],
            }, f)
        repo = self._repo()
        self.assertEqual([s.id for s in repo.list_sessions()], [good.id])
        self.assertEqual(repo.list_projects(), [])

    def test_sessions_pointing_at_missing_projects_load_unassigned(self):
        orphan = _session(0, 5, uuid.uuid4())
        with open(self.store_path, "w") as f:
            json.dump({"projects": [], "sessions": [orphan.to_dict()]}, f)
        repo = self._repo()
        self.assertIsNone(repo.get_session(orphan.id).project_id)

    def test_failed_write_rolls_back(self):
        from tt.core.errors import RepositoryError
        repo = self._repo()
        kept = repo.insert_session(_session(10, 5))
        with patch("tt.core.repository.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(RepositoryError):
                repo.insert_session(_session(0, 5))
            with self.assertRaises(RepositoryError):
                repo.delete_session(kept.id)
        self.assertEqual([s.id for s in repo.list_sessions()], [kept.id])


if __name__ == "__main__":
    unittest.main()
