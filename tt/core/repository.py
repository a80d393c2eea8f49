import copy
import json
import os
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.errors import DuplicateIdError, ProjectNotFoundError, RepositoryError, SessionNotFoundError
from tt.core.models import Project, WorkSession
from tt.util.misc import now_iso


_SCHEMA_VERSION = 1

# Marks "leave this field alone" in update_session, since None is a meaningful project_id.
_UNSET = object()


# Durable store of sessions and projects, kept as a single JSON file. This is the only owner of persisted records:
# everything it hands out is a copy, and every change goes back through one of its methods.
class SessionRepository:

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else PATHS.store
        self._projects = {}
        self._sessions = {}
        self._load()

    #region === Loading and Saving ===

    # Reads the store from disk. A missing file is a fresh install; an unreadable one is moved aside so nothing gets
    # overwritten, and we start empty.
    def _load(self):
        if not self.path.exists():
            log.info(f"No session store at '{self.path}', starting with an empty one.")
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise TypeError(f"expected a JSON object, got {type(raw).__name__}")
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            aside = self.path.with_name(f"{self.path.stem}.corrupt-{datetime.now():%Y%m%d_%H%M%S_%f}.json")
            log.warning(f"Session store '{self.path}' is unreadable, moving it to '{aside}' and starting empty.",
                        exc_info=True)
            try:
                os.replace(self.path, aside)
            except OSError as e:
                raise RepositoryError(f"Could not move unreadable store '{self.path}' aside: {e}") from e
            return
        except OSError as e:
            raise RepositoryError(f"Could not read session store '{self.path}': {e}") from e

        skipped = 0
        for entry in raw.get("projects", []) if isinstance(raw.get("projects"), list) else []:
            try:
                project = Project.from_dict(entry)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if project.id in self._projects:
                skipped += 1
                continue
            self._projects[project.id] = project

        orphaned = 0
        for entry in raw.get("sessions", []) if isinstance(raw.get("sessions"), list) else []:
            try:
                session = WorkSession.from_dict(entry)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if session.id in self._sessions:
                skipped += 1
                continue
            if session.project_id is not None and session.project_id not in self._projects:
                session.project_id = None
                orphaned += 1
            self._sessions[session.id] = session

        if skipped or orphaned:
            log.warning(f"Loaded session store from '{self.path}', but skipped {skipped} malformed records and "
                        f"unassigned {orphaned} sessions pointing at missing projects.")
        else:
            log.info(f"Loaded {len(self._sessions)} sessions and {len(self._projects)} projects from '{self.path}'.")

    # Writes to a temp file first and swaps it in, so a crash mid-write never leaves half a store behind.
    def _save(self):
        payload = {
            "meta": {
                "schema_version": _SCHEMA_VERSION,
                "saved_at": now_iso(),
            },
            "projects": [p.to_dict() for p in self._projects.values()],
            "sessions": [s.to_dict() for s in self._sessions.values()],
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise RepositoryError(f"Could not write session store '{self.path}': {e}") from e
        log.debug(f"Saved session store to '{self.path}'")

    # Applies in-memory changes made inside the block only if they reach disk.
    @contextmanager
    def _transaction(self):
        projects = {k: copy.copy(v) for k, v in self._projects.items()}
        sessions = {k: copy.copy(v) for k, v in self._sessions.items()}
        try:
            yield
            self._save()
        except RepositoryError:
            self._projects, self._sessions = projects, sessions
            raise

    #endregion === Loading and Saving ===

    #region === Projects ===

    def insert_project(self, project):
        if project.id in self._projects:
            raise DuplicateIdError(f"A project with id {project.id} already exists")
        with self._transaction():
            self._projects[project.id] = copy.copy(project)
        log.info(f"Added project '{project.name}' ({project.id})")
        return copy.copy(project)

    # Deleting a project never deletes its sessions, they just become unassigned. Returns how many were unassigned.
    def delete_project(self, project_id):
        project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(f"No project with id {project_id}")
        nullified = 0
        with self._transaction():
            for session in self._sessions.values():
                if session.project_id == project_id:
                    session.project_id = None
                    nullified += 1
            del self._projects[project_id]
        log.info(f"Deleted project '{project.name}' ({project_id}), {nullified} sessions are now unassigned")
        return nullified

    def get_project(self, project_id):
        project = self._projects.get(project_id)
        return copy.copy(project) if project is not None else None

    def list_projects(self):
        ordered = sorted(self._projects.values(), key=lambda p: (p.name, p.created_at))
        return [copy.copy(p) for p in ordered]

    def sessions_for_project(self, project_id):
        return [s for s in self.list_sessions() if s.project_id == project_id]

    def project_total_duration(self, project_id):
        return sum(s.duration for s in self._sessions.values() if s.project_id == project_id)

    #endregion === Projects ===

    #region === Sessions ===

    def insert_session(self, session):
        if session.id in self._sessions:
            raise DuplicateIdError(f"A session with id {session.id} already exists")
        self._check_project_ref(session.project_id)
        with self._transaction():
            self._sessions[session.id] = copy.copy(session)
        log.info(f"Recorded session {session.id} of {session.duration:.1f}s (project {session.project_id})")
        return copy.copy(session)

    def delete_session(self, session_id):
        if session_id not in self._sessions:
            raise SessionNotFoundError(f"No session with id {session_id}")
        with self._transaction():
            del self._sessions[session_id]
        log.info(f"Deleted session {session_id}")

    # Only the fields passed in are touched. The result goes back through WorkSession so the start <= end clamp holds.
    def update_session(self, session_id, start_time=_UNSET, end_time=_UNSET, project_id=_UNSET):
        current = self._sessions.get(session_id)
        if current is None:
            raise SessionNotFoundError(f"No session with id {session_id}")
        if project_id is not _UNSET:
            self._check_project_ref(project_id)
        updated = WorkSession(
            start_time=current.start_time if start_time is _UNSET else start_time,
            end_time=current.end_time if end_time is _UNSET else end_time,
            project_id=current.project_id if project_id is _UNSET else project_id,
            id=current.id,
        )
        with self._transaction():
            self._sessions[session_id] = updated
        log.info(f"Updated session {session_id}")
        return copy.copy(updated)

    def get_session(self, session_id):
        session = self._sessions.get(session_id)
        return copy.copy(session) if session is not None else None

    # Most recently finished first
    def list_sessions(self):
        ordered = sorted(self._sessions.values(), key=lambda s: s.end_time, reverse=True)
        return [copy.copy(s) for s in ordered]

    def _check_project_ref(self, project_id):
        if project_id is not None and project_id not in self._projects:
            raise ProjectNotFoundError(f"No project with id {project_id}")

    #endregion === Sessions ===
