"""Application service tying the timer engine to the session store.

One ``TimeTracker`` is built per running application and handed to whatever
needs it (the main window, tests). Nothing here keeps sessions or projects
between calls; every read goes back to the repository.
"""

from tt.common.logger import log
from tt.core.errors import PreferenceError, ProjectNotFoundError, ProjectValidationError, SessionValidationError
from tt.core.grouping import group_sessions
from tt.core.models import Project, WorkSession
from tt.core.selection import ProjectSelection
from tt.core.timer_engine import TimerEngine


class TimeTracker:

    def __init__(self, repository, preferences, engine=None):
        self.repository = repository
        self.preferences = preferences
        self.engine = engine or TimerEngine()
        self.selection = ProjectSelection(repository, preferences)
        # Stopped sessions whose save failed, oldest first
        self.pending_sessions = []

    # ------------------------------------------------------------------ #
    #  Timer                                                               #
    # ------------------------------------------------------------------ #

    def start(self):
        self.engine.start()

    def pause(self):
        self.engine.pause()

    def discard(self):
        self.engine.discard()

    def stop(self):
        """Stop the timer and record a session for the selected project.

        Returns the stored WorkSession, or None when the timer wasn't running
        or the session was too short (``engine.short_session_notice`` tells
        the two apart). If the store can't be written the RepositoryError
        propagates and the session waits in ``pending_sessions``.
        """
        session_data = self.engine.stop()
        if session_data is None:
            return None
        project = self.selection.selected_project
        session = WorkSession.from_timer(session_data, project.id if project is not None else None)
        # Queued before the write, so a failed save leaves it for retry_save() instead of losing the time
        self.pending_sessions.append(session)
        self.retry_save()

        # The selected project may have been deleted while the timer ran
        if project is None and self.selection.selected_id is not None:
            log.warning(f"Selected project {self.selection.selected_id} no longer exists, recorded session as unassigned")
            try:
                self.selection.select(None)
            except PreferenceError:
                log.warning("Could not clear the stale project selection", exc_info=True)
        return self.repository.get_session(session.id)

    def retry_save(self):
        """Store every session whose save failed earlier, oldest first.

        Returns the sessions stored by this call. On the first failure the
        RepositoryError propagates and that session (and any after it) stay in
        ``pending_sessions``.
        """
        saved = []
        while self.pending_sessions:
            session = self.pending_sessions[0]
            if session.project_id is not None and self.repository.get_project(session.project_id) is None:
                log.warning(f"Project {session.project_id} of pending session {session.id} is gone, saving it unassigned")
                session.project_id = None
            saved.append(self.repository.insert_session(session))
            self.pending_sessions.pop(0)
        return saved

    # ------------------------------------------------------------------ #
    #  Projects                                                            #
    # ------------------------------------------------------------------ #

    def add_project(self, name):
        trimmed = (name or "").strip()
        if not trimmed:
            raise ProjectValidationError("Project name cannot be empty")
        return self.repository.insert_project(Project(name=trimmed))

    def delete_project(self, project_id):
        unassigned = self.repository.delete_project(project_id)
        if self.selection.selected_id == project_id:
            self.selection.select(None)
        return unassigned

    def projects(self):
        return self.repository.list_projects()

    def restore_selection(self):
        return self.selection.restore()

    def select_project(self, project_id):
        if project_id is not None and self.repository.get_project(project_id) is None:
            raise ProjectNotFoundError(f"No project with id {project_id}")
        self.selection.select_id(project_id)

    # ------------------------------------------------------------------ #
    #  Sessions                                                            #
    # ------------------------------------------------------------------ #

    @staticmethod
    def validate_times(start_time, end_time):
        if start_time >= end_time:
            raise SessionValidationError("Start time must be before end time.")

    def create_session(self, start_time, end_time, project_id=None):
        self.validate_times(start_time, end_time)
        return self.repository.insert_session(
            WorkSession(start_time=start_time, end_time=end_time, project_id=project_id)
        )

    def edit_session(self, session_id, start_time, end_time, project_id):
        self.validate_times(start_time, end_time)
        return self.repository.update_session(
            session_id, start_time=start_time, end_time=end_time, project_id=project_id
        )

    def delete_session(self, session_id):
        self.repository.delete_session(session_id)

    def move_session(self, session_id, project_id):
        """Reassign a session to ``project_id`` (None for unassigned).

        Moving a session that's gone, onto a project that's gone, or onto the
        project it already has is a no-op that returns False.
        """
        session = self.repository.get_session(session_id)
        if session is None:
            log.warning(f"Could not find session {session_id} to move, ignoring drop.")
            return False
        if project_id is not None and self.repository.get_project(project_id) is None:
            log.warning(f"Could not move session {session_id}, target project {project_id} no longer exists.")
            return False
        if session.project_id == project_id:
            log.debug(f"Session {session_id} already belongs to {project_id}, nothing to move.")
            return False
        self.repository.update_session(session_id, project_id=project_id)
        log.info(f"Moved session {session_id} from {session.project_id} to {project_id}")
        return True

    def groups(self, include_empty_projects=False):
        return group_sessions(
            self.repository.list_sessions(), self.repository.list_projects(), include_empty_projects
        )
