import uuid
from tt.common.logger import log
from tt.core.config import LAST_SELECTED_PROJECT_ID


# The project new sessions get filed under. Only the id is held here, the project itself is re-read from the
# repository on every access since it can be renamed or deleted underneath us.
class ProjectSelection:

    def __init__(self, repository, preferences):
        self.repository = repository
        self.preferences = preferences
        self.selected_id = None

    @property
    def selected_project(self):
        if self.selected_id is None:
            return None
        return self.repository.get_project(self.selected_id)

    # Selecting anything, including None, writes the preference straight away. If that write fails the previous
    # selection stays in place and the PreferenceError propagates.
    def select(self, project):
        self.select_id(project.id if project is not None else None)

    def select_id(self, project_id):
        if project_id is not None:
            self.preferences.set(LAST_SELECTED_PROJECT_ID, str(project_id))
        else:
            self.preferences.remove(LAST_SELECTED_PROJECT_ID)
        self.selected_id = project_id

    def restore(self):
        """Re-select the project stored in preferences on startup.

        A stored id that no longer resolves (project deleted, or garbage in the
        file) clears the preference and leaves nothing selected. Calling this
        again once restored does nothing. Repository errors propagate.
        """
        stored = self.preferences.get(LAST_SELECTED_PROJECT_ID)
        if stored is None:
            self.selected_id = None
            return None

        try:
            project_id = uuid.UUID(str(stored))
        except ValueError:
            log.warning(f"Stored last selected project '{stored}' is not a valid id, clearing selection.")
            self.select(None)
            return None

        if self.selected_id == project_id:
            return self.selected_project

        project = self.repository.get_project(project_id)
        if project is None:
            log.warning(f"Could not find project with stored id {project_id}, clearing selection.")
            self.select(None)
            return None

        self.selected_id = project.id
        log.info(f"Restored last selected project '{project.name}' ({project.id})")
        return project
