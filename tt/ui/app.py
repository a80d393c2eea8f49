import sys
import uuid
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QGridLayout,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPushButton,
    QSplitter,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)
from tt.common.logger import log
from tt.core.config import PreferenceStore
from tt.core.errors import PreferenceError, ProjectValidationError, TimeTrackerError
from tt.core.refresh import RefreshTask
from tt.core.repository import SessionRepository
from tt.core.timer_engine import TimerEngine, TimerStatus
from tt.core.tracker import TimeTracker
from tt.ui.dialogs import EditSessionDialog
from tt.ui.drag import ID_ROLE, KIND_ROLE, SessionTree
from tt.util.misc import format_clock, format_duration

SHORT_SESSION_MESSAGE = "The work session was less than 1 second long and was not saved."


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window: project/session tree on the left, timer and its controls on the right.
class MainWindow(QMainWindow):

    def __init__(self, tracker: TimeTracker, settings):
        super().__init__()
        self.setWindowTitle("Time Tracker")
        self.tracker = tracker
        self.confirm_delete = settings.get("confirm_delete", True)
        if settings.get("always_on_top", False):
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # -- Build UI skeleton --
        splitter = QSplitter()
        self.setCentralWidget(splitter)

        # Left: projects and sessions
        left = QWidget()
        left_lay = QVBoxLayout(left)
        heading = QLabel("Projects")
        heading_font = heading.font()
        heading_font.setBold(True)
        heading.setFont(heading_font)
        left_lay.addWidget(heading)

        self._tree = SessionTree()
        self._tree.setContextMenuPolicy(Qt.CustomContextMenu)
        self._tree.customContextMenuRequested.connect(self._on_tree_context_menu)
        self._tree.itemDoubleClicked.connect(self._on_item_double_clicked)
        self._tree.sessionDropped.connect(self._on_session_dropped)
        left_lay.addWidget(self._tree, 1)

        left_btns = QHBoxLayout()
        self._add_project_btn = QPushButton("Add Project")
        self._add_project_btn.setShortcut("Ctrl+N")
        self._add_project_btn.clicked.connect(self._on_add_project)
        left_btns.addWidget(self._add_project_btn)
        self._new_session_btn = QPushButton("New Session")
        self._new_session_btn.clicked.connect(self._on_new_session)
        left_btns.addWidget(self._new_session_btn)
        left_lay.addLayout(left_btns)
        splitter.addWidget(left)

        # Right: timer detail
        right = QWidget()
        right_lay = QVBoxLayout(right)
        right_lay.addStretch(1)

        self._time_lbl = QLabel(format_duration(0))
        self._time_lbl.setFont(QFont("Consolas", 34))
        self._time_lbl.setAlignment(Qt.AlignCenter)
        right_lay.addWidget(self._time_lbl)

        self._status_lbl = QLabel()
        self._status_lbl.setAlignment(Qt.AlignCenter)
        right_lay.addWidget(self._status_lbl)

        picker_row = QHBoxLayout()
        picker_row.addWidget(QLabel("Project:"))
        self._project_combo = QComboBox()
        self._project_combo.setMaximumWidth(250)
        self._project_combo.currentIndexChanged.connect(self._on_project_picked)
        picker_row.addWidget(self._project_combo, 1)
        right_lay.addLayout(picker_row)

        controls = QGridLayout()
        self._start_btn = QPushButton("Start")
        self._start_btn.setShortcut("Ctrl+Return")
        self._start_btn.clicked.connect(self._on_start)
        self._pause_btn = QPushButton("Pause")
        self._pause_btn.setShortcut("Ctrl+P")
        self._pause_btn.clicked.connect(self._on_pause)
        self._stop_btn = QPushButton("Stop")
        self._stop_btn.setShortcut("Ctrl+.")
        self._stop_btn.clicked.connect(self._on_stop)
        self._discard_btn = QPushButton("Discard")
        self._discard_btn.clicked.connect(self._on_discard)
        for col, btn in enumerate((self._start_btn, self._pause_btn, self._stop_btn, self._discard_btn)):
            btn.setMinimumWidth(80)
            controls.addWidget(btn, 0, col)
        right_lay.addLayout(controls)
        right_lay.addStretch(1)
        splitter.addWidget(right)
        splitter.setSizes([320, 420])

        self._populating_combo = False
        self.tracker.engine.subscribe(self._on_engine_changed)

        self._refresh_projects()
        self._rebuild_tree()
        self._on_engine_changed()
        QTimer.singleShot(0, self.adjustSize)

    # ------------------------------------------------------------------ #
    #  Timer controls                                                      #
    # ------------------------------------------------------------------ #

    def _on_start(self):
        self.tracker.start()

    def _on_pause(self):
        self.tracker.pause()

    def _on_stop(self):
        try:
            session = self.tracker.stop()
        except TimeTrackerError as e:
            log.error(f"Could not save session: {e}", exc_info=e)
            self._offer_retry_save(e)
            self._refresh_projects()
            self._rebuild_tree()
            return
        if session is None and self.tracker.engine.short_session_notice:
            self.tracker.engine.acknowledge_notice()
            QMessageBox.information(self, "Session Not Saved", SHORT_SESSION_MESSAGE)
        # The selection may have been cleared if its project vanished mid-session
        self._refresh_projects()
        self._rebuild_tree()

    # Keeps asking until the pending sessions are stored or the user gives up (they stay queued for the next stop)
    def _offer_retry_save(self, error):
        while self.tracker.pending_sessions:
            answer = QMessageBox.question(
                self, "Could not save session",
                f"{error}\n\n{len(self.tracker.pending_sessions)} session(s) are waiting to be saved. Retry now?"
            )
            if answer != QMessageBox.Yes:
                log.warning(f"Retry declined, {len(self.tracker.pending_sessions)} session(s) still pending")
                return
            try:
                self.tracker.retry_save()
            except TimeTrackerError as e:
                log.error(f"Retry failed: {e}", exc_info=e)
                error = e

    def _on_discard(self):
        self.tracker.discard()

    # Engine listener, fires on every transition and refresh tick
    def _on_engine_changed(self):
        engine = self.tracker.engine
        self._time_lbl.setText(format_duration(engine.elapsed_time))
        self._status_lbl.setText(f"Status: {engine.status.value}")
        self._start_btn.setText("Start" if engine.status is TimerStatus.STOPPED else "Resume")
        self._start_btn.setEnabled(engine.status is not TimerStatus.RUNNING)
        self._pause_btn.setEnabled(engine.status is TimerStatus.RUNNING)
        self._stop_btn.setEnabled(engine.status is not TimerStatus.STOPPED)
        self._discard_btn.setEnabled(engine.status is not TimerStatus.STOPPED)

    # ------------------------------------------------------------------ #
    #  Projects                                                            #
    # ------------------------------------------------------------------ #

    def _refresh_projects(self):
        self._populating_combo = True
        try:
            self._project_combo.clear()
            self._project_combo.addItem("None", None)
            for project in self.tracker.projects():
                self._project_combo.addItem(project.name, str(project.id))
            selected = self.tracker.selection.selected_id
            index = self._project_combo.findData(str(selected)) if selected is not None else 0
            self._project_combo.setCurrentIndex(max(index, 0))
        finally:
            self._populating_combo = False

    def _on_project_picked(self, index):
        if self._populating_combo or index < 0:
            return
        data = self._project_combo.itemData(index)
        try:
            self.tracker.select_project(uuid.UUID(data) if data else None)
        except TimeTrackerError as e:
            self._show_error("Could not select project", e)
            self._refresh_projects()

    def _on_add_project(self):
        name, ok = QInputDialog.getText(self, "Add New Project", "Project Name:")
        if not ok:
            return
        try:
            self.tracker.add_project(name)
        except ProjectValidationError:
            log.debug("Add project cancelled, empty name")
            return
        except TimeTrackerError as e:
            self._show_error("Could not add project", e)
            return
        self._refresh_projects()
        self._rebuild_tree()

    def _on_delete_project(self, project_id, name):
        if self.confirm_delete:
            if QMessageBox.question(
                    self, "Confirm Delete",
                    f"Delete project '{name}'? Its sessions will be kept as unassigned."
            ) != QMessageBox.Yes:
                return
        try:
            self.tracker.delete_project(project_id)
        except TimeTrackerError as e:
            self._show_error("Could not delete project", e)
        self._refresh_projects()
        self._rebuild_tree()

    # ------------------------------------------------------------------ #
    #  Sessions                                                            #
    # ------------------------------------------------------------------ #

    def _rebuild_tree(self):
        self._tree.clear()
        for group in self.tracker.groups(include_empty_projects=True):
            group_item = QTreeWidgetItem([f"{group.title} ({len(group.sessions)})",
                                          format_duration(group.total_duration)])
            group_item.setData(0, KIND_ROLE, "group")
            group_item.setData(0, ID_ROLE, group.project_id)
            group_font = group_item.font(0)
            group_font.setBold(True)
            group_item.setFont(0, group_font)
            group_item.setFlags(Qt.ItemIsEnabled | Qt.ItemIsDropEnabled)
            self._tree.addTopLevelItem(group_item)

            for session in group.sessions:
                row = QTreeWidgetItem([
                    format_duration(session.duration),
                    f"{format_clock(session.start_time)} - {format_clock(session.end_time)}  "
                    f"{session.start_time.astimezone():%Y-%m-%d}",
                ])
                row.setData(0, KIND_ROLE, "session")
                row.setData(0, ID_ROLE, session.id)
                row.setFlags(Qt.ItemIsEnabled | Qt.ItemIsSelectable | Qt.ItemIsDragEnabled)
                group_item.addChild(row)
            group_item.setExpanded(True)
        self._tree.resizeColumnToContents(0)

    def _on_session_dropped(self, session_id, project_id):
        try:
            moved = self.tracker.move_session(session_id, project_id)
        except TimeTrackerError as e:
            self._show_error("Could not move session", e)
            return
        if moved:
            # Rebuilding inside the view's own drop handler pulls items out from under it
            QTimer.singleShot(0, self._rebuild_tree)

    def _on_item_double_clicked(self, item, _column):
        if item.data(0, KIND_ROLE) == "session":
            self._on_edit_session(item.data(0, ID_ROLE))

    def _on_tree_context_menu(self, pos):
        item = self._tree.itemAt(pos)
        if item is None:
            return
        menu = QMenu(self)
        kind = item.data(0, KIND_ROLE)
        item_id = item.data(0, ID_ROLE)
        if kind == "session":
            menu.addAction("Edit Session", lambda: self._on_edit_session(item_id))
            menu.addAction("Delete Session", lambda: self._on_delete_session(item_id))
        elif kind == "group" and item_id is not None:
            name = item.text(0).rsplit(" (", 1)[0]
            menu.addAction("Delete Project", lambda: self._on_delete_project(item_id, name))
        else:
            return
        menu.exec(self._tree.viewport().mapToGlobal(pos))

    def _on_new_session(self):
        dialog = EditSessionDialog(self, self.tracker.projects())
        if not dialog.exec():
            return
        try:
            self.tracker.create_session(dialog.chosen_start, dialog.chosen_end, dialog.chosen_project_id)
        except TimeTrackerError as e:
            self._show_error("Could not create session", e)
        self._rebuild_tree()

    def _on_edit_session(self, session_id):
        # Always re-read, the session may have been moved or deleted since the tree was built
        session = self.tracker.repository.get_session(session_id)
        if session is None:
            log.warning(f"Session {session_id} disappeared before it could be edited")
            self._rebuild_tree()
            return
        dialog = EditSessionDialog(self, self.tracker.projects(), session)
        if not dialog.exec():
            return
        try:
            self.tracker.edit_session(session_id, dialog.chosen_start, dialog.chosen_end, dialog.chosen_project_id)
        except TimeTrackerError as e:
            self._show_error("Could not save session", e)
        self._rebuild_tree()

    def _on_delete_session(self, session_id):
        if self.confirm_delete:
            if QMessageBox.question(self, "Confirm Delete", "Delete this session?") != QMessageBox.Yes:
                return
        try:
            self.tracker.delete_session(session_id)
        except TimeTrackerError as e:
            self._show_error("Could not delete session", e)
        self._rebuild_tree()

    # ------------------------------------------------------------------ #
    #  Helpers                                                             #
    # ------------------------------------------------------------------ #

    def _show_error(self, title, error):
        log.error(f"{title}: {error}", exc_info=error)
        QMessageBox.warning(self, title, str(error))

    def closeEvent(self, event):
        if not self.tracker.engine.is_stopped:
            log.info(f"Closing with the timer {self.tracker.engine.status.value.lower()}, "
                     f"{self.tracker.engine.current_elapsed:.1f}s not recorded")
        if self.tracker.pending_sessions:
            try:
                self.tracker.retry_save()
            except TimeTrackerError as e:
                log.error(f"Closing with {len(self.tracker.pending_sessions)} unsaved session(s): "
                          f"{[s.to_dict() for s in self.tracker.pending_sessions]}", exc_info=e)
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

# Builds the single tracker instance for this process and hands it to the window.
def build_tracker():
    preferences = PreferenceStore()
    repository = SessionRepository()
    settings = preferences.settings()
    engine = TimerEngine(refresh=RefreshTask(settings["refresh_interval_ms"]))
    tracker = TimeTracker(repository, preferences, engine)
    try:
        tracker.restore_selection()
    except PreferenceError:
        log.warning("Could not clear the stored project selection, starting with none selected", exc_info=True)
    return tracker, settings


def main():
    app = QApplication(sys.argv)
    tracker, settings = build_tracker()
    window = MainWindow(tracker, settings)
    window.show()
    sys.exit(app.exec())
