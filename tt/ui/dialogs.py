"""Edit/create dialog for work sessions."""

import uuid
from datetime import datetime, timedelta

from PySide6.QtCore import QDateTime
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QComboBox,
    QDateTimeEdit,
    QDialog,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
)
from tt.util.misc import format_duration, now_local

_DATETIME_FORMAT = "yyyy-MM-dd HH:mm:ss"


def _to_qdatetime(dt):
    return QDateTime.fromSecsSinceEpoch(int(dt.timestamp()))


def _from_qdatetime(qdt):
    return datetime.fromtimestamp(qdt.toSecsSinceEpoch()).astimezone()


# The editor only shows whole seconds, so an untouched field hands back the original (sub-second) value.
def _resolve_time(qdt, original):
    if qdt == _to_qdatetime(original):
        return original
    return _from_qdatetime(qdt)


# Start/end/project form for a session. With no session it works as a "New Session" form. The Save button stays
# disabled while the start isn't strictly before the end.
class EditSessionDialog(QDialog):

    def __init__(self, parent, projects, session=None):
        super().__init__(parent)
        self.setWindowTitle("Edit Work Session" if session is not None else "New Work Session")
        self.setModal(True)
        self.setMinimumWidth(380)

        end = session.end_time if session is not None else now_local().replace(microsecond=0)
        start = session.start_time if session is not None else end - timedelta(hours=1)

        # Output attributes, read by MainWindow after the dialog closes
        self.chosen_start = start
        self.chosen_end = end
        self.chosen_project_id = session.project_id if session is not None else None

        outer = QVBoxLayout(self)

        title = QLabel(self.windowTitle())
        title.setFont(QFont(title.font().family(), 14))
        outer.addWidget(title)

        form = QFormLayout()
        self._start_edit = QDateTimeEdit(_to_qdatetime(start))
        self._start_edit.setDisplayFormat(_DATETIME_FORMAT)
        self._start_edit.setCalendarPopup(True)
        self._end_edit = QDateTimeEdit(_to_qdatetime(end))
        self._end_edit.setDisplayFormat(_DATETIME_FORMAT)
        self._end_edit.setCalendarPopup(True)
        form.addRow("Start Time:", self._start_edit)
        form.addRow("End Time:", self._end_edit)

        self._project_combo = QComboBox()
        self._project_combo.addItem("None", None)
        for project in projects:
            self._project_combo.addItem(project.name, str(project.id))
        if self.chosen_project_id is not None:
            index = self._project_combo.findData(str(self.chosen_project_id))
            self._project_combo.setCurrentIndex(max(index, 0))
        form.addRow("Project:", self._project_combo)
        outer.addLayout(form)

        line = QFrame()
        line.setFrameShape(QFrame.HLine)
        outer.addWidget(line)

        duration_row = QHBoxLayout()
        duration_row.addWidget(QLabel("Calculated Duration:"))
        duration_row.addStretch(1)
        self._duration_lbl = QLabel()
        self._duration_lbl.setFont(QFont("Consolas", 11))
        duration_row.addWidget(self._duration_lbl)
        outer.addLayout(duration_row)

        self._error_lbl = QLabel("Error: Start time must be before end time.")
        self._error_lbl.setStyleSheet("color: #cc3333;")
        self._error_lbl.setVisible(False)
        outer.addWidget(self._error_lbl)

        btn_row = QHBoxLayout()
        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        btn_row.addWidget(cancel_btn)
        btn_row.addStretch(1)
        self._save_btn = QPushButton("Save")
        self._save_btn.setDefault(True)
        self._save_btn.clicked.connect(self._on_save)
        btn_row.addWidget(self._save_btn)
        outer.addLayout(btn_row)

        self._start_edit.dateTimeChanged.connect(self._validate)
        self._end_edit.dateTimeChanged.connect(self._validate)
        self._validate()

    def _validate(self):
        start = _from_qdatetime(self._start_edit.dateTime())
        end = _from_qdatetime(self._end_edit.dateTime())
        invalid = start >= end
        self._error_lbl.setVisible(invalid)
        self._save_btn.setEnabled(not invalid)
        if (end - start).total_seconds() < 0:
            self._duration_lbl.setText("Invalid")
        else:
            self._duration_lbl.setText(format_duration((end - start).total_seconds()))
        self._duration_lbl.setStyleSheet("color: #cc3333;" if invalid else "")

    def _on_save(self):
        self.chosen_start = _resolve_time(self._start_edit.dateTime(), self.chosen_start)
        self.chosen_end = _resolve_time(self._end_edit.dateTime(), self.chosen_end)
        data = self._project_combo.currentData()
        self.chosen_project_id = uuid.UUID(data) if data else None
        self.accept()
