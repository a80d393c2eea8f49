"""Drag-and-drop of sessions onto project groups in the session tree."""

import json
import uuid

from PySide6.QtCore import QMimeData, Qt, Signal
from PySide6.QtWidgets import QAbstractItemView, QTreeWidget
from tt.common.logger import log

# Content type tag for a dragged session. Payload is {"id": "<session uuid>"} as UTF-8 JSON.
SESSION_MIME_TYPE = "application/x-timetracker-worksession-id"

# Item data roles used by the tree: what kind of row it is, and the id behind it.
KIND_ROLE = Qt.UserRole
ID_ROLE = Qt.UserRole + 1


def encode_session_payload(session_id):
    mime = QMimeData()
    mime.setData(SESSION_MIME_TYPE, json.dumps({"id": str(session_id)}).encode("utf-8"))
    return mime


def decode_session_payload(mime):
    """Return the session UUID carried by ``mime``, or None if it isn't one of ours."""
    if mime is None or not mime.hasFormat(SESSION_MIME_TYPE):
        return None
    raw = bytes(mime.data(SESSION_MIME_TYPE))
    try:
        return uuid.UUID(json.loads(raw.decode("utf-8"))["id"])
    except (UnicodeDecodeError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError):
        log.warning(f"Ignoring malformed session drag payload: {raw!r}")
        return None


class SessionTree(QTreeWidget):
    """Two-level tree: project groups on top, their sessions underneath.

    Session rows can be dragged onto any group row (or any session inside it);
    the tree only reports the drop through ``sessionDropped`` and leaves the
    actual move to its owner.
    """

    sessionDropped = Signal(object, object)  # session id, target project id (None = unassigned)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setHeaderHidden(True)
        self.setColumnCount(2)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)
        # Copy, so the view never removes the source row itself after a drop
        self.setDefaultDropAction(Qt.CopyAction)

    def mimeTypes(self):
        return [SESSION_MIME_TYPE]

    def mimeData(self, items):
        for item in items:
            if item.data(0, KIND_ROLE) == "session":
                return encode_session_payload(item.data(0, ID_ROLE))
        return QMimeData()

    def supportedDropActions(self):
        return Qt.CopyAction

    def dragEnterEvent(self, event):
        if event.mimeData().hasFormat(SESSION_MIME_TYPE):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasFormat(SESSION_MIME_TYPE) and self._group_at(event.position().toPoint()) is not None:
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        session_id = decode_session_payload(event.mimeData())
        group = self._group_at(event.position().toPoint())
        if session_id is None or group is None:
            event.ignore()
            return
        event.setDropAction(Qt.CopyAction)
        event.accept()
        self.sessionDropped.emit(session_id, group.data(0, ID_ROLE))

    # Resolves whatever row is under the cursor to its group row
    def _group_at(self, pos):
        item = self.itemAt(pos)
        if item is None:
            return None
        if item.data(0, KIND_ROLE) == "session":
            item = item.parent()
        return item
