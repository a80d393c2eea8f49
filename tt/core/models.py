"""Persisted entities: recorded work sessions and the projects they belong to."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from tt.common.logger import log
from tt.util.misc import now_local


def _parse_uuid(value):
    if value is None:
        return None
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _parse_datetime(value):
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    # Naive values are taken as local time
    return dt if dt.tzinfo is not None else dt.astimezone()


@dataclass
class Project:
    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=now_local)

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=str(data["name"]),
            id=_parse_uuid(data["id"]),
            created_at=_parse_datetime(data["created_at"]),
        )


@dataclass
class WorkSession:
    """One recorded stretch of work.

    ``project_id`` is a foreign-key style reference, ``None`` when unassigned.
    A start after the end is clamped to the end (zero-length session) instead
    of being rejected; user edits are validated before they get here.
    """

    start_time: datetime
    end_time: datetime
    project_id: uuid.UUID | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self):
        self.start_time = _parse_datetime(self.start_time)
        self.end_time = _parse_datetime(self.end_time)
        self.project_id = _parse_uuid(self.project_id)
        self.id = _parse_uuid(self.id)
        if self.start_time > self.end_time:
            log.warning(f"Session {self.id} started after it ended ({self.start_time.isoformat()} > "
                        f"{self.end_time.isoformat()}), clamping to a zero-length session")
            self.start_time = self.end_time

    @property
    def duration(self):
        return max(0.0, (self.end_time - self.start_time).total_seconds())

    @property
    def is_unassigned(self):
        return self.project_id is None

    # Builds a session from what TimerEngine.stop() returned
    @classmethod
    def from_timer(cls, session_data, project_id=None):
        return cls(
            start_time=session_data.start_time,
            end_time=session_data.end_time,
            project_id=project_id,
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "project_id": str(self.project_id) if self.project_id is not None else None,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            start_time=data["start_time"],
            end_time=data["end_time"],
            project_id=data.get("project_id"),
            id=data["id"],
        )
