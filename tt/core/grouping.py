"""Groups recorded sessions by project for the sidebar/session tree."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SessionGroup:
    """One bucket of sessions.

    ``project_id`` is None for the unassigned bucket. ``project`` can be None
    for a real ``project_id`` when the project wasn't in the list passed to
    :func:`group_sessions`.
    """

    project_id: object
    project: object = None
    sessions: list = field(default_factory=list)

    @property
    def is_unassigned(self):
        return self.project_id is None

    @property
    def total_duration(self):
        return sum(s.duration for s in self.sessions)

    @property
    def title(self):
        if self.is_unassigned:
            return "No Project"
        return self.project.name if self.project is not None else "Unknown Project"


def group_sessions(sessions, projects, include_empty_projects=False):
    """Partition ``sessions`` into per-project buckets plus an unassigned one.

    Project buckets follow the order of ``projects`` (already sorted by name).
    Buckets for project ids missing from ``projects`` follow, in the order they
    were first seen. The unassigned bucket is always last, empty or not.
    Only projects that at least one session references get a bucket, unless
    ``include_empty_projects`` is set, in which case every project in
    ``projects`` gets one (the window uses this so each project is a drop target).
    """
    position = {p.id: i for i, p in enumerate(projects)}
    by_id = {p.id: p for p in projects}

    buckets = {}
    unassigned = []
    for session in sessions:
        if session.project_id is None:
            unassigned.append(session)
        else:
            buckets.setdefault(session.project_id, []).append(session)

    if include_empty_projects:
        for project in projects:
            buckets.setdefault(project.id, [])

    # dicts keep insertion order, so unknown ids stay in first-seen order under the stable sort
    ordered_ids = sorted(buckets, key=lambda pid: position.get(pid, len(position)))

    groups = [SessionGroup(pid, by_id.get(pid), buckets[pid]) for pid in ordered_ids]
    groups.append(SessionGroup(None, None, unassigned))
    return groups
