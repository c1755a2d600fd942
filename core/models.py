# =============================================================================
# core/models.py  —  MoCo Domain Records
# =============================================================================
#
# These dataclasses mirror the resource shapes returned by the MoCo REST API
# (https://hundertzehn.github.io/mocoapp-api-docs/).  They are values, not
# managed objects: built once from JSON, never mutated, never cleaned up.
#
# CONVENTIONS:
#   - frozen=True everywhere.  Cached lists of these records are shared by
#     every caller that hits the same cache entry, so nobody may mutate them.
#   - Collections are tuples for the same reason.
#   - Every record has a  from_api(data)  classmethod that tolerates missing
#     optional fields.  The API omits keys rather than sending null in a few
#     places, and we'd rather show "None" than crash a tool call.
#   - Field names follow the API, except `from` / `to` on presences, which
#     are Python keywords and become `from_time` / `to_time`.
# =============================================================================

from dataclasses import dataclass
from typing import Any, Optional


def _ref(data: Any, factory):
    return factory(data) if isinstance(data, dict) else None


# -----------------------------------------------------------------------------
# Embedded references
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class NamedRef:
    """An embedded {id, name} reference (project, task, customer, unit, role)."""

    id: Optional[int]
    name: Optional[str]

    @classmethod
    def from_api(cls, data: dict) -> "NamedRef":
        return cls(id=data.get("id"), name=data.get("name"))


@dataclass(frozen=True)
class UserRef:
    """An embedded user reference."""

    id: Optional[int]
    firstname: Optional[str] = None
    lastname: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "UserRef":
        return cls(id=data.get("id"), firstname=data.get("firstname"), lastname=data.get("lastname"))


# -----------------------------------------------------------------------------
# Activity: one time-tracking entry
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Activity:
    id: int
    date: str                          # "2025-01-15"
    hours: float
    seconds: Optional[int] = None
    description: Optional[str] = None
    billable: bool = False
    billed: bool = False
    tag: Optional[str] = None
    project: Optional[NamedRef] = None
    task: Optional[NamedRef] = None
    customer: Optional[NamedRef] = None
    user: Optional[UserRef] = None
    hourly_rate: Optional[float] = None
    timer_started_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "Activity":
        return cls(
            id=data["id"],
            date=data["date"],
            hours=float(data.get("hours") or 0),
            seconds=data.get("seconds"),
            description=data.get("description"),
            billable=bool(data.get("billable", False)),
            billed=bool(data.get("billed", False)),
            tag=data.get("tag"),
            project=_ref(data.get("project"), NamedRef.from_api),
            task=_ref(data.get("task"), NamedRef.from_api),
            customer=_ref(data.get("customer"), NamedRef.from_api),
            user=_ref(data.get("user"), UserRef.from_api),
            hourly_rate=data.get("hourly_rate"),
            timer_started_at=data.get("timer_started_at"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


# -----------------------------------------------------------------------------
# Projects and tasks
# -----------------------------------------------------------------------------
# Tasks are not fetchable on their own: /projects/assigned embeds a short
# task list in every project, and Task is derived from that.
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ProjectTask:
    """A task as embedded inside an assigned project."""

    id: int
    name: str
    active: bool = True
    billable: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "ProjectTask":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            active=bool(data.get("active", True)),
            billable=bool(data.get("billable", False)),
        )


@dataclass(frozen=True)
class Project:
    id: int
    name: str
    identifier: Optional[str] = None
    description: Optional[str] = None
    active: bool = True
    billable: bool = False
    customer: Optional[NamedRef] = None
    tasks: tuple[ProjectTask, ...] = ()
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "Project":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            identifier=data.get("identifier"),
            description=data.get("description"),
            active=bool(data.get("active", True)),
            billable=bool(data.get("billable", False)),
            customer=_ref(data.get("customer"), NamedRef.from_api),
            tasks=tuple(ProjectTask.from_api(task) for task in data.get("tasks") or ()),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class Task:
    """A task together with the project it belongs to."""

    id: int
    name: str
    active: bool
    billable: bool
    project: NamedRef
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_project(cls, task: ProjectTask, project: Project) -> "Task":
        # The embedded task carries no timestamps; the project's are used.
        return cls(
            id=task.id,
            name=task.name,
            active=task.active,
            billable=task.billable,
            project=NamedRef(id=project.id, name=project.name),
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


# -----------------------------------------------------------------------------
# User: a staff directory entry
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class User:
    id: int
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    active: bool = True
    extern: bool = False
    email: Optional[str] = None
    mobile_phone: Optional[str] = None
    work_phone: Optional[str] = None
    info: Optional[str] = None
    tags: tuple[str, ...] = ()
    unit: Optional[NamedRef] = None
    role: Optional[NamedRef] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()

    @classmethod
    def from_api(cls, data: dict) -> "User":
        return cls(
            id=data["id"],
            firstname=data.get("firstname"),
            lastname=data.get("lastname"),
            active=bool(data.get("active", True)),
            extern=bool(data.get("extern", False)),
            email=data.get("email"),
            mobile_phone=data.get("mobile_phone"),
            work_phone=data.get("work_phone"),
            info=data.get("info"),
            tags=tuple(data.get("tags") or ()),
            unit=_ref(data.get("unit"), NamedRef.from_api),
            role=_ref(data.get("role"), NamedRef.from_api),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


# -----------------------------------------------------------------------------
# Holidays, presences and schedules
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class UserHoliday:
    """Yearly holiday entitlement for the current user."""

    id: int
    year: int
    title: Optional[str] = None
    days: float = 0
    hours: float = 0
    user: Optional[UserRef] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "UserHoliday":
        return cls(
            id=data["id"],
            year=data["year"],
            title=data.get("title"),
            days=data.get("days") or 0,
            hours=data.get("hours") or 0,
            user=_ref(data.get("user"), UserRef.from_api),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class UserPresence:
    """One clock-in / clock-out interval."""

    id: int
    date: str
    from_time: Optional[str] = None    # "08:30"
    to_time: Optional[str] = None      # "12:15", None while still clocked in
    is_home_office: bool = False
    user: Optional[UserRef] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "UserPresence":
        return cls(
            id=data["id"],
            date=data["date"],
            from_time=data.get("from"),
            to_time=data.get("to"),
            is_home_office=bool(data.get("is_home_office", False)),
            user=_ref(data.get("user"), UserRef.from_api),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class ScheduleAssignment:
    """What a schedule entry is for: a project, or an absence with a code."""

    id: Optional[int] = None
    name: Optional[str] = None
    type: Optional[str] = None         # "Absence" or "Project"
    code: Optional[str] = None         # absence code, e.g. "4" for vacation

    @classmethod
    def from_api(cls, data: dict) -> "ScheduleAssignment":
        code = data.get("code")
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            type=data.get("type"),
            code=str(code) if code is not None else None,
        )


@dataclass(frozen=True)
class Schedule:
    """A planned (half) day: vacation, sick leave, public holiday, ..."""

    id: int
    date: str
    comment: Optional[str] = None
    am: bool = True
    pm: bool = True
    symbol: Optional[int] = None
    assignment: Optional[ScheduleAssignment] = None
    user: Optional[UserRef] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def days(self) -> float:
        """1.0 for a full day, 0.5 for a half day."""
        return 1.0 if self.am == self.pm else 0.5

    @classmethod
    def from_api(cls, data: dict) -> "Schedule":
        return cls(
            id=data["id"],
            date=data["date"],
            comment=data.get("comment"),
            am=bool(data.get("am", True)),
            pm=bool(data.get("pm", True)),
            symbol=data.get("symbol"),
            assignment=_ref(data.get("assignment"), ScheduleAssignment.from_api),
            user=_ref(data.get("user"), UserRef.from_api),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
