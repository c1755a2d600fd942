# =============================================================================
# core/reports.py  —  Summaries Computed from Raw MoCo Records
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns lists of activities, presences and schedules into compact
#   summaries: totals per day, per project, remaining vacation days, ...
#
# WHY NOT RETURN THE RAW RECORDS?
#   An agent asking "how much did I work last week?" needs seven daily
#   totals, not forty activity records.  The tools/ layer returns these
#   summaries, and the arithmetic lives here where it can be unit tested
#   without HTTP or MCP.
#
# Everything here is a pure function: records in, dataclass out.
# =============================================================================

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from core.models import Activity, Schedule, UserHoliday, UserPresence

_NO_PROJECT = "(no project)"
_NO_TASK = "(no task)"


def _round(hours: float) -> float:
    return round(hours, 2)


# -----------------------------------------------------------------------------
# Activities
# -----------------------------------------------------------------------------
@dataclass
class ProjectHours:
    project: str
    hours: float
    tasks: dict[str, float] = field(default_factory=dict)


@dataclass
class DayActivities:
    date: str
    hours: float
    projects: list[ProjectHours] = field(default_factory=list)


@dataclass
class ActivitySummary:
    period: str                        # "2025-01-01 to 2025-01-31"
    total_hours: float
    activity_count: int
    days: list[DayActivities] = field(default_factory=list)
    project_totals: dict[str, float] = field(default_factory=dict)


def summarize_activities(activities: list[Activity], start_date: str, end_date: str) -> ActivitySummary:
    """Group activities by date, then by project and task.

    Days are listed in date order; only days with activities appear.
    """
    per_day: dict[str, dict[str, dict[str, float]]] = defaultdict(lambda: defaultdict(lambda: defaultdict(float)))
    project_totals: dict[str, float] = defaultdict(float)

    for activity in activities:
        project = activity.project.name if activity.project and activity.project.name else _NO_PROJECT
        task = activity.task.name if activity.task and activity.task.name else _NO_TASK
        per_day[activity.date][project][task] += activity.hours
        project_totals[project] += activity.hours

    days = []
    for day in sorted(per_day):
        projects = [
            ProjectHours(
                project=name,
                hours=_round(sum(tasks.values())),
                tasks={task: _round(hours) for task, hours in tasks.items()},
            )
            for name, tasks in sorted(per_day[day].items())
        ]
        days.append(DayActivities(date=day, hours=_round(sum(p.hours for p in projects)), projects=projects))

    return ActivitySummary(
        period=f"{start_date} to {end_date}",
        total_hours=_round(sum(a.hours for a in activities)),
        activity_count=len(activities),
        days=days,
        project_totals={name: _round(hours) for name, hours in sorted(project_totals.items())},
    )


# -----------------------------------------------------------------------------
# Absences (vacation, sick days, public holidays)
# -----------------------------------------------------------------------------
@dataclass
class AbsenceDay:
    date: str
    days: float                        # 1.0 full day, 0.5 half day
    note: Optional[str] = None


@dataclass
class HolidaySummary:
    year: int
    entitled_days: float
    taken_days: float
    remaining_days: float
    taken: list[AbsenceDay] = field(default_factory=list)


@dataclass
class AbsenceSummary:
    year: int
    total_days: float
    days: list[AbsenceDay] = field(default_factory=list)


def _absence_days(schedules: list[Schedule]) -> list[AbsenceDay]:
    return [
        AbsenceDay(date=s.date, days=s.days, note=s.comment)
        for s in sorted(schedules, key=lambda s: s.date)
    ]


def summarize_holidays(year: int, entitlements: list[UserHoliday], taken: list[Schedule]) -> HolidaySummary:
    """Compare the yearly entitlement against the vacation actually booked."""
    entitled = sum(float(h.days) for h in entitlements if h.year == year)
    taken_days = sum(s.days for s in taken)
    return HolidaySummary(
        year=year,
        entitled_days=entitled,
        taken_days=taken_days,
        remaining_days=entitled - taken_days,
        taken=_absence_days(taken),
    )


def summarize_sick_days(year: int, schedules: list[Schedule]) -> AbsenceSummary:
    return AbsenceSummary(year=year, total_days=sum(s.days for s in schedules), days=_absence_days(schedules))


def summarize_public_holidays(year: int, schedules: list[Schedule]) -> AbsenceSummary:
    days = [
        AbsenceDay(
            date=s.date,
            days=s.days,
            note=s.comment or (s.assignment.name if s.assignment else None),
        )
        for s in sorted(schedules, key=lambda s: s.date)
    ]
    return AbsenceSummary(year=year, total_days=sum(d.days for d in days), days=days)


# -----------------------------------------------------------------------------
# Presences
# -----------------------------------------------------------------------------
@dataclass
class DayPresence:
    date: str
    hours: float
    home_office: bool
    intervals: list[str] = field(default_factory=list)   # ["08:30-12:00", ...]


@dataclass
class PresenceSummary:
    period: str
    total_hours: float
    days_present: int
    home_office_days: int
    days: list[DayPresence] = field(default_factory=list)


def presence_hours(presence: UserPresence) -> float:
    """Length of a presence interval in hours; 0 while still clocked in."""
    if not presence.from_time or not presence.to_time:
        return 0.0
    start = datetime.strptime(presence.from_time, "%H:%M")
    end = datetime.strptime(presence.to_time, "%H:%M")
    return max((end - start).total_seconds() / 3600, 0.0)


def summarize_presences(presences: list[UserPresence], start_date: str, end_date: str) -> PresenceSummary:
    """Sum presence intervals per day and count home-office days."""
    by_day: dict[str, list[UserPresence]] = defaultdict(list)
    for presence in presences:
        by_day[presence.date].append(presence)

    days = []
    for day in sorted(by_day):
        entries = sorted(by_day[day], key=lambda p: p.from_time or "")
        days.append(DayPresence(
            date=day,
            hours=_round(sum(presence_hours(p) for p in entries)),
            home_office=any(p.is_home_office for p in entries),
            intervals=[f"{p.from_time}-{p.to_time or '…'}" for p in entries],
        ))

    return PresenceSummary(
        period=f"{start_date} to {end_date}",
        total_hours=_round(sum(d.hours for d in days)),
        days_present=len(days),
        home_office_days=sum(1 for d in days if d.home_office),
        days=days,
    )
