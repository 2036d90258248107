from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.schemas.project import ProjectUtilizationDTO
from teams_timesheet.schemas.timesheet import UserTimesheet, ProjectDetails, TimesheetDetails
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def group_dates_by_sequence(records: Iterable[Any]) -> List[List[date]]:
    """
    Group the distinct dates of the records into runs of consecutive days.

    [5, 5, 6, 8] gives [[5, 6], [8]]. Runs are ascending and never share a date.
    """
    if records is None:
        raise ValueError("records must not be None")

    ordered_dates = sorted({_as_date(record.timesheet_date) for record in records})

    date_ranges = []
    for current in ordered_dates:
        if date_ranges and current - timedelta(days=1) == date_ranges[-1][-1]:
            date_ranges[-1].append(current)
        else:
            date_ranges.append([current])

    return date_ranges


def group_timesheets_by_date_sequence(records_ordered_by_date: Iterable[Any]) -> List[List[Any]]:
    """
    Split records already ordered by date into runs. A record stays in the
    current run when it falls on the same day as the previous record or the
    day after it.
    """
    if records_ordered_by_date is None:
        raise ValueError("records must not be None")

    groups = []
    current_group = []
    last_date = None

    for record in records_ordered_by_date:
        record_date = _as_date(record.timesheet_date)
        if last_date is not None and (record_date == last_date or record_date - timedelta(days=1) == last_date):
            current_group.append(record)
        else:
            if current_group:
                groups.append(current_group)
            current_group = [record]
        last_date = record_date

    if current_group:
        groups.append(current_group)

    return groups


def build_user_timesheets(
    start_date: date,
    end_date: date,
    projects: Sequence[Any],
    filled_timesheets: Iterable[Any],
    task_filter: Optional[Callable[[Any, date], bool]] = None
) -> List[UserTimesheet]:
    """
    Rebuild the per-day calendar of projects and tasks for [start_date, end_date].

    Days without any running project are left out. Every task of a running
    project is listed; hours, comments and status come from the filled row of
    the same task and day, or default to 0, "" and None. When several filled
    rows share a task and day, the first one in filled_timesheets is used.
    """
    if projects is None or filled_timesheets is None:
        raise ValueError("projects and filled_timesheets must not be None")

    filled_index: Dict[Tuple[Any, date], Any] = {}
    for timesheet in filled_timesheets:
        filled_index.setdefault((timesheet.task_id, _as_date(timesheet.timesheet_date)), timesheet)

    user_timesheets = []
    total_days = (end_date - start_date).days

    for offset in range(total_days + 1):
        day = start_date + timedelta(days=offset)
        running_projects = [
            project for project in projects
            if _as_date(project.start_date) <= day <= _as_date(project.end_date)
        ]
        if not running_projects:
            continue

        project_details = []
        for project in running_projects:
            timesheet_details = []
            for task in project.tasks:
                if task_filter and not task_filter(task, day):
                    continue
                filled = filled_index.get((task.id, day))
                timesheet_details.append(TimesheetDetails(
                    task_id=task.id,
                    task_title=task.title,
                    is_added_by_member=bool(getattr(task, "is_added_by_member", False)),
                    start_date=getattr(task, "start_date", None),
                    end_date=getattr(task, "end_date", None),
                    hours=filled.hours if filled else 0,
                    manager_comments=(filled.manager_comments or "") if filled else "",
                    status=filled.status if filled else int(TimesheetStatus.NONE),
                ))

            project_details.append(ProjectDetails(
                id=project.id,
                title=project.title,
                start_date=project.start_date,
                end_date=project.end_date,
                timesheet_details=timesheet_details,
            ))

        user_timesheets.append(UserTimesheet(timesheet_date=day, project_details=project_details))

    return user_timesheets


def compute_project_utilization(
    project: Any,
    approved_timesheets: Iterable[Any],
    members: Iterable[Any]
) -> Optional[ProjectUtilizationDTO]:
    """
    Sum approved hours into billable and non-billable buckets by the author's
    membership. Returns None when an author is not a member of the project.
    Underutilized hours are capacity minus utilized and may go negative.
    """
    if project is None or approved_timesheets is None or members is None:
        raise ValueError("project, approved_timesheets and members must not be None")

    members_by_user = {member.user_id: member for member in members}
    billable_utilized_hours = 0
    non_billable_utilized_hours = 0

    for timesheet in approved_timesheets:
        member = members_by_user.get(timesheet.user_id)
        if member is None:
            logger.error(f"Member {timesheet.user_id} is not part of project {project.id}")
            return None
        if member.is_billable:
            billable_utilized_hours += timesheet.hours
        else:
            non_billable_utilized_hours += timesheet.hours

    return ProjectUtilizationDTO(
        id=project.id,
        title=project.title,
        project_start_date=project.start_date,
        project_end_date=project.end_date,
        billable_utilized_hours=billable_utilized_hours,
        non_billable_utilized_hours=non_billable_utilized_hours,
        billable_underutilized_hours=project.billable_hours - billable_utilized_hours,
        non_billable_underutilized_hours=project.non_billable_hours - non_billable_utilized_hours,
        total_hours=project.billable_hours + project.non_billable_hours,
    )


def split_list(source: Sequence[Any], size: int = 40) -> List[List[Any]]:
    """Split source into consecutive chunks of at most size items."""
    if size <= 0:
        raise ValueError("size must be positive")
    source = list(source)
    return [source[i:i + size] for i in range(0, len(source), size)]
