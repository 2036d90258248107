from teams_timesheet.models.project import Project, Member, Task
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.schemas.project import (
    ProjectDTO, ProjectUpdateDTO, MemberDTO, TaskDTO,
    ProjectMemberOverviewDTO, ProjectTaskOverviewDTO
)
from teams_timesheet.schemas.timesheet import TimesheetDTO, TimesheetDetails, SubmittedRequestDTO
from teams_timesheet.schemas.dashboard import DashboardRequestDTO, DashboardProjectDTO
from teams_timesheet.services.aggregation import group_dates_by_sequence
from datetime import date, datetime
from typing import Dict, Iterable, List
from uuid import UUID


def map_project_for_create(project_dto: ProjectDTO, user_id: UUID) -> Project:
    return Project(
        title=project_dto.title,
        client_name=project_dto.client_name,
        billable_hours=project_dto.billable_hours,
        non_billable_hours=project_dto.non_billable_hours,
        start_date=project_dto.start_date,
        end_date=project_dto.end_date,
        created_by=user_id,
        created_on=datetime.utcnow(),
        members=[
            Member(user_id=member.user_id, is_billable=member.is_billable, is_removed=False)
            for member in project_dto.members
        ],
        tasks=[
            Task(
                title=task.title,
                is_removed=False,
                is_added_by_member=False,
                start_date=task.start_date,
                end_date=task.end_date,
            )
            for task in project_dto.tasks
        ],
    )


def map_project_for_update(project_dto: ProjectUpdateDTO, project: Project) -> Project:
    project.title = project_dto.title
    project.client_name = project_dto.client_name
    project.billable_hours = project_dto.billable_hours
    project.non_billable_hours = project_dto.non_billable_hours
    project.start_date = project_dto.start_date
    project.end_date = project_dto.end_date
    return project


def map_task(task: Task) -> TaskDTO:
    return TaskDTO(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        is_added_by_member=task.is_added_by_member,
        start_date=task.start_date,
        end_date=task.end_date,
    )


def map_project(project: Project) -> ProjectDTO:
    """View model of a project. Removed tasks and members are left out."""
    return ProjectDTO(
        id=project.id,
        title=project.title,
        client_name=project.client_name,
        billable_hours=project.billable_hours,
        non_billable_hours=project.non_billable_hours,
        start_date=project.start_date,
        end_date=project.end_date,
        tasks=[map_task(task) for task in project.tasks if not task.is_removed],
        members=[
            MemberDTO(
                id=member.id,
                project_id=member.project_id,
                user_id=member.user_id,
                is_billable=member.is_billable,
            )
            for member in project.members if not member.is_removed
        ],
    )


def map_members_for_create(project_id: UUID, members: Iterable[MemberDTO]) -> List[Member]:
    return [
        Member(project_id=project_id, user_id=member.user_id, is_billable=member.is_billable, is_removed=False)
        for member in members
    ]


def map_existing_members(changes: Iterable[MemberDTO], existing_members: Iterable[Member]) -> List[Member]:
    changes_by_user = {member.user_id: member for member in changes}
    updated = []
    for member in existing_members:
        change = changes_by_user.get(member.user_id)
        if change is not None:
            member.is_billable = change.is_billable
            member.is_removed = False
            updated.append(member)
    return updated


def map_tasks_for_create(project_id: UUID, tasks: Iterable[TaskDTO]) -> List[Task]:
    return [
        Task(
            project_id=project_id,
            title=task.title,
            is_removed=False,
            is_added_by_member=False,
            start_date=task.start_date,
            end_date=task.end_date,
        )
        for task in tasks
    ]


def map_member_task_for_create(details: TimesheetDetails, project_id: UUID, member_id: UUID) -> Task:
    return Task(
        project_id=project_id,
        title=details.task_title,
        is_removed=False,
        is_added_by_member=True,
        member_mapping_id=member_id,
        start_date=details.start_date,
        end_date=details.end_date,
    )


def map_members_overview(members: Iterable[Member], timesheets: List[TimesheetEntity]) -> List[ProjectMemberOverviewDTO]:
    return [
        ProjectMemberOverviewDTO(
            id=member.id,
            user_id=member.user_id,
            user_name="",
            is_billable=member.is_billable,
            total_hours=sum(t.hours for t in timesheets if t.user_id == member.user_id),
        )
        for member in members
    ]


def map_tasks_overview(tasks: Iterable[Task], timesheets: List[TimesheetEntity]) -> List[ProjectTaskOverviewDTO]:
    return [
        ProjectTaskOverviewDTO(
            id=task.id,
            title=task.title,
            total_hours=sum(t.hours for t in timesheets if t.task_id == task.id),
            is_removed=False,
        )
        for task in tasks
    ]


def map_timesheet_for_create(timesheet_date: date, details: TimesheetDetails, user_id: UUID, status: TimesheetStatus) -> TimesheetEntity:
    return TimesheetEntity(
        task_id=details.task_id,
        task_title=details.task_title,
        timesheet_date=timesheet_date,
        hours=details.hours,
        status=int(status),
        user_id=user_id,
        submitted_on=datetime.utcnow() if status == TimesheetStatus.SUBMITTED else None,
    )


def map_timesheet(timesheet: TimesheetEntity) -> TimesheetDTO:
    return TimesheetDTO(
        id=timesheet.id,
        task_title=timesheet.task_title,
        timesheet_date=timesheet.timesheet_date,
        hours=timesheet.hours,
        status=timesheet.status,
    )


def map_submitted_requests(timesheets: Iterable[TimesheetEntity]) -> List[SubmittedRequestDTO]:
    """One request per date, in the order the dates first appear."""
    by_date: Dict[date, List[TimesheetEntity]] = {}
    for timesheet in timesheets:
        by_date.setdefault(timesheet.timesheet_date, []).append(timesheet)

    requests = []
    for timesheet_date, group in by_date.items():
        project_titles = []
        for timesheet in group:
            title = timesheet.task.project.title.strip()
            if title not in project_titles:
                project_titles.append(title)
        requests.append(SubmittedRequestDTO(
            user_id=group[0].user_id,
            timesheet_date=timesheet_date,
            total_hours=sum(t.hours for t in group),
            status=group[0].status,
            project_titles=project_titles,
            submitted_timesheet_ids=[t.id for t in group],
        ))
    return requests


def map_dashboard_requests(timesheets_by_user: Dict[UUID, List[TimesheetEntity]]) -> List[DashboardRequestDTO]:
    return [
        DashboardRequestDTO(
            user_id=user_id,
            user_name="",
            number_of_days=len({t.timesheet_date for t in timesheets}),
            total_hours=sum(t.hours for t in timesheets),
            status=timesheets[0].status,
            submitted_timesheet_ids=[t.id for t in timesheets],
            requested_for_dates=group_dates_by_sequence(timesheets),
        )
        for user_id, timesheets in timesheets_by_user.items()
        if timesheets
    ]


def map_dashboard_project(project: Project, timesheets: Iterable[TimesheetEntity]) -> DashboardProjectDTO:
    return DashboardProjectDTO(
        id=project.id,
        title=project.title,
        total_hours=project.billable_hours + project.non_billable_hours,
        utilized_hours=sum(t.hours for t in timesheets),
    )
