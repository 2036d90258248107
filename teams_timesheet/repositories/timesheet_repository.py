from sqlalchemy.orm import Session, joinedload
from teams_timesheet.models.project import Project, Task
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID


def _group_by_user(timesheets: List[TimesheetEntity]) -> Dict[UUID, List[TimesheetEntity]]:
    grouped = {}
    for timesheet in timesheets:
        grouped.setdefault(timesheet.user_id, []).append(timesheet)
    return grouped


class TimesheetRepository:
    @staticmethod
    def add(db: Session, timesheet: TimesheetEntity) -> TimesheetEntity:
        db.add(timesheet)
        return timesheet

    @staticmethod
    def get_timesheets_between(
        db: Session,
        start_date: date,
        end_date: date,
        user_id: UUID
    ) -> List[TimesheetEntity]:
        """
        Rows filled by the user in [start_date, end_date], most recently
        modified first. Rows never modified after creation come last.
        """
        timesheets = db.query(TimesheetEntity).filter(
            TimesheetEntity.user_id == user_id,
            TimesheetEntity.timesheet_date >= start_date,
            TimesheetEntity.timesheet_date <= end_date
        ).all()
        return sorted(timesheets, key=lambda t: t.last_modified_on or datetime.min, reverse=True)

    @staticmethod
    def get_timesheets_of_user_between(
        db: Session,
        start_date: date,
        end_date: date,
        user_id: UUID
    ) -> List[TimesheetEntity]:
        """Rows of the user in the window, skipping removed tasks."""
        return db.query(TimesheetEntity).join(TimesheetEntity.task).filter(
            TimesheetEntity.user_id == user_id,
            Task.is_removed.is_(False),
            TimesheetEntity.timesheet_date >= start_date,
            TimesheetEntity.timesheet_date <= end_date
        ).all()

    @staticmethod
    def get_timesheets_of_user_on_dates(
        db: Session,
        timesheet_dates: Iterable[date],
        user_id: UUID,
        project_ids: Optional[Iterable[UUID]] = None
    ) -> List[TimesheetEntity]:
        query = db.query(TimesheetEntity).join(TimesheetEntity.task).options(
            joinedload(TimesheetEntity.task)
        ).filter(
            TimesheetEntity.user_id == user_id,
            TimesheetEntity.timesheet_date.in_(list(timesheet_dates)),
            Task.is_removed.is_(False)
        )

        if project_ids:
            query = query.filter(Task.project_id.in_(list(project_ids)))

        return query.all()

    @staticmethod
    def get_timesheets(
        db: Session,
        timesheet_date: date,
        task_ids: Iterable[UUID],
        user_id: UUID
    ) -> List[TimesheetEntity]:
        return db.query(TimesheetEntity).filter(
            TimesheetEntity.user_id == user_id,
            TimesheetEntity.timesheet_date == timesheet_date,
            TimesheetEntity.task_id.in_(list(task_ids))
        ).all()

    @staticmethod
    def get_timesheets_by_status(db: Session, user_id: UUID, status: TimesheetStatus) -> List[TimesheetEntity]:
        return db.query(TimesheetEntity).filter(
            TimesheetEntity.user_id == user_id,
            TimesheetEntity.status == int(status)
        ).order_by(TimesheetEntity.timesheet_date).all()

    @staticmethod
    def get_submitted_timesheets_by_ids(
        db: Session,
        manager_id: UUID,
        timesheet_ids: Iterable[UUID]
    ) -> List[TimesheetEntity]:
        return db.query(TimesheetEntity).join(TimesheetEntity.task).join(Task.project).options(
            joinedload(TimesheetEntity.task).joinedload(Task.project)
        ).filter(
            TimesheetEntity.id.in_(list(timesheet_ids)),
            TimesheetEntity.status == int(TimesheetStatus.SUBMITTED),
            Project.created_by == manager_id
        ).all()

    @staticmethod
    def get_timesheets_by_manager_id(
        db: Session,
        manager_id: UUID,
        status: TimesheetStatus
    ) -> Dict[UUID, List[TimesheetEntity]]:
        """Rows in the given status on the manager's projects, grouped by user."""
        timesheets = db.query(TimesheetEntity).join(TimesheetEntity.task).join(Task.project).filter(
            TimesheetEntity.status == int(status),
            Project.created_by == manager_id,
            Task.is_removed.is_(False)
        ).order_by(TimesheetEntity.user_id, TimesheetEntity.timesheet_date).all()
        return _group_by_user(timesheets)

    @staticmethod
    def get_timesheet_of_users_by_status(
        db: Session,
        user_ids: Iterable[UUID],
        status: TimesheetStatus
    ) -> Dict[UUID, List[TimesheetEntity]]:
        timesheets = db.query(TimesheetEntity).join(TimesheetEntity.task).options(
            joinedload(TimesheetEntity.task).joinedload(Task.project)
        ).filter(
            TimesheetEntity.status == int(status),
            TimesheetEntity.user_id.in_(list(user_ids)),
            Task.is_removed.is_(False)
        ).order_by(TimesheetEntity.timesheet_date).all()
        return _group_by_user(timesheets)

    @staticmethod
    def get_timesheet_requests_by_project_id(
        db: Session,
        project_id: UUID,
        status: TimesheetStatus,
        start_date: date,
        end_date: date
    ) -> List[TimesheetEntity]:
        return db.query(TimesheetEntity).join(TimesheetEntity.task).filter(
            Task.project_id == project_id,
            TimesheetEntity.status == int(status),
            TimesheetEntity.timesheet_date >= start_date,
            TimesheetEntity.timesheet_date <= end_date
        ).all()

    @staticmethod
    def get_timesheet_requests_by_project_ids(
        db: Session,
        project_ids: Iterable[UUID],
        status: TimesheetStatus,
        start_date: date,
        end_date: date
    ) -> List[TimesheetEntity]:
        return db.query(TimesheetEntity).join(TimesheetEntity.task).options(
            joinedload(TimesheetEntity.task)
        ).filter(
            Task.project_id.in_(list(project_ids)),
            TimesheetEntity.status == int(status),
            TimesheetEntity.timesheet_date >= start_date,
            TimesheetEntity.timesheet_date <= end_date,
            Task.is_removed.is_(False)
        ).all()
