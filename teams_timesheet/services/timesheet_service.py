from sqlalchemy.orm import Session
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.repositories.timesheet_repository import TimesheetRepository
from teams_timesheet.schemas.timesheet import UserTimesheet, TimesheetDTO, RequestApprovalDTO, SubmittedRequestDTO
from teams_timesheet.services.aggregation import build_user_timesheets
from teams_timesheet.services import mappers
from teams_timesheet.config import get_settings
from teams_timesheet.utils.timezone import get_utc_now
from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, TYPE_CHECKING
from uuid import UUID
import logging

if TYPE_CHECKING:
    from teams_timesheet.services.notification_service import NotificationService

logger = logging.getLogger(__name__)
settings = get_settings()

# Every status change of a timesheet row goes through this table
ALLOWED_TRANSITIONS = {
    TimesheetStatus.NONE: {TimesheetStatus.NONE, TimesheetStatus.SAVED},
    TimesheetStatus.SAVED: {TimesheetStatus.NONE, TimesheetStatus.SAVED, TimesheetStatus.SUBMITTED},
    TimesheetStatus.SUBMITTED: {TimesheetStatus.APPROVED, TimesheetStatus.REJECTED},
    TimesheetStatus.APPROVED: set(),
    TimesheetStatus.REJECTED: {TimesheetStatus.NONE, TimesheetStatus.SAVED},
}


def can_transition(current: int, target: TimesheetStatus) -> bool:
    try:
        current_status = TimesheetStatus(current)
    except ValueError:
        return False
    return target in ALLOWED_TRANSITIONS[current_status]


def get_total_efforts(user_timesheet: UserTimesheet) -> int:
    return sum(
        details.hours
        for project in user_timesheet.project_details
        for details in project.timesheet_details
    )


def get_week_bounds(timesheet_date: date):
    """Sunday to Saturday week containing the date."""
    start_of_week = timesheet_date - timedelta(days=(timesheet_date.weekday() + 1) % 7)
    return start_of_week, start_of_week + timedelta(days=6)


class TimesheetService:
    @staticmethod
    def get_not_yet_frozen_timesheet_dates(
        timesheet_dates: Iterable[date],
        client_local_current_date: date
    ) -> List[date]:
        """
        Keep the dates that can still be filled. From the freeze day of the
        client's month onwards only the current month is open, before it the
        previous month is open too.
        """
        year, month = client_local_current_date.year, client_local_current_date.month
        days_in_month = monthrange(year, month)[1]
        current_month_start = date(year, month, 1)
        current_month_end = date(year, month, days_in_month)
        freeze_day = min(settings.timesheet_freeze_day_of_month, days_in_month)

        if client_local_current_date.day >= freeze_day:
            open_from = current_month_start
        else:
            open_from = (current_month_start - timedelta(days=1)).replace(day=1)

        return [d for d in timesheet_dates if open_from <= d <= current_month_end]

    @staticmethod
    def is_client_current_date_valid(client_current_date: date, utc_now: datetime) -> bool:
        """The client date must fall between UTC-12 and UTC+14 of now."""
        earliest = (utc_now - timedelta(hours=12)).date()
        latest = (utc_now + timedelta(hours=14)).date()
        return earliest <= client_current_date <= latest

    @staticmethod
    def will_weekly_efforts_exceed_limit(
        db: Session,
        timesheet_date: date,
        efforts_to_save: int,
        user_id: UUID
    ) -> bool:
        start_of_week, end_of_week = get_week_bounds(timesheet_date)
        timesheets_of_week = TimesheetRepository.get_timesheets_of_user_between(db, start_of_week, end_of_week, user_id)
        filled_efforts = sum(t.hours for t in timesheets_of_week if t.timesheet_date != timesheet_date)
        return filled_efforts + efforts_to_save > settings.weekly_efforts_limit

    @staticmethod
    def get_timesheets(db: Session, start_date: date, end_date: date, user_id: UUID) -> List[UserTimesheet]:
        """Calendar view of the user's projects, tasks and filled efforts."""
        projects = ProjectRepository.get_projects_for_user_between(db, start_date, end_date, user_id)
        filled_timesheets = TimesheetRepository.get_timesheets_between(db, start_date, end_date, user_id)

        member_ids = {}
        for project in projects:
            for member in project.members:
                if member.user_id == user_id:
                    member_ids[project.id] = member.id
                    break

        def is_visible(task, day: date) -> bool:
            if task.is_removed:
                return False
            # Tasks added by a member are private to that member
            if task.is_added_by_member and task.member_mapping_id != member_ids.get(task.project_id):
                return False
            return task.start_date <= day <= task.end_date

        return build_user_timesheets(start_date, end_date, projects, filled_timesheets, task_filter=is_visible)

    @staticmethod
    def save_timesheets(
        db: Session,
        user_timesheets: List[UserTimesheet],
        client_local_current_date: date,
        user_id: UUID
    ) -> Optional[List[TimesheetDTO]]:
        """
        Save filled efforts. Days that are frozen or over the daily or weekly
        limit are skipped. Returns None when nothing was saved or the
        transaction failed.
        """
        timesheets_to_save = [
            user_timesheet for user_timesheet in user_timesheets
            if any(project.timesheet_details for project in user_timesheet.project_details)
        ]
        open_dates = set(TimesheetService.get_not_yet_frozen_timesheet_dates(
            [t.timesheet_date for t in timesheets_to_save],
            client_local_current_date
        ))
        timesheets_to_save = [t for t in timesheets_to_save if t.timesheet_date in open_dates]

        if not timesheets_to_save:
            logger.info(f"No timesheets to save for user {user_id}")
            return None

        min_date = min(t.timesheet_date for t in timesheets_to_save)
        max_date = max(t.timesheet_date for t in timesheets_to_save)
        user_projects = ProjectRepository.get_projects_for_user_between(db, min_date, max_date, user_id)
        allowed_task_ids = {task.id for project in user_projects for task in project.tasks if not task.is_removed}

        saved_timesheets = []
        now = get_utc_now().replace(tzinfo=None)

        try:
            for user_timesheet in timesheets_to_save:
                timesheet_date = user_timesheet.timesheet_date
                efforts_to_save = get_total_efforts(user_timesheet)

                if efforts_to_save > settings.daily_efforts_limit:
                    logger.error(f"Daily efforts limit({settings.daily_efforts_limit}) exceeded for date {timesheet_date}, user {user_id}")
                    continue

                if TimesheetService.will_weekly_efforts_exceed_limit(db, timesheet_date, efforts_to_save, user_id):
                    logger.error(f"Weekly efforts limit({settings.weekly_efforts_limit}) exceeded for date {timesheet_date}, user {user_id}")
                    continue

                for project in user_timesheet.project_details:
                    if not project.timesheet_details:
                        continue

                    # The last detail sent for a task wins
                    details_by_task = {details.task_id: details for details in project.timesheet_details}
                    task_ids = list(details_by_task)
                    filled_by_task = {
                        t.task_id: t
                        for t in TimesheetRepository.get_timesheets(db, timesheet_date, task_ids, user_id)
                    }

                    for details in details_by_task.values():
                        if details.task_id not in allowed_task_ids:
                            logger.warning(f"Task {details.task_id} is not assigned to user {user_id}, skipped")
                            continue

                        existing = filled_by_task.get(details.task_id)
                        if existing is None:
                            if details.hours > 0:
                                timesheet = mappers.map_timesheet_for_create(timesheet_date, details, user_id, TimesheetStatus.SAVED)
                                TimesheetRepository.add(db, timesheet)
                                saved_timesheets.append(timesheet)
                            continue

                        target_status = TimesheetStatus.SAVED if details.hours > 0 else TimesheetStatus.NONE
                        if not can_transition(existing.status, target_status):
                            logger.info(f"Timesheet {existing.id} is {TimesheetStatus(existing.status).name}, not overwritten")
                            continue

                        existing.hours = details.hours
                        existing.status = int(target_status)
                        existing.last_modified_on = now
                        saved_timesheets.append(existing)

                # Later days of the same week see this day's efforts
                db.flush()

            db.commit()
        except Exception as e:
            logger.error(f"Error saving timesheets for user {user_id}: {str(e)}", exc_info=True)
            db.rollback()
            return None

        if not saved_timesheets:
            logger.info(f"Failed to save timesheets for user {user_id}")
            return None

        return [mappers.map_timesheet(t) for t in saved_timesheets]

    @staticmethod
    def submit_timesheets(
        db: Session,
        user_id: UUID,
        current_date: Optional[date] = None
    ) -> Optional[List[TimesheetDTO]]:
        saved_timesheets = TimesheetRepository.get_timesheets_by_status(db, user_id, TimesheetStatus.SAVED)
        if not saved_timesheets:
            logger.info(f"Unable to submit timesheets as there are no saved timesheets for user {user_id}")
            return None

        current_date = current_date or get_utc_now().date()
        open_dates = set(TimesheetService.get_not_yet_frozen_timesheet_dates(
            [t.timesheet_date for t in saved_timesheets],
            current_date
        ))
        saved_timesheets = [t for t in saved_timesheets if t.timesheet_date in open_dates]
        if not saved_timesheets:
            logger.info(f"The timesheets of user {user_id} are frozen and can not be submitted")
            return None

        now = get_utc_now().replace(tzinfo=None)
        try:
            for timesheet in saved_timesheets:
                timesheet.status = int(TimesheetStatus.SUBMITTED)
                timesheet.submitted_on = now
            db.commit()
        except Exception as e:
            logger.error(f"Error submitting timesheets for user {user_id}: {str(e)}", exc_info=True)
            db.rollback()
            return None

        logger.info(f"Submitted {len(saved_timesheets)} timesheets for user {user_id}")
        return [mappers.map_timesheet(t) for t in saved_timesheets]

    @staticmethod
    def duplicate_efforts(
        db: Session,
        source_date: date,
        target_dates: List[date],
        client_local_current_date: date,
        user_id: UUID
    ) -> Optional[List[TimesheetDTO]]:
        """
        Copy the efforts filled on source_date to every open target date.
        A target date is skipped for a project it falls outside of, and
        entirely when the weekly limit would be exceeded.
        """
        target_dates = TimesheetService.get_not_yet_frozen_timesheet_dates(sorted(set(target_dates)), client_local_current_date)
        if not target_dates:
            logger.info(f"All target dates are frozen for user {user_id}")
            return None

        source_timesheets = TimesheetService.get_timesheets(db, source_date, source_date, user_id)
        if not source_timesheets:
            logger.info(f"No projects found on source date {source_date} for user {user_id}")
            return None

        source_day = source_timesheets[0]
        project_ids = [project.id for project in source_day.project_details]
        target_rows = TimesheetRepository.get_timesheets_of_user_on_dates(db, target_dates, user_id, project_ids)
        rows_by_date_and_task = {(t.timesheet_date, t.task_id): t for t in target_rows}
        source_efforts = get_total_efforts(source_day)

        duplicated = []
        now = get_utc_now().replace(tzinfo=None)

        try:
            for target_date in target_dates:
                if TimesheetService.will_weekly_efforts_exceed_limit(db, target_date, source_efforts, user_id):
                    logger.info(f"Weekly efforts limit exceeded for {target_date}, user {user_id}")
                    continue

                for project in source_day.project_details:
                    if target_date < project.start_date or target_date > project.end_date or not project.timesheet_details:
                        continue

                    for details in project.timesheet_details:
                        if details.start_date and details.end_date and not details.start_date <= target_date <= details.end_date:
                            continue

                        target_status = TimesheetStatus.SAVED if details.hours > 0 else TimesheetStatus.NONE
                        existing = rows_by_date_and_task.get((target_date, details.task_id))
                        if existing is not None:
                            if not can_transition(existing.status, target_status):
                                continue
                            existing.hours = details.hours
                            existing.status = int(target_status)
                            existing.last_modified_on = now
                            duplicated.append(existing)
                        elif details.hours > 0:
                            timesheet = mappers.map_timesheet_for_create(target_date, details, user_id, TimesheetStatus.SAVED)
                            TimesheetRepository.add(db, timesheet)
                            rows_by_date_and_task[(target_date, details.task_id)] = timesheet
                            duplicated.append(timesheet)

                db.flush()

            db.commit()
        except Exception as e:
            logger.error(f"Error duplicating efforts for user {user_id}: {str(e)}", exc_info=True)
            db.rollback()
            return None

        if not duplicated:
            logger.info(f"Failed to duplicate efforts for user {user_id}")
            return None

        return [mappers.map_timesheet(t) for t in duplicated]

    @staticmethod
    def get_submitted_timesheets_by_ids(
        db: Session,
        manager_id: UUID,
        timesheet_ids: Iterable[UUID]
    ) -> Optional[List[TimesheetEntity]]:
        """Submitted rows on the manager's projects, or None unless every id matched."""
        timesheet_ids = set(timesheet_ids)
        valid_timesheets = TimesheetRepository.get_submitted_timesheets_by_ids(db, manager_id, timesheet_ids)
        valid_ids = {t.id for t in valid_timesheets}
        if not timesheet_ids.issubset(valid_ids):
            return None
        return valid_timesheets

    @staticmethod
    def approve_or_reject_timesheets(
        db: Session,
        timesheets: List[TimesheetEntity],
        approvals: List[RequestApprovalDTO],
        status: TimesheetStatus,
        notification_service: Optional["NotificationService"] = None
    ) -> bool:
        if status not in (TimesheetStatus.APPROVED, TimesheetStatus.REJECTED):
            raise ValueError("status must be Approved or Rejected")

        approvals_by_id = {approval.timesheet_id: approval for approval in approvals}

        try:
            for timesheet in timesheets:
                if not can_transition(timesheet.status, status):
                    logger.error(f"Timesheet {timesheet.id} can not move from {timesheet.status} to {status.name}")
                    db.rollback()
                    return False
                approval = approvals_by_id.get(timesheet.id)
                timesheet.status = int(status)
                if status == TimesheetStatus.REJECTED and approval is not None:
                    timesheet.manager_comments = approval.manager_comments
                else:
                    timesheet.manager_comments = ""
                timesheet.last_modified_on = get_utc_now().replace(tzinfo=None)
            db.commit()
        except Exception as e:
            logger.error(f"Error updating timesheet status to {status.name}: {str(e)}", exc_info=True)
            db.rollback()
            return False

        logger.info(f"{len(timesheets)} timesheets marked {status.name}")
        if notification_service is not None:
            notification_service.send_status_notifications(db, timesheets, status)
        return True

    @staticmethod
    def get_timesheets_by_status(db: Session, reportee_id: UUID, status: TimesheetStatus) -> List[SubmittedRequestDTO]:
        timesheets_by_user = TimesheetRepository.get_timesheet_of_users_by_status(db, [reportee_id], status)
        timesheets = timesheets_by_user.get(reportee_id, [])
        requests = mappers.map_submitted_requests(timesheets)
        return sorted(requests, key=lambda request: request.timesheet_date)
