from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List
from teams_timesheet.auth.policies import require_manager, require_project_member, require_reportee_manager
from teams_timesheet.auth.security import CurrentUser, get_graph_service
from teams_timesheet.database import get_db
from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.routers.common import bad_request, error_response
from teams_timesheet.schemas.dashboard import DashboardRequestDTO
from teams_timesheet.schemas.timesheet import UserTimesheet, TimesheetDTO, DuplicateEffortsDTO, RequestApprovalDTO
from teams_timesheet.services.dashboard_service import DashboardService
from teams_timesheet.services.graph_service import GraphService
from teams_timesheet.services.notification_service import NotificationService
from teams_timesheet.services.timesheet_service import TimesheetService
from teams_timesheet.utils.timezone import get_utc_now
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/timesheets", tags=["timesheets"])

INVALID_CLIENT_DATE = "The timesheet can not be filled as provided current date is invalid."


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("", response_model=List[UserTimesheet])
async def get_timesheets(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    if start_date > end_date:
        logger.error("The provided start date is greater than end date")
        return bad_request("The start date must be less than or equal to end date.")
    return TimesheetService.get_timesheets(db, start_date, end_date, current_user.user_id)


@router.get("/dashboard", response_model=List[DashboardRequestDTO])
async def get_dashboard_requests(
    current_user: CurrentUser = Depends(require_manager),
    graph: GraphService = Depends(get_graph_service),
    db: Session = Depends(get_db)
):
    return DashboardService.get_dashboard_requests(db, current_user.user_id, graph)


@router.post("/submit", response_model=List[TimesheetDTO])
async def submit_timesheets(
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    result = TimesheetService.submit_timesheets(db, current_user.user_id)
    if result is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to submit timesheets.")
    return result


async def _approve_or_reject(
    approvals: List[RequestApprovalDTO],
    new_status: TimesheetStatus,
    current_user: CurrentUser,
    db: Session,
    notification_service: NotificationService
):
    if not approvals:
        return bad_request("Timesheets list is either null or empty.")

    timesheets = TimesheetService.get_submitted_timesheets_by_ids(
        db, current_user.user_id, [approval.timesheet_id for approval in approvals]
    )
    if timesheets is None:
        logger.info(f"No submitted timesheets found for manager {current_user.user_id}")
        return error_response(status.HTTP_404_NOT_FOUND, "Timesheets not found.")

    if not TimesheetService.approve_or_reject_timesheets(db, timesheets, approvals, new_status, notification_service):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to update timesheets.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/approve")
async def approve_timesheets(
    approvals: List[RequestApprovalDTO],
    current_user: CurrentUser = Depends(require_reportee_manager),
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return await _approve_or_reject(approvals, TimesheetStatus.APPROVED, current_user, db, notification_service)


@router.post("/reject")
async def reject_timesheets(
    approvals: List[RequestApprovalDTO],
    current_user: CurrentUser = Depends(require_reportee_manager),
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return await _approve_or_reject(approvals, TimesheetStatus.REJECTED, current_user, db, notification_service)


@router.post("/duplicate/{client_local_current_date}", response_model=List[TimesheetDTO])
async def duplicate_efforts(
    client_local_current_date: date,
    duplicate_details: DuplicateEffortsDTO,
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    if not TimesheetService.is_client_current_date_valid(client_local_current_date, get_utc_now()):
        logger.info(f"Invalid client date {client_local_current_date} from user {current_user.user_id}")
        return bad_request(INVALID_CLIENT_DATE)

    open_dates = TimesheetService.get_not_yet_frozen_timesheet_dates(duplicate_details.target_dates, client_local_current_date)
    if not open_dates:
        return bad_request("The timesheet can not be filled as the target dates are frozen.")

    source = TimesheetService.get_timesheets(db, duplicate_details.source_date, duplicate_details.source_date, current_user.user_id)
    if not source or not source[0].project_details:
        return bad_request("The source date must have projects.")

    result = TimesheetService.duplicate_efforts(
        db,
        duplicate_details.source_date,
        open_dates,
        client_local_current_date,
        current_user.user_id
    )
    if result is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to duplicate efforts.")
    return result


@router.post("/{client_local_current_date}", response_model=List[TimesheetDTO])
async def save_timesheets(
    client_local_current_date: date,
    user_timesheets: List[UserTimesheet],
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    if not user_timesheets:
        return bad_request("Timesheets are either null or empty.")

    if not TimesheetService.is_client_current_date_valid(client_local_current_date, get_utc_now()):
        logger.info(f"Invalid client date {client_local_current_date} from user {current_user.user_id}")
        return bad_request(INVALID_CLIENT_DATE)

    open_dates = set(TimesheetService.get_not_yet_frozen_timesheet_dates(
        [t.timesheet_date for t in user_timesheets], client_local_current_date
    ))
    if not open_dates:
        logger.info(f"Only frozen dates sent by user {current_user.user_id}")
        return bad_request("The timesheet can not be filled for frozen timesheet dates.")

    result = TimesheetService.save_timesheets(db, user_timesheets, client_local_current_date, current_user.user_id)
    if result is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to save timesheets.")
    return result
