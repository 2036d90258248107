from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from uuid import UUID
from teams_timesheet.auth.policies import require_manager, require_reportee_manager
from teams_timesheet.auth.security import CurrentUser, get_current_user, get_graph_service
from teams_timesheet.database import get_db
from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.routers.common import bad_request
from teams_timesheet.schemas.timesheet import SubmittedRequestDTO, UserTimesheet
from teams_timesheet.schemas.user import UserDTO
from teams_timesheet.services.graph_service import GraphService
from teams_timesheet.services.timesheet_service import TimesheetService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=List[UserDTO])
async def get_users_profile(user_ids: List[str], graph: GraphService = Depends(get_graph_service)):
    if not user_ids:
        logger.error("User Id list cannot be null or empty")
        return bad_request("User Id list cannot be null or empty.")

    profiles = graph.get_users(user_ids)
    return [UserDTO(id=user.id, display_name=user.display_name) for user in profiles.values()]


@router.get("/me/reportees", response_model=List[UserDTO])
async def get_my_reportees(
    search: Optional[str] = Query(None),
    graph: GraphService = Depends(get_graph_service)
):
    return graph.get_my_reportees(search)


@router.get("/me/manager", response_model=UserDTO)
async def get_manager(graph: GraphService = Depends(get_graph_service)):
    manager = graph.get_manager()
    if manager is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return manager


@router.get(
    "/{reportee_id}/timesheets/{timesheet_status}",
    response_model=List[SubmittedRequestDTO],
    dependencies=[Depends(require_manager)]
)
async def get_timesheets_by_status(
    reportee_id: UUID,
    timesheet_status: int,
    current_user: CurrentUser = Depends(require_reportee_manager),
    db: Session = Depends(get_db)
):
    try:
        requested_status = TimesheetStatus(timesheet_status)
    except ValueError:
        logger.error(f"Invalid status {timesheet_status}")
        return bad_request("Invalid timesheet status.")

    return TimesheetService.get_timesheets_by_status(db, reportee_id, requested_status)


@router.get(
    "/{reportee_id}/timesheets",
    response_model=List[UserTimesheet],
    dependencies=[Depends(require_manager)]
)
async def get_reportee_timesheets(
    reportee_id: UUID,
    calendar_start_date: date = Query(..., alias="calendarStartDate"),
    calendar_end_date: date = Query(..., alias="calendarEndDate"),
    current_user: CurrentUser = Depends(require_reportee_manager),
    db: Session = Depends(get_db)
):
    if calendar_end_date < calendar_start_date:
        logger.error("Calendar end date is less than start date")
        return bad_request("Calendar end date is less than start date.")

    return TimesheetService.get_timesheets(db, calendar_start_date, calendar_end_date, reportee_id)
