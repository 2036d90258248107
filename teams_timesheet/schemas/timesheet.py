from pydantic import Field
from datetime import date
from typing import List, Optional
from uuid import UUID
from teams_timesheet.schemas.base import CamelModel


class TimesheetDetails(CamelModel):
    """Efforts of one task on one day, as shown in the fill-timesheet calendar."""
    task_id: UUID
    task_title: str = Field(..., max_length=100)
    hours: int = Field(0, ge=0)
    status: int = 0
    manager_comments: Optional[str] = ""
    is_added_by_member: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ProjectDetails(CamelModel):
    id: UUID
    title: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timesheet_details: List[TimesheetDetails] = []


class UserTimesheet(CamelModel):
    timesheet_date: date
    project_details: List[ProjectDetails] = []


class TimesheetDTO(CamelModel):
    id: Optional[UUID] = None
    task_title: str
    timesheet_date: date
    hours: int
    status: int


class DuplicateEffortsDTO(CamelModel):
    source_date: date
    target_dates: List[date] = Field(..., min_length=1)


class RequestApprovalDTO(CamelModel):
    user_id: UUID
    timesheet_id: UUID
    manager_comments: Optional[str] = Field(None, max_length=100)
    timesheet_date: List[date] = []


class SubmittedRequestDTO(CamelModel):
    user_id: UUID
    timesheet_date: date
    total_hours: int
    status: int
    submitted_timesheet_ids: List[UUID]
    project_titles: List[str]
