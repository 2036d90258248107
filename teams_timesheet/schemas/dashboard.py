from datetime import date
from typing import List
from uuid import UUID
from teams_timesheet.schemas.base import CamelModel


class DashboardRequestDTO(CamelModel):
    """Pending requests of one reportee, as listed on the manager dashboard."""
    user_id: UUID
    user_name: str = ""
    number_of_days: int
    total_hours: int
    status: int
    submitted_timesheet_ids: List[UUID]
    requested_for_dates: List[List[date]]


class DashboardProjectDTO(CamelModel):
    id: UUID
    title: str
    total_hours: int
    utilized_hours: int
