from pydantic import Field, model_validator
from datetime import date
from typing import List, Optional
from uuid import UUID
from teams_timesheet.schemas.base import CamelModel


class MemberDTO(CamelModel):
    id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    user_id: UUID
    is_billable: bool = False


class TaskDTO(CamelModel):
    id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=100)
    is_added_by_member: bool = False
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("Task end date must be greater than or equal to start date.")
        return self


class _ProjectFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=50)
    billable_hours: int = Field(0, ge=0)
    non_billable_hours: int = Field(0, ge=0)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("Project end date must be greater than or equal to start date.")
        return self


class ProjectDTO(_ProjectFields):
    id: Optional[UUID] = None
    members: List[MemberDTO] = []
    tasks: List[TaskDTO] = []


class ProjectUpdateDTO(_ProjectFields):
    # Taken from the route when the body leaves it out
    id: Optional[UUID] = None


class ProjectUtilizationDTO(CamelModel):
    id: UUID
    title: str
    billable_utilized_hours: int
    non_billable_utilized_hours: int
    billable_underutilized_hours: int
    non_billable_underutilized_hours: int
    project_start_date: date
    project_end_date: date
    total_hours: int


class ProjectMemberOverviewDTO(CamelModel):
    id: UUID
    user_id: Optional[UUID] = None
    user_name: str = ""
    is_billable: bool = False
    total_hours: int = 0


class ProjectTaskOverviewDTO(CamelModel):
    id: UUID
    title: str
    total_hours: int = 0
    is_removed: bool = False
