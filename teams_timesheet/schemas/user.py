from typing import Optional
from teams_timesheet.schemas.base import CamelModel


class UserDTO(CamelModel):
    id: str
    display_name: Optional[str] = None
    user_principal_name: Optional[str] = None
    mail: Optional[str] = None


class SettingsDTO(CamelModel):
    timesheet_freeze_day_of_month: int
    weekly_efforts_limit: int
