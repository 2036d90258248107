from fastapi import APIRouter, Depends, Response
from teams_timesheet.auth.security import get_current_user
from teams_timesheet.config import get_settings
from teams_timesheet.schemas.user import SettingsDTO

router = APIRouter(prefix="/api/settings", tags=["settings"])
settings = get_settings()

ONE_DAY = 24 * 60 * 60


@router.get("", response_model=SettingsDTO, dependencies=[Depends(get_current_user)])
async def get_validation_parameters(response: Response):
    """Limits the tab validates against before saving."""
    response.headers["Cache-Control"] = f"private, max-age={ONE_DAY}"
    return SettingsDTO(
        timesheet_freeze_day_of_month=settings.timesheet_freeze_day_of_month,
        weekly_efforts_limit=settings.weekly_efforts_limit
    )
