from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse
from json import JSONDecodeError
from sqlalchemy.orm import Session
from teams_timesheet.auth.security import verify_bot_token
from teams_timesheet.database import get_db
from teams_timesheet.handlers.bot_handler import BotHandler
from teams_timesheet.services.teams_service import TeamsService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["bot"])


def get_teams_service() -> TeamsService:
    return TeamsService()


@router.post("/messages", dependencies=[Depends(verify_bot_token)])
async def handle_messages(
    request: Request,
    db: Session = Depends(get_db),
    teams_service: TeamsService = Depends(get_teams_service)
):
    try:
        activity = await request.json()
    except JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid activity payload")

    if not isinstance(activity, dict):
        raise HTTPException(status_code=400, detail="Invalid activity payload")

    handler = BotHandler(db, teams_service=teams_service)
    response = await handler.handle_activity(activity)
    return JSONResponse(content=response)
