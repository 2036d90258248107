"""
Authorization policies as FastAPI dependencies. Each raises 403 when the
caller does not qualify. Positive decisions are kept in TTL caches keyed by
(subject, resource), so a revoked right can stay granted until the entry
expires.
"""
from fastapi import Depends, HTTPException, Request, status
from cachetools import TTLCache
from json import JSONDecodeError
from sqlalchemy.orm import Session
from teams_timesheet.auth.security import CurrentUser, get_current_user, get_graph_service
from teams_timesheet.config import get_settings
from teams_timesheet.database import get_db
from teams_timesheet.repositories.member_repository import MemberRepository
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.services.graph_service import GraphService
from teams_timesheet.services.user_service import UserService
from uuid import UUID
import logging
import threading

logger = logging.getLogger(__name__)
settings = get_settings()

HOUR = 60 * 60

project_creator_cache = TTLCache(maxsize=4096, ttl=settings.manager_project_validation_cache_duration_in_hours * HOUR)
project_member_cache = TTLCache(maxsize=4096, ttl=settings.user_part_of_projects_cache_duration_in_hour * HOUR)
_cache_lock = threading.Lock()


def clear_policy_caches():
    with _cache_lock:
        project_creator_cache.clear()
        project_member_cache.clear()


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _parse_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise _forbidden("Invalid identifier")


async def require_manager(
    current_user: CurrentUser = Depends(get_current_user),
    graph: GraphService = Depends(get_graph_service)
) -> CurrentUser:
    if not UserService.get_all_reportees(current_user.user_id, graph):
        logger.info(f"User {current_user.user_id} has no reportees")
        raise _forbidden("User is not a manager")
    return current_user


async def require_project_creator(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CurrentUser:
    project_id = _parse_uuid(request.path_params.get("project_id"))
    key = (current_user.user_id, project_id)

    with _cache_lock:
        if project_creator_cache.get(key):
            return current_user

    if not ProjectRepository.is_project_created_by(db, project_id, current_user.user_id):
        logger.info(f"User {current_user.user_id} did not create project {project_id}")
        raise _forbidden("User is not the project creator")

    with _cache_lock:
        project_creator_cache[key] = True
    return current_user


async def require_project_member(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CurrentUser:
    key = (current_user.user_id, "projects")

    with _cache_lock:
        if project_member_cache.get(key):
            return current_user

    if not MemberRepository.is_member_of_any_project(db, current_user.user_id):
        logger.info(f"User {current_user.user_id} is not part of any project")
        raise _forbidden("User is not a project member")

    with _cache_lock:
        project_member_cache[key] = True
    return current_user


async def require_reportee_manager(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    graph: GraphService = Depends(get_graph_service)
) -> CurrentUser:
    """
    The reportee_id path value, or every userId of the approval request body,
    must be a direct report of the caller.
    """
    reportee_id = request.path_params.get("reportee_id")
    if reportee_id is not None:
        user_ids = {_parse_uuid(reportee_id)}
    else:
        try:
            body = await request.json()
        except JSONDecodeError:
            raise _forbidden("Request body is not valid JSON")
        if not isinstance(body, list):
            raise _forbidden("No reportees in request")
        user_ids = {_parse_uuid(item.get("userId") if isinstance(item, dict) else None) for item in body}

    reportee_ids = UserService.get_reportee_ids(current_user.user_id, graph)
    if not user_ids.issubset(reportee_ids):
        logger.info(f"User {current_user.user_id} is not the manager of {user_ids - reportee_ids}")
        raise _forbidden("User is not the manager of the reportee")
    return current_user
