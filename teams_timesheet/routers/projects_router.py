from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List
from uuid import UUID
from teams_timesheet.auth.policies import require_manager, require_project_creator, require_project_member
from teams_timesheet.auth.security import CurrentUser, get_graph_service
from teams_timesheet.database import get_db
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.routers.common import bad_request, error_response
from teams_timesheet.schemas.dashboard import DashboardProjectDTO
from teams_timesheet.schemas.project import (
    ProjectDTO, ProjectUpdateDTO, MemberDTO, TaskDTO, ProjectUtilizationDTO,
    ProjectMemberOverviewDTO, ProjectTaskOverviewDTO
)
from teams_timesheet.schemas.timesheet import TimesheetDetails
from teams_timesheet.services.dashboard_service import DashboardService
from teams_timesheet.services.graph_service import GraphService
from teams_timesheet.services.project_service import ProjectService
from teams_timesheet.services.task_service import TaskService
from teams_timesheet.services.user_service import UserService
from teams_timesheet.services import mappers
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/projects", tags=["projects"])

END_BEFORE_START = "End date is less than start date."


# Declared before /{project_id} so "dashboard" is not read as a project id
@router.get("/dashboard", response_model=List[DashboardProjectDTO])
async def get_dashboard_projects(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    current_user: CurrentUser = Depends(require_manager),
    db: Session = Depends(get_db)
):
    if end_date < start_date:
        return bad_request(END_BEFORE_START)
    return DashboardService.get_dashboard_projects(db, current_user.user_id, start_date, end_date)


@router.get("/{project_id}", response_model=ProjectDTO, dependencies=[Depends(require_manager)])
async def get_project(
    project_id: UUID,
    current_user: CurrentUser = Depends(require_project_creator),
    db: Session = Depends(get_db)
):
    project = ProjectService.get_project_by_id(db, project_id, current_user.user_id)
    if project is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Project not found.")
    return project


@router.post("", response_model=ProjectDTO, status_code=status.HTTP_201_CREATED)
async def create_project(
    project: ProjectDTO,
    current_user: CurrentUser = Depends(require_manager),
    graph: GraphService = Depends(get_graph_service),
    db: Session = Depends(get_db)
):
    member_ids = [member.user_id for member in project.members]
    if member_ids and not UserService.are_direct_reportees(member_ids, graph):
        logger.error(f"Project members are not direct reportees of {current_user.user_id}")
        return error_response(status.HTTP_403_FORBIDDEN, "Project members are not direct reportees.")

    created = ProjectService.create_project(db, project, current_user.user_id)
    if created is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error occurred while creating project.")
    return created


@router.patch("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_manager)])
async def update_project(
    project_id: UUID,
    project: ProjectUpdateDTO,
    current_user: CurrentUser = Depends(require_project_creator),
    db: Session = Depends(get_db)
):
    project.id = project_id
    if not ProjectService.update_project(db, project, current_user.user_id):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error occurred while updating project.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/member/tasks", response_model=TaskDTO)
async def add_member_task(
    project_id: UUID,
    details: TimesheetDetails,
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    project = ProjectRepository.get(db, project_id)
    if project is None:
        logger.info(f"Project {project_id} not found")
        return bad_request("Invalid project")

    if (
        details.start_date is None
        or details.end_date is None
        or details.end_date < details.start_date
        or details.start_date < project.start_date
        or details.end_date > project.end_date
    ):
        logger.info("Task start and end date is not within project start and end date")
        return bad_request("Invalid start and end date for task")

    task = TaskService.add_member_task(db, details, project_id, current_user.user_id)
    if task is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to add task")
    return mappers.map_task(task)


@router.delete("/{project_id}/tasks/{task_id}")
async def delete_member_task(
    project_id: UUID,
    task_id: UUID,
    current_user: CurrentUser = Depends(require_project_member),
    db: Session = Depends(get_db)
):
    task = TaskService.get_member_task(db, project_id, task_id, current_user.user_id)
    if task is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Task not found")

    if not TaskService.delete_member_task(db, task):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to delete task")
    return Response(status_code=status.HTTP_200_OK)


@router.get("/{project_id}/utilization", response_model=ProjectUtilizationDTO, dependencies=[Depends(require_manager)])
async def get_project_utilization(
    project_id: UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    current_user: CurrentUser = Depends(require_project_creator),
    db: Session = Depends(get_db)
):
    if end_date < start_date:
        return bad_request(END_BEFORE_START)

    utilization = ProjectService.get_project_utilization(db, project_id, current_user.user_id, start_date, end_date)
    if utilization is None:
        logger.info(f"Utilization of project {project_id} not available for {current_user.user_id}")
        return error_response(status.HTTP_404_NOT_FOUND, "Project not found.")
    return utilization


@router.post("/{project_id}/members", dependencies=[Depends(require_manager), Depends(require_project_creator)])
async def add_project_members(
    project_id: UUID,
    members: List[MemberDTO],
    graph: GraphService = Depends(get_graph_service),
    db: Session = Depends(get_db)
):
    if not members:
        return bad_request("Members are either null or empty.")

    if not UserService.are_direct_reportees([member.user_id for member in members], graph):
        logger.error("Project members are not direct reportees of manager")
        return error_response(status.HTTP_403_FORBIDDEN, "Project members are not direct reportees.")

    if not ProjectService.add_project_members(db, project_id, members):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to add project members.")
    return Response(status_code=status.HTTP_200_OK)


@router.post("/{project_id}/tasks", dependencies=[Depends(require_manager), Depends(require_project_creator)])
async def create_tasks(
    project_id: UUID,
    tasks: List[TaskDTO],
    db: Session = Depends(get_db)
):
    if not tasks:
        return bad_request("Tasks are either null or empty.")

    if not ProjectService.add_project_tasks(db, project_id, tasks):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create task in project.")
    return Response(status_code=status.HTTP_201_CREATED)


@router.post("/{project_id}/deletemembers", dependencies=[Depends(require_manager), Depends(require_project_creator)])
async def delete_project_members(
    project_id: UUID,
    members: List[ProjectMemberOverviewDTO],
    graph: GraphService = Depends(get_graph_service),
    db: Session = Depends(get_db)
):
    if not members:
        return bad_request("Members are either null or empty.")

    user_ids = [member.user_id for member in members if member.user_id is not None]
    if not UserService.are_direct_reportees(user_ids, graph):
        logger.error("Project members are not direct reportees of manager")
        return error_response(status.HTTP_403_FORBIDDEN, "Project members are not direct reportees.")

    project_members = ProjectService.get_project_members(db, project_id, [member.id for member in members])
    if project_members is None:
        logger.error(f"One or more members not found in project {project_id}")
        return error_response(status.HTTP_404_NOT_FOUND, "One or more members not found in project.")

    if not ProjectService.delete_project_members(db, project_members):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to delete project members.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/deletetasks", dependencies=[Depends(require_manager), Depends(require_project_creator)])
async def delete_project_tasks(
    project_id: UUID,
    task_ids: List[UUID],
    db: Session = Depends(get_db)
):
    if not task_ids:
        return bad_request("Task ids are either null or empty.")

    tasks = ProjectService.get_project_tasks(db, project_id, task_ids)
    if tasks is None:
        logger.error(f"One or more tasks not found in project {project_id}")
        return error_response(status.HTTP_404_NOT_FOUND, "One or more tasks not found in project.")

    if not ProjectService.delete_project_tasks(db, tasks):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to delete project tasks.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{project_id}/membersoverview",
    response_model=List[ProjectMemberOverviewDTO],
    dependencies=[Depends(require_manager), Depends(require_project_creator)]
)
async def get_members_overview(
    project_id: UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db)
):
    if end_date < start_date:
        return bad_request(END_BEFORE_START)
    return ProjectService.get_project_members_overview(db, project_id, start_date, end_date)


@router.get(
    "/{project_id}/tasksoverview",
    response_model=List[ProjectTaskOverviewDTO],
    dependencies=[Depends(require_manager), Depends(require_project_creator)]
)
async def get_tasks_overview(
    project_id: UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db)
):
    if end_date < start_date:
        return bad_request(END_BEFORE_START)
    return ProjectService.get_project_tasks_overview(db, project_id, start_date, end_date)
