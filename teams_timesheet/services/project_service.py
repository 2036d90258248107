from sqlalchemy.orm import Session
from teams_timesheet.models.project import Member, Task
from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.repositories.member_repository import MemberRepository
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.repositories.task_repository import TaskRepository
from teams_timesheet.repositories.timesheet_repository import TimesheetRepository
from teams_timesheet.schemas.project import (
    ProjectDTO, ProjectUpdateDTO, MemberDTO, TaskDTO, ProjectUtilizationDTO,
    ProjectMemberOverviewDTO, ProjectTaskOverviewDTO
)
from teams_timesheet.services.aggregation import compute_project_utilization
from teams_timesheet.services import mappers
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


class ProjectService:
    @staticmethod
    def create_project(db: Session, project_dto: ProjectDTO, user_id: UUID) -> Optional[ProjectDTO]:
        if project_dto is None:
            raise ValueError("Project details cannot be None")

        project = mappers.map_project_for_create(project_dto, user_id)
        try:
            ProjectRepository.create_project(db, project)
            db.commit()
        except Exception as e:
            logger.error(f"Error creating project {project_dto.title}: {str(e)}", exc_info=True)
            db.rollback()
            return None

        logger.info(f"Project {project.id} created by {user_id}")
        return mappers.map_project(project)

    @staticmethod
    def update_project(db: Session, project_dto: ProjectUpdateDTO, user_id: UUID) -> bool:
        if project_dto is None:
            raise ValueError("The project details must be provided")

        project = ProjectRepository.get_project_by_id(db, project_dto.id, user_id)
        if project is None:
            logger.info(f"Project {project_dto.id} not found for user {user_id}")
            return False

        try:
            mappers.map_project_for_update(project_dto, project)
            db.commit()
        except Exception as e:
            logger.error(f"Error updating project {project_dto.id}: {str(e)}", exc_info=True)
            db.rollback()
            return False
        return True

    @staticmethod
    def get_project_by_id(db: Session, project_id: UUID, user_id: UUID) -> Optional[ProjectDTO]:
        project = ProjectRepository.get_project_by_id(db, project_id, user_id)
        if project is None:
            return None
        return mappers.map_project(project)

    @staticmethod
    def get_project_utilization(
        db: Session,
        project_id: UUID,
        manager_id: UUID,
        start_date: date,
        end_date: date
    ) -> Optional[ProjectUtilizationDTO]:
        project = ProjectRepository.get_project_by_id(db, project_id, manager_id)
        if project is None:
            return None

        timesheets = TimesheetRepository.get_timesheet_requests_by_project_id(
            db, project_id, TimesheetStatus.APPROVED, start_date, end_date
        )
        # Removed members still own approved hours
        members = MemberRepository.get_all_members(db, project_id)
        return compute_project_utilization(project, timesheets, members)

    @staticmethod
    def add_project_members(db: Session, project_id: UUID, members_to_add: List[MemberDTO]) -> bool:
        """Insert new members; existing ones get their billable flag updated and are restored."""
        user_ids = {member.user_id for member in members_to_add}
        existing = [m for m in MemberRepository.get_all_members(db, project_id) if m.user_id in user_ids]

        try:
            updated = mappers.map_existing_members(members_to_add, existing)
            updated_user_ids = {member.user_id for member in updated}
            new_members = [m for m in members_to_add if m.user_id not in updated_user_ids]
            if new_members:
                MemberRepository.add_members(db, mappers.map_members_for_create(project_id, new_members))
            db.commit()
        except Exception as e:
            logger.error(f"Error adding members to project {project_id}: {str(e)}", exc_info=True)
            db.rollback()
            return False

        logger.info(f"Project {project_id}: {len(updated)} member(s) updated, {len(new_members)} added")
        return True

    @staticmethod
    def add_project_tasks(db: Session, project_id: UUID, tasks: List[TaskDTO]) -> bool:
        if not tasks:
            raise ValueError("Task list is either None or empty")

        try:
            TaskRepository.create_tasks(db, mappers.map_tasks_for_create(project_id, tasks))
            db.commit()
        except Exception as e:
            logger.error(f"Error adding tasks to project {project_id}: {str(e)}", exc_info=True)
            db.rollback()
            return False
        return True

    @staticmethod
    def get_project_members(db: Session, project_id: UUID, member_ids: Iterable[UUID]) -> Optional[List[Member]]:
        """Members of the project with the given ids, or None unless all were found."""
        member_ids = set(member_ids)
        members = MemberRepository.find_by_ids(db, project_id, member_ids)
        if len(members) != len(member_ids):
            return None
        return members

    @staticmethod
    def get_project_tasks(db: Session, project_id: UUID, task_ids: Iterable[UUID]) -> Optional[List[Task]]:
        task_ids = set(task_ids)
        tasks = TaskRepository.find_by_ids(db, project_id, task_ids)
        if len(tasks) != len(task_ids):
            return None
        return tasks

    @staticmethod
    def delete_project_members(db: Session, members: List[Member]) -> bool:
        if members is None:
            raise ValueError("members must not be None")
        try:
            for member in members:
                member.is_removed = True
            db.commit()
        except Exception as e:
            logger.error(f"Error removing project members: {str(e)}", exc_info=True)
            db.rollback()
            return False
        return True

    @staticmethod
    def delete_project_tasks(db: Session, tasks: List[Task]) -> bool:
        if tasks is None:
            raise ValueError("tasks must not be None")
        try:
            for task in tasks:
                task.is_removed = True
            db.commit()
        except Exception as e:
            logger.error(f"Error removing project tasks: {str(e)}", exc_info=True)
            db.rollback()
            return False
        return True

    @staticmethod
    def get_project_members_overview(
        db: Session,
        project_id: UUID,
        start_date: date,
        end_date: date
    ) -> List[ProjectMemberOverviewDTO]:
        members = MemberRepository.get_all_active_members(db, project_id)
        if not members:
            return []
        timesheets = TimesheetRepository.get_timesheet_requests_by_project_id(
            db, project_id, TimesheetStatus.APPROVED, start_date, end_date
        )
        return mappers.map_members_overview(members, timesheets)

    @staticmethod
    def get_project_tasks_overview(
        db: Session,
        project_id: UUID,
        start_date: date,
        end_date: date
    ) -> List[ProjectTaskOverviewDTO]:
        tasks = TaskRepository.get_tasks_by_project_id(db, project_id)
        if not tasks:
            return []
        timesheets = TimesheetRepository.get_timesheet_requests_by_project_id(
            db, project_id, TimesheetStatus.APPROVED, start_date, end_date
        )
        return mappers.map_tasks_overview(tasks, timesheets)
