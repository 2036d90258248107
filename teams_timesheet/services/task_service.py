from sqlalchemy.orm import Session
from teams_timesheet.models.project import Task
from teams_timesheet.repositories.member_repository import MemberRepository
from teams_timesheet.repositories.task_repository import TaskRepository
from teams_timesheet.schemas.timesheet import TimesheetDetails
from teams_timesheet.services import mappers
from typing import Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


class TaskService:
    @staticmethod
    def add_member_task(db: Session, details: TimesheetDetails, project_id: UUID, user_id: UUID) -> Optional[Task]:
        """Create a task visible only to the member who adds it."""
        if details is None:
            raise ValueError("The task details should not be None")

        member = MemberRepository.get_active_member(db, project_id, user_id)
        if member is None:
            logger.info(f"User {user_id} is not an active member of project {project_id}")
            return None

        task = mappers.map_member_task_for_create(details, project_id, member.id)
        try:
            TaskRepository.create_tasks(db, [task])
            db.commit()
        except Exception as e:
            logger.error(f"Error adding task for user {user_id}: {str(e)}", exc_info=True)
            db.rollback()
            return None

        logger.info(f"Task {task.id} added by member {user_id}")
        return task

    @staticmethod
    def get_member_task(db: Session, project_id: UUID, task_id: UUID, user_id: UUID) -> Optional[Task]:
        """The task if it belongs to the project and was added by this user."""
        task = TaskRepository.get_task(db, task_id)
        if (
            task is None
            or task.project_id != project_id
            or not task.is_added_by_member
            or task.member_mapping is None
            or task.member_mapping.user_id != user_id
        ):
            return None
        return task

    @staticmethod
    def delete_member_task(db: Session, task: Task) -> bool:
        try:
            task.is_removed = True
            db.commit()
        except Exception as e:
            logger.error(f"Error deleting task {task.id}: {str(e)}", exc_info=True)
            db.rollback()
            return False
        return True
