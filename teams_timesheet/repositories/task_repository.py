from sqlalchemy.orm import Session, joinedload
from teams_timesheet.models.project import Task
from typing import Iterable, List, Optional
from uuid import UUID


class TaskRepository:
    @staticmethod
    def get_task(db: Session, task_id: UUID) -> Optional[Task]:
        return db.query(Task).options(
            joinedload(Task.member_mapping)
        ).filter(Task.id == task_id).first()

    @staticmethod
    def get_tasks_by_project_id(db: Session, project_id: UUID) -> List[Task]:
        """Active tasks of the project, ordered by start date."""
        return db.query(Task).filter(
            Task.project_id == project_id,
            Task.is_removed.is_(False)
        ).order_by(Task.start_date).all()

    @staticmethod
    def find_by_ids(db: Session, project_id: UUID, task_ids: Iterable[UUID]) -> List[Task]:
        return db.query(Task).filter(
            Task.id.in_(list(task_ids)),
            Task.project_id == project_id
        ).all()

    @staticmethod
    def create_tasks(db: Session, tasks: Iterable[Task]):
        db.add_all(list(tasks))
