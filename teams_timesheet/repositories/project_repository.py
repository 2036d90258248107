from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, and_
from teams_timesheet.models.project import Project, Member, Task
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID


class ProjectRepository:
    @staticmethod
    def create_project(db: Session, project: Project) -> Project:
        db.add(project)
        return project

    @staticmethod
    def get(db: Session, project_id: UUID) -> Optional[Project]:
        return db.get(Project, project_id)

    @staticmethod
    def get_projects_for_user_between(
        db: Session,
        start_date: date,
        end_date: date,
        user_id: UUID
    ) -> List[Project]:
        """
        Projects the user is a member of that overlap [start_date, end_date].
        A project overlaps when it starts inside the window or started before
        it and has not ended yet.
        """
        return db.query(Project).filter(
            Project.members.any(Member.user_id == user_id),
            or_(
                and_(Project.start_date >= start_date, Project.start_date <= end_date),
                and_(Project.start_date < start_date, Project.end_date >= start_date)
            )
        ).options(
            selectinload(Project.tasks).selectinload(Task.member_mapping),
            selectinload(Project.members)
        ).all()

    @staticmethod
    def get_active_projects_for_manager(db: Session, manager_id: UUID, today: date) -> List[Project]:
        return db.query(Project).filter(
            Project.created_by == manager_id,
            Project.start_date <= today,
            Project.end_date >= today
        ).order_by(Project.created_on).all()

    @staticmethod
    def get_all_manager_ids(db: Session) -> List[UUID]:
        return [row[0] for row in db.query(Project.created_by).distinct().all()]

    @staticmethod
    def get_project_by_id(db: Session, project_id: UUID, manager_id: UUID) -> Optional[Project]:
        """
        Get a project created by the manager, with tasks and members loaded.
        Removed rows are still in the collections; callers building view
        models drop them (see mappers.map_project).
        """
        return db.query(Project).filter(
            Project.id == project_id,
            Project.created_by == manager_id
        ).options(
            selectinload(Project.tasks),
            selectinload(Project.members)
        ).first()

    @staticmethod
    def is_project_created_by(db: Session, project_id: UUID, manager_id: UUID) -> bool:
        return db.query(Project.id).filter(
            Project.id == project_id,
            Project.created_by == manager_id
        ).first() is not None

    @staticmethod
    def find_reminder_projects(db: Session, today: date) -> List[Project]:
        """Projects active today, or starting today or tomorrow."""
        tomorrow = today + timedelta(days=1)
        return db.query(Project).filter(
            or_(
                and_(Project.start_date <= today, Project.end_date >= today),
                Project.start_date == today,
                Project.start_date == tomorrow
            )
        ).options(selectinload(Project.members)).all()
