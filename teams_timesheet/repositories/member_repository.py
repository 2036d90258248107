from sqlalchemy.orm import Session
from teams_timesheet.models.project import Member
from typing import Iterable, List, Optional
from uuid import UUID


class MemberRepository:
    @staticmethod
    def get_all_members(db: Session, project_id: UUID) -> List[Member]:
        """All members ever added to the project, removed ones included."""
        return db.query(Member).filter(Member.project_id == project_id).all()

    @staticmethod
    def get_all_active_members(db: Session, project_id: UUID) -> List[Member]:
        return db.query(Member).filter(
            Member.project_id == project_id,
            Member.is_removed.is_(False)
        ).all()

    @staticmethod
    def get_active_member(db: Session, project_id: UUID, user_id: UUID) -> Optional[Member]:
        return db.query(Member).filter(
            Member.project_id == project_id,
            Member.user_id == user_id,
            Member.is_removed.is_(False)
        ).first()

    @staticmethod
    def find_by_ids(db: Session, project_id: UUID, member_ids: Iterable[UUID]) -> List[Member]:
        return db.query(Member).filter(
            Member.id.in_(list(member_ids)),
            Member.project_id == project_id
        ).all()

    @staticmethod
    def is_member_of_any_project(db: Session, user_id: UUID) -> bool:
        return db.query(Member.id).filter(
            Member.user_id == user_id,
            Member.is_removed.is_(False)
        ).first() is not None

    @staticmethod
    def get_user_ids_of_projects(db: Session, project_ids: Iterable[UUID]) -> List[UUID]:
        rows = db.query(Member.user_id).filter(
            Member.project_id.in_(list(project_ids)),
            Member.is_removed.is_(False)
        ).distinct().all()
        return [row[0] for row in rows]

    @staticmethod
    def add_members(db: Session, members: Iterable[Member]):
        db.add_all(list(members))
