from sqlalchemy.orm import Session
from teams_timesheet.models.conversation import Conversation
from typing import Iterable, List, Optional
from uuid import UUID


class ConversationRepository:
    @staticmethod
    def get(db: Session, user_id: UUID) -> Optional[Conversation]:
        return db.get(Conversation, user_id)

    @staticmethod
    def find_by_user_ids(db: Session, user_ids: Iterable[UUID]) -> List[Conversation]:
        return db.query(Conversation).filter(Conversation.user_id.in_(list(user_ids))).all()

    @staticmethod
    def add(db: Session, conversation: Conversation) -> Conversation:
        db.add(conversation)
        return conversation
