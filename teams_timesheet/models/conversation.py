from sqlalchemy import Column, String, DateTime, Uuid
from datetime import datetime
from teams_timesheet.database import Base


class Conversation(Base):
    """Personal bot conversation reference, one row per user."""
    __tablename__ = "conversations"

    user_id = Column(Uuid, primary_key=True)
    conversation_id = Column(String(255), nullable=False)
    service_url = Column(String(255), nullable=False)
    bot_installed_on = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Conversation(user={self.user_id}, conversation={self.conversation_id})>"
