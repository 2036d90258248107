from sqlalchemy.orm import Session
from teams_timesheet.models.conversation import Conversation
from teams_timesheet.repositories.conversation_repository import ConversationRepository
from teams_timesheet.services.teams_service import TeamsService
from teams_timesheet.utils.card_builder import CardBuilder
from teams_timesheet.utils.timezone import get_utc_now
from typing import Any, Dict, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


class BotHandler:
    def __init__(self, db: Session, teams_service: Optional[TeamsService] = None, card_builder: Optional[CardBuilder] = None):
        self.db = db
        self.teams_service = teams_service or TeamsService()
        self.card_builder = card_builder or CardBuilder()

    async def handle_activity(self, activity: Dict[str, Any]) -> Dict[str, Any]:
        activity_type = activity.get("type")
        logger.info(f"📥 Received activity: {activity_type}")

        if activity_type == "conversationUpdate":
            return await self._handle_conversation_update(activity)

        # Messages and other activity types need no reply
        return {"status": "ignored"}

    async def _handle_conversation_update(self, activity: Dict[str, Any]) -> Dict[str, Any]:
        conversation = activity.get("conversation", {})
        if conversation.get("conversationType") != "personal":
            logger.info(f"Ignoring conversation update in {conversation.get('conversationType')} scope")
            return {"status": "ignored"}

        bot_id = activity.get("recipient", {}).get("id")
        members_added = activity.get("membersAdded") or []
        if not any(member.get("id") == bot_id for member in members_added):
            return {"status": "ignored"}

        return self._handle_bot_installed(activity)

    def _handle_bot_installed(self, activity: Dict[str, Any]) -> Dict[str, Any]:
        """
        The bot was added in personal scope. New users get the welcome card and
        a stored conversation, known users get their conversation refreshed.
        """
        aad_object_id = activity.get("from", {}).get("aadObjectId")
        if not aad_object_id:
            logger.error("Installation activity has no aadObjectId")
            return {"status": "ignored"}

        try:
            user_id = UUID(aad_object_id)
        except ValueError:
            logger.error(f"Installation activity has an invalid aadObjectId: {aad_object_id}")
            return {"status": "ignored"}

        conversation_id = activity["conversation"]["id"]
        service_url = activity.get("serviceUrl", "")
        now = get_utc_now().replace(tzinfo=None)

        existing = ConversationRepository.get(self.db, user_id)
        try:
            if existing is None:
                welcome_card = CardBuilder.to_attachment(self.card_builder.build_welcome_card())
                self.teams_service.send_card(service_url, conversation_id, welcome_card)
                ConversationRepository.add(self.db, Conversation(
                    user_id=user_id,
                    conversation_id=conversation_id,
                    service_url=service_url,
                    bot_installed_on=now
                ))
                status = "installed"
            else:
                existing.conversation_id = conversation_id
                existing.service_url = service_url
                existing.bot_installed_on = now
                status = "updated"
            self.db.commit()
        except Exception as e:
            logger.error(f"Error storing conversation for user {user_id}: {str(e)}", exc_info=True)
            self.db.rollback()
            raise

        logger.info(f"✅ Conversation {status} for user {user_id}")
        return {"status": status}
