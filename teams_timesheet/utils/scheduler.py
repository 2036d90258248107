from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.repositories.conversation_repository import ConversationRepository
from teams_timesheet.repositories.member_repository import MemberRepository
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.repositories.timesheet_repository import TimesheetRepository
from teams_timesheet.services.teams_service import TeamsService
from teams_timesheet.utils.card_builder import CardBuilder
from teams_timesheet.utils.timezone import get_utc_today
from teams_timesheet.database import SessionLocal
from teams_timesheet.config import get_settings
from datetime import date
from typing import Optional
import logging

logger = logging.getLogger(__name__)
settings = get_settings()


class TaskScheduler:
    def __init__(self, teams_service: Optional[TeamsService] = None, card_builder: Optional[CardBuilder] = None, session_factory=None):
        self.scheduler = AsyncIOScheduler()
        self.teams_service = teams_service or TeamsService()
        self.card_builder = card_builder or CardBuilder()
        self.session_factory = session_factory or SessionLocal

    def start(self):
        self.scheduler.add_job(
            self.send_reminders,
            CronTrigger.from_crontab(settings.reminder_cron),
            id='timesheet_reminders'
        )
        self.scheduler.start()
        logger.info(f"Scheduler started - reminders on '{settings.reminder_cron}'")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Scheduler stopped")

    async def send_reminders(self):
        logger.info("⏰ Reminder job started")
        db = self.session_factory()
        try:
            pending = self.send_pending_requests_reminders(db)
            fill = self.send_fill_timesheet_reminders(db)
            logger.info(f"Reminder job finished - {pending} manager reminder(s), {fill} fill reminder(s)")
        except Exception as e:
            logger.error(f"Error in reminder job: {str(e)}", exc_info=True)
        finally:
            db.close()

    def send_pending_requests_reminders(self, db) -> int:
        """Remind every manager with a stored conversation about users awaiting approval."""
        sent, failed = 0, 0
        for manager_id in ProjectRepository.get_all_manager_ids(db):
            conversation = ConversationRepository.get(db, manager_id)
            if conversation is None:
                continue

            pending_requests = TimesheetRepository.get_timesheets_by_manager_id(db, manager_id, TimesheetStatus.SUBMITTED)
            if not pending_requests:
                continue

            card = self.card_builder.build_requests_reminder_card(len(pending_requests))
            if self.teams_service.send_card(conversation.service_url, conversation.conversation_id, CardBuilder.to_attachment(card)):
                sent += 1
            else:
                failed += 1

        if failed:
            logger.warning(f"{failed} manager reminder(s) could not be delivered")
        return sent

    def send_fill_timesheet_reminders(self, db, today: Optional[date] = None) -> int:
        """Remind members of projects running today, or starting today or tomorrow."""
        today = today or get_utc_today()
        projects = ProjectRepository.find_reminder_projects(db, today)
        if not projects:
            logger.info("No running projects, fill reminders skipped")
            return 0

        user_ids = MemberRepository.get_user_ids_of_projects(db, [project.id for project in projects])
        # One conversation per user even when they are on several projects
        conversations = {c.user_id: c for c in ConversationRepository.find_by_user_ids(db, user_ids)}

        attachment = CardBuilder.to_attachment(self.card_builder.build_fill_timesheet_reminder_card())
        sent, failed = 0, 0
        for user_id, conversation in conversations.items():
            if self.teams_service.send_card(conversation.service_url, conversation.conversation_id, attachment):
                sent += 1
            else:
                failed += 1
                logger.debug(f"Fill reminder to {user_id} failed")

        if failed:
            logger.warning(f"{failed} fill reminder(s) could not be delivered")
        return sent
