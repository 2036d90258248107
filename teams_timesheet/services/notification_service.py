from sqlalchemy.orm import Session
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.repositories.conversation_repository import ConversationRepository
from teams_timesheet.services.aggregation import group_timesheets_by_date_sequence
from teams_timesheet.services.teams_service import TeamsService
from teams_timesheet.utils.card_builder import CardBuilder
from teams_timesheet.utils.timezone import get_adaptive_card_date_string
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, teams_service: Optional[TeamsService] = None, card_builder: Optional[CardBuilder] = None):
        self.teams_service = teams_service or TeamsService()
        self.card_builder = card_builder or CardBuilder()

    def build_status_card(self, grouped_timesheets: List[TimesheetEntity], status: TimesheetStatus) -> Optional[dict]:
        """Card for one contiguous run of a user's timesheets on one project."""
        first, last = grouped_timesheets[0], grouped_timesheets[-1]
        if first.timesheet_date == last.timesheet_date:
            date_text = get_adaptive_card_date_string(first.timesheet_date)
        else:
            date_text = f"{get_adaptive_card_date_string(first.timesheet_date)} - {get_adaptive_card_date_string(last.timesheet_date)}"
        hours = sum(t.hours for t in grouped_timesheets)
        project_title = first.task.project.title

        if status == TimesheetStatus.APPROVED:
            return self.card_builder.build_approved_card(date_text, project_title, hours)
        if status == TimesheetStatus.REJECTED:
            return self.card_builder.build_rejected_card(date_text, project_title, hours, first.manager_comments)
        return None

    def send_status_notifications(self, db: Session, timesheets: List[TimesheetEntity], status: TimesheetStatus) -> int:
        """
        Notify each user about approved or rejected efforts, one card per
        project and contiguous date run. Rows with no hours are skipped.
        Returns the number of cards delivered.
        """
        by_user: Dict = {}
        for timesheet in timesheets:
            if timesheet.hours > 0:
                by_user.setdefault(timesheet.user_id, []).append(timesheet)

        delivered = 0
        for user_id, user_timesheets in by_user.items():
            conversation = ConversationRepository.get(db, user_id)
            if conversation is None:
                logger.info(f"No conversation stored for user {user_id}, notification skipped")
                continue

            by_project: Dict = {}
            for timesheet in user_timesheets:
                by_project.setdefault(timesheet.task.project_id, []).append(timesheet)

            for project_timesheets in by_project.values():
                ordered = sorted(project_timesheets, key=lambda t: t.timesheet_date)
                for group in group_timesheets_by_date_sequence(ordered):
                    card = self.build_status_card(group, status)
                    if card is None:
                        continue
                    if self.teams_service.send_card(
                        conversation.service_url,
                        conversation.conversation_id,
                        CardBuilder.to_attachment(card)
                    ):
                        delivered += 1

        logger.info(f"Delivered {delivered} {status.name.lower()} notification(s)")
        return delivered
