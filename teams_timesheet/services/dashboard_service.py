from sqlalchemy.orm import Session
from teams_timesheet.models.timesheet import TimesheetStatus
from teams_timesheet.repositories.project_repository import ProjectRepository
from teams_timesheet.repositories.timesheet_repository import TimesheetRepository
from teams_timesheet.schemas.dashboard import DashboardRequestDTO, DashboardProjectDTO
from teams_timesheet.services.graph_service import GraphService
from teams_timesheet.services import mappers
from teams_timesheet.utils.timezone import get_utc_today
from datetime import date
from typing import List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


class DashboardService:
    @staticmethod
    def get_dashboard_requests(db: Session, manager_id: UUID, graph: Optional[GraphService] = None) -> List[DashboardRequestDTO]:
        """Pending requests per reportee, named from the directory when available."""
        timesheets_by_user = TimesheetRepository.get_timesheets_by_manager_id(db, manager_id, TimesheetStatus.SUBMITTED)
        if not timesheets_by_user:
            return []

        requests = mappers.map_dashboard_requests(timesheets_by_user)
        if graph is not None:
            users = graph.get_users([str(request.user_id) for request in requests])
            for request in requests:
                user = users.get(request.user_id)
                if user is not None:
                    request.user_name = user.display_name or ""
        return requests

    @staticmethod
    def get_dashboard_projects(
        db: Session,
        manager_id: UUID,
        start_date: date,
        end_date: date,
        today: Optional[date] = None
    ) -> List[DashboardProjectDTO]:
        projects = ProjectRepository.get_active_projects_for_manager(db, manager_id, today or get_utc_today())
        if not projects:
            return []

        timesheets = TimesheetRepository.get_timesheet_requests_by_project_ids(
            db, [project.id for project in projects], TimesheetStatus.APPROVED, start_date, end_date
        )
        by_project = {}
        for timesheet in timesheets:
            by_project.setdefault(timesheet.task.project_id, []).append(timesheet)

        return [mappers.map_dashboard_project(project, by_project.get(project.id, [])) for project in projects]
