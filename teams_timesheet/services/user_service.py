from cachetools import TTLCache
from teams_timesheet.config import get_settings
from teams_timesheet.schemas.user import UserDTO
from teams_timesheet.services.graph_service import GraphService
from typing import Iterable, List
from uuid import UUID
import logging
import threading

logger = logging.getLogger(__name__)
settings = get_settings()

_reportees_cache = TTLCache(maxsize=1024, ttl=settings.manager_reportees_cache_duration_in_hours * 60 * 60)
_reportees_lock = threading.Lock()


def clear_reportees_cache():
    with _reportees_lock:
        _reportees_cache.clear()


class UserService:
    @staticmethod
    def get_all_reportees(manager_id: UUID, graph: GraphService) -> List[UserDTO]:
        """Direct reports of the manager. Non-empty results are cached per manager."""
        with _reportees_lock:
            reportees = _reportees_cache.get(manager_id)
        if reportees:
            return reportees

        reportees = graph.get_my_reportees()
        if reportees:
            with _reportees_lock:
                _reportees_cache[manager_id] = reportees
        return reportees

    @staticmethod
    def get_reportee_ids(manager_id: UUID, graph: GraphService) -> set:
        return {UUID(reportee.id) for reportee in UserService.get_all_reportees(manager_id, graph)}

    @staticmethod
    def are_direct_reportees(user_ids: Iterable[UUID], graph: GraphService) -> bool:
        """Checked against a fresh directory read, not the cache."""
        reportee_ids = {UUID(reportee.id) for reportee in graph.get_my_reportees()}
        return all(user_id in reportee_ids for user_id in user_ids)
