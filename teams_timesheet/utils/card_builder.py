from cachetools import TTLCache
from teams_timesheet.config import get_settings
from teams_timesheet.resources.strings import get_string
from typing import Any, Dict, List, Optional
import copy
import threading

settings = get_settings()

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
ADAPTIVE_CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
ADAPTIVE_CARD_VERSION = "1.2"


def _card_cache_ttl_seconds() -> int:
    hours = settings.card_cache_duration_in_hour
    if hours <= 0:
        hours = 12
    return hours * 60 * 60


# Static cards only depend on locale and settings
_card_cache = TTLCache(maxsize=32, ttl=_card_cache_ttl_seconds())
_card_cache_lock = threading.Lock()


def clear_card_cache():
    with _card_cache_lock:
        _card_cache.clear()


class CardBuilder:
    def __init__(self, locale: Optional[str] = None):
        self.locale = locale or settings.default_locale

    def _text(self, key: str, *args) -> str:
        return get_string(key, self.locale, *args)

    @staticmethod
    def _card(body: List[Dict[str, Any]], actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "type": "AdaptiveCard",
            "$schema": ADAPTIVE_CARD_SCHEMA,
            "version": ADAPTIVE_CARD_VERSION,
            "body": body,
            "actions": actions
        }

    @staticmethod
    def _tab_url(entity: str) -> str:
        return f"https://teams.microsoft.com/l/entity/{settings.manifest_id}/{entity}"

    def _header(self, title_key: str, subtitle_key: str) -> Dict[str, Any]:
        return {
            "type": "ColumnSet",
            "columns": [
                {
                    "type": "Column",
                    "width": "auto",
                    "items": [
                        {
                            "type": "Image",
                            "url": f"{settings.app_base_uri}/images/logo.png",
                            "size": "Medium"
                        }
                    ]
                },
                {
                    "type": "Column",
                    "width": "stretch",
                    "items": [
                        {
                            "type": "TextBlock",
                            "text": self._text(title_key),
                            "weight": "Bolder",
                            "spacing": "None",
                            "wrap": True
                        },
                        {
                            "type": "TextBlock",
                            "text": self._text(subtitle_key),
                            "spacing": "None",
                            "isSubtle": True,
                            "wrap": True
                        }
                    ]
                }
            ]
        }

    def _cached(self, name: str, build) -> Dict[str, Any]:
        key = (name, self.locale)
        with _card_cache_lock:
            card = _card_cache.get(key)
            if card is None:
                card = build()
                _card_cache[key] = card
        return copy.deepcopy(card)

    def build_welcome_card(self) -> Dict[str, Any]:
        def build():
            return self._card(
                body=[
                    self._header("WelcomeCardTitle", "WelcomeCardSubtitle"),
                    {
                        "type": "TextBlock",
                        "text": self._text("WelcomeCardIntro"),
                        "wrap": True
                    }
                ],
                actions=[
                    {
                        "type": "Action.OpenUrl",
                        "title": self._text("FillTimesheetButton"),
                        "url": self._tab_url("timesheet")
                    }
                ]
            )
        return self._cached("welcome", build)

    def build_fill_timesheet_reminder_card(self) -> Dict[str, Any]:
        def build():
            return self._card(
                body=[
                    {
                        "type": "TextBlock",
                        "text": self._text("FillTimesheetReminderCardTitle"),
                        "weight": "Bolder",
                        "size": "Large",
                        "wrap": True
                    }
                ],
                actions=[
                    {
                        "type": "Action.OpenUrl",
                        "title": self._text("FillTimesheetButton"),
                        "url": self._tab_url("timesheet")
                    }
                ]
            )
        return self._cached("fill-timesheet-reminder", build)

    def build_requests_reminder_card(self, pending_requests_count: int) -> Dict[str, Any]:
        return self._card(
            body=[
                self._header("TimesheetRequestsCardTitle", "ActionRequiredSubTitle"),
                {
                    "type": "TextBlock",
                    "text": self._text("RequestsReminderCardText", pending_requests_count),
                    "wrap": True
                }
            ],
            actions=[
                {
                    "type": "Action.OpenUrl",
                    "title": self._text("ViewRequestButton"),
                    "url": self._tab_url("dashboard")
                }
            ]
        )

    def _status_card(
        self,
        title_key: str,
        status_key: str,
        status_color: str,
        date_text: str,
        project_title: str,
        hours: int,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        facts = [
            {"title": self._text("ProjectLabel"), "value": project_title},
            {"title": self._text("HoursLabel"), "value": str(hours)}
        ]
        if comment:
            facts.append({"title": self._text("CommentLabel"), "value": comment})

        return self._card(
            body=[
                {
                    "type": "ColumnSet",
                    "columns": [
                        {
                            "type": "Column",
                            "width": "stretch",
                            "items": [
                                {
                                    "type": "TextBlock",
                                    "text": self._text(title_key),
                                    "weight": "Bolder",
                                    "size": "Medium",
                                    "wrap": True
                                },
                                {
                                    "type": "TextBlock",
                                    "text": date_text,
                                    "spacing": "None",
                                    "isSubtle": True,
                                    "wrap": True
                                }
                            ]
                        },
                        {
                            "type": "Column",
                            "width": "auto",
                            "items": [
                                {
                                    "type": "TextBlock",
                                    "text": self._text(status_key),
                                    "color": status_color,
                                    "weight": "Bolder"
                                }
                            ]
                        }
                    ]
                },
                {
                    "type": "FactSet",
                    "facts": facts
                }
            ],
            actions=[
                {
                    "type": "Action.OpenUrl",
                    "title": self._text("ViewTimesheetButtonText"),
                    "url": self._tab_url("timesheet")
                }
            ]
        )

    def build_approved_card(self, date_text: str, project_title: str, hours: int) -> Dict[str, Any]:
        return self._status_card(
            "TimesheetApprovedCardTitle", "ApprovedStatus", "Good",
            date_text, project_title, hours
        )

    def build_rejected_card(self, date_text: str, project_title: str, hours: int, comment: Optional[str]) -> Dict[str, Any]:
        return self._status_card(
            "TimesheetRejectedCardTitle", "RejectedStatus", "Attention",
            date_text, project_title, hours, comment
        )

    @staticmethod
    def to_attachment(card: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "contentType": ADAPTIVE_CARD_CONTENT_TYPE,
            "content": card
        }
