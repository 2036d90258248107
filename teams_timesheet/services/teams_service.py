from tenacity import retry, retry_if_exception, stop_after_attempt, wait_random_exponential, RetryError
from teams_timesheet.config import get_settings
from typing import Any, Dict, Optional
import logging
import msal
import requests

logger = logging.getLogger(__name__)
settings = get_settings()

BOT_FRAMEWORK_AUTHORITY = "https://login.microsoftonline.com/botframework.com"
BOT_FRAMEWORK_SCOPE = ["https://api.botframework.com/.default"]
RETRYABLE_STATUS_CODES = {429, 502}


class TeamsApiError(Exception):
    def __init__(self, status_code: int, message: str = ""):
        super().__init__(f"Bot Connector returned {status_code}: {message}")
        self.status_code = status_code


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, TeamsApiError) and error.status_code in RETRYABLE_STATUS_CODES


class TeamsService:
    """Sends proactive messages to personal bot conversations through the Bot Connector REST API."""

    def __init__(self, session: Optional[requests.Session] = None, token_client: Optional[msal.ConfidentialClientApplication] = None):
        self.session = session or requests.Session()
        self._token_client = token_client

    @property
    def token_client(self) -> msal.ConfidentialClientApplication:
        if self._token_client is None:
            self._token_client = msal.ConfidentialClientApplication(
                settings.microsoft_app_id,
                authority=BOT_FRAMEWORK_AUTHORITY,
                client_credential=settings.microsoft_app_password
            )
        return self._token_client

    def get_access_token(self) -> str:
        result = self.token_client.acquire_token_for_client(scopes=BOT_FRAMEWORK_SCOPE)
        if "access_token" not in result:
            raise TeamsApiError(401, result.get("error_description", "Unable to acquire bot token"))
        return result["access_token"]

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=1.5, max=10),
        reraise=True
    )
    def _post_activity(self, service_url: str, conversation_id: str, activity: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{service_url.rstrip('/')}/v3/conversations/{conversation_id}/activities"
        response = self.session.post(
            url,
            json=activity,
            headers={"Authorization": f"Bearer {self.get_access_token()}"},
            timeout=30
        )
        if response.status_code >= 400:
            raise TeamsApiError(response.status_code, response.text)
        return response.json() if response.content else {}

    def send_card(self, service_url: str, conversation_id: str, attachment: Dict[str, Any]) -> bool:
        """Send an adaptive card attachment. Failures are logged and reported as False."""
        activity = {
            "type": "message",
            "attachments": [attachment]
        }
        try:
            self._post_activity(service_url, conversation_id, activity)
            logger.info(f"Sent card to conversation {conversation_id}")
            return True
        except (TeamsApiError, RetryError, requests.RequestException) as e:
            logger.error(f"Error sending card to conversation {conversation_id}: {str(e)}")
            return False
