from teams_timesheet.config import get_settings
from teams_timesheet.schemas.user import UserDTO
from teams_timesheet.services.aggregation import split_list
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging
import msal
import requests

logger = logging.getLogger(__name__)
settings = get_settings()

GRAPH_ENDPOINT = "https://graph.microsoft.com/v1.0"
USER_FIELDS = "id,displayName,userPrincipalName,mail"
BATCH_SPLIT_COUNT = 20

_token_client: Optional[msal.ConfidentialClientApplication] = None


class GraphServiceError(Exception):
    """Raised when Microsoft Graph or the token endpoint fails."""


def get_token_client() -> msal.ConfidentialClientApplication:
    global _token_client
    if _token_client is None:
        _token_client = msal.ConfidentialClientApplication(
            settings.azure_ad_client_id,
            authority=f"{settings.azure_ad_instance.rstrip('/')}/{settings.azure_ad_tenant_id}",
            client_credential=settings.azure_ad_client_secret
        )
    return _token_client


def _to_user(payload: Dict) -> UserDTO:
    return UserDTO(
        id=payload.get("id"),
        display_name=payload.get("displayName"),
        user_principal_name=payload.get("userPrincipalName"),
        mail=payload.get("mail")
    )


class GraphService:
    """Graph calls made on behalf of the signed-in user."""

    def __init__(self, user_token: str, session: Optional[requests.Session] = None, token_client=None):
        self.user_token = user_token
        self.session = session or requests.Session()
        self.token_client = token_client
        self._access_token = None

    def _get_access_token(self) -> str:
        if self._access_token:
            return self._access_token

        client = self.token_client or get_token_client()
        result = client.acquire_token_on_behalf_of(
            user_assertion=self.user_token,
            scopes=settings.graph_scope.split()
        )
        if "access_token" not in result:
            logger.error(f"On-behalf-of token request failed: {result.get('error')} {result.get('error_description')}")
            raise GraphServiceError("Unable to acquire Graph token")

        self._access_token = result["access_token"]
        return self._access_token

    def _request(self, method: str, url: str, **kwargs) -> Dict:
        if not url.startswith("http"):
            url = f"{GRAPH_ENDPOINT}{url}"
        headers = {"Authorization": f"Bearer {self._get_access_token()}"}
        try:
            response = self.session.request(method, url, headers=headers, timeout=30, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Graph {method} {url} failed: {str(e)}")
            raise GraphServiceError(str(e)) from e
        return response.json() if response.content else {}

    def get_my_reportees(self, search: Optional[str] = None) -> List[UserDTO]:
        """Direct reports of the signed-in user, optionally filtered by name or mail."""
        reportees = []
        url = f"/me/directReports?$select={USER_FIELDS}"
        search = (search or "").strip().lower()

        while url:
            page = self._request("GET", url)
            for item in page.get("value", []):
                user = _to_user(item)
                if search and search not in (user.display_name or "").lower() and search not in (user.mail or "").lower():
                    continue
                reportees.append(user)
            url = page.get("@odata.nextLink")

        return reportees

    def get_manager(self) -> Optional[UserDTO]:
        try:
            return _to_user(self._request("GET", f"/me/manager?$select={USER_FIELDS}"))
        except GraphServiceError as e:
            cause = e.__cause__
            if isinstance(cause, requests.HTTPError) and cause.response is not None and cause.response.status_code == 404:
                return None
            raise

    def get_users(self, user_ids: Iterable[str]) -> Dict[UUID, UserDTO]:
        """Look up users with Graph $batch, 20 ids per request."""
        if user_ids is None:
            raise ValueError("user_ids must not be None")

        users = {}
        for batch in split_list([str(user_id) for user_id in user_ids], BATCH_SPLIT_COUNT):
            body = {
                "requests": [
                    {"id": str(index), "method": "GET", "url": f"/users/{user_id}?$select={USER_FIELDS}"}
                    for index, user_id in enumerate(batch)
                ]
            }
            result = self._request("POST", "/$batch", json=body)
            for response in result.get("responses", []):
                if response.get("status") != 200:
                    logger.warning(f"Graph user lookup {response.get('id')} returned {response.get('status')}")
                    continue
                user = _to_user(response.get("body", {}))
                users[UUID(user.id)] = user

        return users
