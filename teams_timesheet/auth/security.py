from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from dataclasses import dataclass
from functools import lru_cache
from teams_timesheet.config import get_settings
from teams_timesheet.services.graph_service import GraphService
from typing import Optional
from uuid import UUID
import jwt
import logging

logger = logging.getLogger(__name__)
settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)

BOT_FRAMEWORK_JWKS_URI = "https://login.botframework.com/v1/.well-known/keys"
BOT_FRAMEWORK_ISSUER = "https://api.botframework.com"


@dataclass
class CurrentUser:
    user_id: UUID
    token: str
    name: Optional[str] = None


@lru_cache()
def get_azure_ad_jwks_client() -> jwt.PyJWKClient:
    return jwt.PyJWKClient(
        f"{settings.azure_ad_instance.rstrip('/')}/{settings.azure_ad_tenant_id}/discovery/v2.0/keys"
    )


@lru_cache()
def get_bot_framework_jwks_client() -> jwt.PyJWKClient:
    return jwt.PyJWKClient(BOT_FRAMEWORK_JWKS_URI)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def decode_azure_ad_token(token: str) -> dict:
    signing_key = get_azure_ad_jwks_client().get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=settings.valid_audiences,
        issuer=settings.valid_issuers,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> CurrentUser:
    """Validate the Azure AD bearer token of the tab and return the caller."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing bearer token")

    token = credentials.credentials
    try:
        claims = decode_azure_ad_token(token)
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {str(e)}")
        raise _unauthorized("Invalid bearer token")

    object_id = claims.get("oid")
    if not object_id:
        raise _unauthorized("Token has no object id")

    return CurrentUser(user_id=UUID(object_id), token=token, name=claims.get("name"))


def get_graph_service(current_user: CurrentUser = Depends(get_current_user)) -> GraphService:
    return GraphService(current_user.token)


async def verify_bot_token(request: Request) -> dict:
    """Validate the Bot Framework token on incoming activities."""
    authorization = request.headers.get("Authorization", "")
    if not authorization.startswith("Bearer "):
        raise _unauthorized("Missing bot token")

    token = authorization[len("Bearer "):]
    try:
        signing_key = get_bot_framework_jwks_client().get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.microsoft_app_id,
            issuer=BOT_FRAMEWORK_ISSUER,
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bot token: {str(e)}")
        raise _unauthorized("Invalid bot token")
