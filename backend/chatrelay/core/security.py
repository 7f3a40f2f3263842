"""Bearer-token check that maps a token to the caller's chat namespace."""

import logging

from fastapi import Header

from chatrelay.core.config import settings
from chatrelay.core.exceptions import AuthError

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = ""
# Holds public chat copies; no token may map onto it
PUBLIC_NAMESPACE = "__public__"


def resolve_namespace(authorization: str | None) -> str:
    if not settings.auth_tokens:
        return DEFAULT_NAMESPACE

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Unauthorized")

    token = authorization[len("Bearer "):].strip()
    namespace = settings.auth_tokens.get(token)
    if namespace is None or namespace == PUBLIC_NAMESPACE:
        logger.debug("Rejected bearer token")
        raise AuthError("Unauthorized")
    return namespace


async def require_namespace(authorization: str | None = Header(default=None)) -> str:
    """FastAPI dependency returning the namespace the request's chats live in."""
    return resolve_namespace(authorization)
