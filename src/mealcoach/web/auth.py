"""
MealCoach - Request authentication.

Pantry-aware routes run as the caller. The bearer token is checked against
Supabase auth once, then reused for a client that RLS scopes to that user,
so pantry rows of other users are never readable from a request.
"""

import logging

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel
from supabase import Client

from mealcoach.db.client import get_authenticated_client, get_service_client

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Caller of a pantry-aware route."""
    id: str
    access_token: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def bearer_token(authorization: str | None) -> str:
    """Token from an Authorization header; the scheme is case-insensitive."""
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")
    return token


async def get_current_user(authorization: str | None = Header(None)) -> CurrentUser:
    token = bearer_token(authorization)

    try:
        response = get_service_client().auth.get_user(token)
    except Exception as e:
        logger.warning(f"Bearer token rejected: {e}")
        raise _unauthorized("Session expired or unknown") from e

    user = getattr(response, "user", None)
    if user is None:
        raise _unauthorized("Session expired or unknown")
    return CurrentUser(id=user.id, access_token=token)


def get_user_client(user: CurrentUser = Depends(get_current_user)) -> Client:
    """Supabase client acting as the caller (RLS applies)."""
    return get_authenticated_client(user.access_token)
