"""Bearer-token validation for the code fix API."""

import logging

from fastapi import Header, HTTPException

from codefix.db.supabase_client import get_supabase

logger = logging.getLogger(__name__)


async def verify_jwt(authorization: str = Header(None)):
    """Validate a Supabase JWT and return the authenticated user."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token")

    token = authorization[len("Bearer "):]
    try:
        user_response = get_supabase("anon").auth.get_user(token)
    except Exception as e:
        logger.debug("Token validation failed: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")
    if user_response is None or user_response.user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_response.user
