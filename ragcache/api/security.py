"""Utility helpers for securing admin-only API endpoints."""

from fastapi import Header, HTTPException, status

from ragcache.core.config import settings


def verify_admin_bearer_token(authorization: str = Header(None, convert_underscores=False)) -> bool:
    """Ensure that the caller supplied the correct admin bearer token.

    Admin endpoints are open when no ``admin_api_token`` is configured.
    """
    expected_token = settings.admin_api_token
    if not expected_token:
        return True

    if not authorization or not authorization.startswith('Bearer '):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Admin bearer token required.'
        )

    provided_token = authorization.split(' ', 1)[1].strip()
    if provided_token != expected_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Invalid admin bearer token.'
        )

    return True
