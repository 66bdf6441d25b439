"""
JWT Authentication utilities for Shepherd.

Provides token generation, validation, and cookie management
for stateless authentication compatible with AWS Lambda.
"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID
from django.conf import settings


JWT_ALGORITHM = 'HS256'
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


def _secret() -> str:
    return getattr(settings, 'JWT_SECRET', None) or settings.SECRET_KEY


def _encode(payload: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, 'iat': now, 'exp': now + lifetime}
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_access_token(user_id: UUID, tenant_id: Optional[UUID]) -> str:
    """
    Create a short-lived access token carrying the user and tenant.
    Expires in 15 minutes.
    """
    return _encode(
        {
            'sub': str(user_id),
            'tenant_id': str(tenant_id) if tenant_id else None,
            'type': 'access',
        },
        timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: UUID) -> str:
    """
    Create a long-lived refresh token.
    Expires in 7 days.
    """
    return _encode(
        {'sub': str(user_id), 'type': 'refresh'},
        timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )


def create_token_pair(user_id: UUID, tenant_id: Optional[UUID]) -> Tuple[str, str]:
    """Returns (access_token, refresh_token)."""
    return (
        create_access_token(user_id, tenant_id),
        create_refresh_token(user_id),
    )


def decode_token(token: str, expected_type: Optional[str] = None) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns the payload, or None when the token is invalid, expired or
    of a different type than expected_type.
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    if expected_type and payload.get('type') != expected_type:
        return None
    return payload


def get_user_id_from_token(token: str, expected_type: str = 'access') -> Optional[UUID]:
    """Extract the user id from a valid token."""
    payload = decode_token(token, expected_type=expected_type)
    if payload and 'sub' in payload:
        try:
            return UUID(payload['sub'])
        except ValueError:
            return None
    return None


# Cookie configuration
def get_cookie_settings(is_production: bool = False) -> dict:
    """
    Production: Secure, SameSite=Lax
    Development: Not secure (localhost), SameSite=Lax
    """
    return {
        'httponly': True,
        'secure': is_production,
        'samesite': 'Lax',
        'path': '/',
    }


def get_access_token_cookie_settings(is_production: bool = False) -> dict:
    cookie = get_cookie_settings(is_production)
    cookie['max_age'] = ACCESS_TOKEN_EXPIRE_MINUTES * 60
    return cookie


def get_refresh_token_cookie_settings(is_production: bool = False) -> dict:
    cookie = get_cookie_settings(is_production)
    cookie['max_age'] = REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    return cookie
