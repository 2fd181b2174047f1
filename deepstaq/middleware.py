"""Middleware for authentication and tenant context."""
from functools import wraps
from typing import NamedTuple, Optional

import jwt
from flask import current_app, g, request

from deepstaq.exceptions import UnauthenticatedError


class AuthenticatedUser(NamedTuple):
    """Identity established from a verified bearer token."""
    uid: str
    email: Optional[str] = None


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def verify_token(token: str) -> AuthenticatedUser:
    """
    Verify an identity-provider token and extract the caller.

    The uid comes from the `uid`, `user_id` or `sub` claim, in that order.

    Raises:
        UnauthenticatedError: bad signature, expired, wrong audience/issuer or no uid
    """
    config = current_app.config
    options = {'verify_aud': bool(config.get('AUTH_JWT_AUDIENCE'))}
    try:
        claims = jwt.decode(
            token,
            config['AUTH_JWT_SECRET'],
            algorithms=config.get('AUTH_JWT_ALGORITHMS') or ['HS256'],
            audience=config.get('AUTH_JWT_AUDIENCE'),
            issuer=config.get('AUTH_JWT_ISSUER'),
            options=options
        )
    except jwt.PyJWTError as e:
        current_app.logger.info(f"[AUTH] Rejected bearer token: {e}")
        raise UnauthenticatedError()

    uid = claims.get('uid') or claims.get('user_id') or claims.get('sub')
    if not uid:
        current_app.logger.info("[AUTH] Token without uid claim")
        raise UnauthenticatedError()
    return AuthenticatedUser(uid=str(uid), email=claims.get('email'))


def load_user():
    """
    Load current user and tenant into g (Flask's per-request global).

    Called before each request. Sets g.user and g.tenant_id when a valid
    bearer token is present; an invalid or missing token leaves both None
    and the route decorator decides whether that is an error.
    """
    g.user = None
    g.tenant_id = None

    token = _bearer_token()
    if not token:
        return

    try:
        user = verify_token(token)
    except UnauthenticatedError:
        return

    g.user = user
    # Each identity is its own tenant
    g.tenant_id = user.uid


def require_user(f):
    """
    Decorator: Require a verified bearer token.

    Raises UnauthenticatedError (401 JSON) when g.user is not set.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None or g.get('tenant_id') is None:
            raise UnauthenticatedError()
        return f(*args, **kwargs)
    return decorated_function
