"""
Admin security decorators.
Provides HTTP Basic authentication for the admin endpoints.
"""
import base64
import binascii
import hmac
from functools import wraps

from flask import current_app

from deepstaq.exceptions import UnauthenticatedError


def check_admin_credentials(auth_header, admin_email, admin_password) -> bool:
    """
    Check an `Authorization: Basic ...` header against the configured admin credentials.

    Stateless: the answer depends only on the header and the configured
    secret. Returns False when no admin is configured.
    """
    if not admin_email or not admin_password or not auth_header:
        return False

    scheme, _, encoded = auth_header.partition(' ')
    if scheme.lower() != 'basic' or not encoded.strip():
        return False

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return False

    email, sep, password = decoded.partition(':')
    if not sep:
        return False

    email_ok = hmac.compare_digest(email.encode('utf-8'), admin_email.encode('utf-8'))
    password_ok = hmac.compare_digest(password.encode('utf-8'), admin_password.encode('utf-8'))
    return email_ok and password_ok


def admin_required(f):
    """
    Decorator: Require admin Basic credentials on the request.

    Admin authentication is completely separate from tenant bearer tokens.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from flask import request

        if not check_admin_credentials(
            request.headers.get('Authorization'),
            current_app.config.get('ADMIN_EMAIL'),
            current_app.config.get('ADMIN_PASSWORD')
        ):
            current_app.logger.warning(f"[AUTH] Admin authentication failed from {request.remote_addr}")
            raise UnauthenticatedError()
        return f(*args, **kwargs)

    return decorated_function
