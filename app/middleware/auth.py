"""
Authentication Middleware - API token checks for privileged endpoints
"""
import hmac
from functools import wraps

from flask import current_app, request

import logging

from exceptions import AuthenticationException

logger = logging.getLogger('main')


def _configured_token():
    return current_app.config.get('MODREPO_SETTINGS', {}).get('api', {}).get('token')


def has_api_token():
    """True when the request carries the configured API token"""
    expected = _configured_token()
    if not expected:
        return False

    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        header = header[7:]
    return hmac.compare_digest(header.strip(), expected)


def token_required(f):
    """Decorator rejecting requests without the API token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not has_api_token():
            logger.warning(f"Rejected unauthenticated request to {request.path} from {request.remote_addr}")
            raise AuthenticationException()
        return f(*args, **kwargs)
    return decorated_function


def unapproved_requested():
    """
    The `unapproved` query flag, honored only for token holders.
    """
    flag = request.args.get('unapproved', '').lower() in ('1', 'true', 'yes')
    if flag and not has_api_token():
        logger.debug(f"Ignoring unapproved flag for unauthenticated request to {request.path}")
        return False
    return flag
