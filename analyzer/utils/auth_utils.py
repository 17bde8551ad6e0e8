"""
Session helpers for the contract API.

The sign-in and billing collaborators populate the Flask session with
`user_id` and `is_premium`; this module only reads them.
"""
from functools import wraps
import logging

from flask import session, jsonify, request

logger = logging.getLogger(__name__)


def current_user_id():
    """Id of the signed-in user, or None."""
    user_id = session.get('user_id')
    return str(user_id) if user_id else None


def is_premium_user() -> bool:
    """Subscription check: True only when the session says the user is premium."""
    return session.get('is_premium') is True


def login_required(f):
    """Decorator rejecting API calls without a signed-in user with 401 JSON."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user_id():
            logger.info(f"Unauthenticated request to {request.endpoint}")
            return jsonify({'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
