"""
Bearer token handling for admin-only endpoints.

Clients send `Authorization: Bearer <sessionId>`; the token is resolved by
the session store on every request.
"""

from functools import wraps
from typing import Optional

from flask import g, request

from pigeonpost.errors import Unauthorized
from pigeonpost.services.sessions import SessionInfo, session_store


def bearer_token() -> Optional[str]:
    """Extract the bearer token from the Authorization header, if any."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return token.strip() or None


def current_admin() -> Optional[SessionInfo]:
    """The admin session of this request, or None for anonymous callers."""
    token = bearer_token()
    if not token:
        return None
    try:
        return session_store.authenticate(token)
    except Unauthorized:
        return None


def require_admin(view):
    """Reject the request with 401 unless it carries a valid admin session."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        g.admin_session = session_store.authenticate(bearer_token())
        return view(*args, **kwargs)
    return wrapper
