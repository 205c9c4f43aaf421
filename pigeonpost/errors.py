"""
Error taxonomy for Pigeon Post.

Each error knows the HTTP status it maps to so the Flask error handlers in
app.py can turn it into a JSON `{"error": ...}` response without any
per-route branching.
"""


class PigeonPostError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message}


class ValidationError(PigeonPostError):
    """Missing or malformed required field."""
    status_code = 400
    default_message = 'Invalid request'


class NotFound(PigeonPostError):
    """Unknown tracking number."""
    status_code = 404
    default_message = 'Not found'


class Unauthorized(PigeonPostError):
    """Missing, unknown, or otherwise unusable bearer token."""
    status_code = 401
    default_message = 'Unauthorized - Admin login required'


class SessionExpired(Unauthorized):
    """Token resolved to a session whose expiry has passed."""
    default_message = 'Session expired - Please login again'


class InvalidCredentials(Unauthorized):
    """Username/password pair did not match the configured admin."""
    default_message = 'Invalid credentials'


class StorageError(PigeonPostError):
    """
    Underlying store failure.

    The detail passed in is kept for the server log; the wire message is
    always the opaque default.
    """
    status_code = 500

    def __init__(self, detail: str = None):
        super().__init__(self.default_message)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail or self.message
