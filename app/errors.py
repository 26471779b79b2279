"""
Error kinds raised by the claim and trust services.

Every error is a per-request outcome. Routers let them propagate and the
handler registered in ``app.main`` turns them into JSON responses.
"""

from typing import Optional


class EngineError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EngineError):
    """Malformed input, e.g. wrong answer count or a badly shaped OTP."""
    status_code = 400


class NotFoundError(EngineError):
    status_code = 404


class AuthorizationError(EngineError):
    """Actor is not a party to the claim, or lacks the trust to act."""
    status_code = 403


class ConflictError(EngineError):
    """Duplicate active claim, or the claim is no longer in the expected state."""
    status_code = 409


class RateLimitedError(EngineError):
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
