"""Error taxonomy for issue synchronization"""

from typing import Optional


class SyncError(Exception):
    """Base class for all synchronization errors"""


class NetworkFailure(SyncError):
    """The Backend could not be reached or answered with a server error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationFailure(SyncError):
    """A payload was rejected, locally or by the Backend"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GraphConstraintViolation(SyncError):
    """A dependency edge was rejected before reaching the Backend"""

    SELF_DEPENDENCY = "self_dependency"
    DUPLICATE = "duplicate"
    UNKNOWN_ISSUE = "unknown_issue"
    UNKNOWN_TARGET = "unknown_target"
    CYCLE = "cycle"

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class ChannelDisconnect(SyncError):
    """The push channel closed; handled by reconnecting, never shown to users"""
