# errors.py

from enum import Enum


class PrintError(Exception):
    """Base class for failures reported back to the caller of a print operation."""

    kind = "PrintError"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"status": "error", "kind": self.kind, "message": self.message}


class SurfaceCreationFailed(PrintError):
    kind = "SurfaceCreationFailed"


class ContentInjectionFailed(PrintError):
    kind = "ContentInjectionFailed"


class NoActiveSurface(PrintError):
    kind = "NoActiveSurface"

    def __init__(self, message="no active print surface"):
        super().__init__(message)


class HostActionFailed(PrintError):
    kind = "HostActionFailed"


class CloseOutcome(Enum):
    """Result of asking the host to close a surface.

    ALREADY_GONE is an expected absence during teardown, not a failure.
    """
    CLOSED = "closed"
    ALREADY_GONE = "already_gone"
