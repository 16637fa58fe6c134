"""Exceptions raised while scanning and comparing fingerprint trees."""


class WalkError(Exception):
    """The scan root could not be opened or listed; no tree was produced."""

    def __init__(self, root: str, cause: BaseException | None = None):
        message = f"cannot walk {root}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.root = root
        self.cause = cause


RootWalkError = WalkError


class SubtreeSkipped(Exception):
    """A directory or archive below the scan root could not be read.

    Raised inside the walker and caught at the boundary of the affected
    subtree; it never escapes a walk.
    """

    def __init__(self, path: str, reason: str, cause: BaseException | None = None):
        super().__init__(f"{path}: {reason}" + (f" ({cause})" if cause is not None else ""))
        self.path = path
        self.reason = reason
        self.cause = cause


class InvariantViolation(AssertionError):
    """Internal consistency check failed. Indicates a bug, not bad input."""


class ScanCancelled(Exception):
    """The caller requested cancellation of a walk or a detection pass."""
