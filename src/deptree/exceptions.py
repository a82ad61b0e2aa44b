"""deptree exception hierarchy.

All public exceptions inherit from DeptreeError. The three node-level
errors are raised by the constraint resolver and the registry client and
are caught by the resolution engine, which records them on the failing node.
"""


class DeptreeError(Exception):
    """Base exception for all deptree errors."""


class InvalidConstraint(DeptreeError):
    """Raised when a version range expression cannot be parsed."""

    def __init__(self, constraint: str, reason: str = ""):
        self.constraint = constraint
        self.reason = reason
        message = f"Invalid version constraint '{constraint}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoCompatibleVersion(DeptreeError):
    """Raised when no advertised version satisfies a constraint."""

    def __init__(self, constraint: str, candidate_count: int = 0):
        self.constraint = constraint
        self.candidate_count = candidate_count
        super().__init__(
            f"No versions match spec '{constraint}' ({candidate_count} candidates)"
        )


class FetchError(DeptreeError):
    """Raised for transport, status, or decode failures reaching the registry.

    Attributes:
        url: Target URL, with credentials redacted.
        status_code: HTTP status when a response was received, else None.
    """

    def __init__(self, message: str, url: str = "", status_code=None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)
