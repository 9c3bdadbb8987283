"""
Exceptions raised by git-publish.

Every failure in a publish run surfaces as a subclass of PublishError so the
pipeline caller can report it and fail the run. Nothing here is retried.
"""


class PublishError(Exception):
    """Base exception for publish operations."""

    pass


class RemoteUnreachableError(PublishError):
    """Raised when the remote cannot be contacted during clone, fetch or push."""

    def __init__(self, uri: str, detail: str = "") -> None:
        self.uri = uri
        self.detail = detail
        message = f"Cannot reach remote {uri}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidBranchError(PublishError, ValueError):
    """Raised when a branch name is not a valid git ref name."""

    def __init__(self, branch: str, reason: str) -> None:
        self.branch = branch
        self.reason = reason
        super().__init__(f"Invalid branch name {branch!r}: {reason}")


class FilesystemError(PublishError):
    """Raised when local I/O fails (cleanup, copy or checkout)."""

    pass


class ConfigError(PublishError):
    """Raised when required settings cannot be resolved or are invalid."""

    pass
