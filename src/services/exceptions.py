"""Shared exceptions for service layer operations."""


class BookmarkServiceError(Exception):
    """Base class for errors raised by the bookmark service layer."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(BookmarkServiceError):
    """Raised when caller input is malformed (bad URL, missing required field)."""


class NotFoundError(BookmarkServiceError):
    """Raised when a requested entity does not exist or is not owned by the user."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.title()} '{entity_id}' not found")


class UpstreamUnavailableError(BookmarkServiceError):
    """
    Raised when an external collaborator is unreachable or returns an error.

    The message carries the upstream status code when one was received, never
    the upstream response body. ``fatal`` comes from the collaborator's
    configuration: fatal failures are reported to callers as opaque internal
    errors.
    """

    def __init__(
        self,
        service: str,
        status_code: int | None = None,
        reason: str = "",
        fatal: bool = False,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.reason = reason
        self.fatal = fatal
        if status_code is not None:
            message = f"{service} unavailable (upstream status {status_code})"
        elif reason:
            message = f"{service} unavailable ({reason})"
        else:
            message = f"{service} unavailable"
        super().__init__(message)


class PersistenceFailedError(BookmarkServiceError):
    """Raised when the entity store fails to write. Always fatal to the operation."""


class DanglingReferenceError(BookmarkServiceError):
    """Raised under the strict policy when a relationship id does not resolve."""

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"Bookmark references missing {kind} '{entity_id}'")
