"""
Application exceptions and the generic, non-leaking error messages returned to clients.
"""
import logging

logger = logging.getLogger(__name__)

DUPLICATE_ITEM = "This item already exists"
INVALID_REFERENCE = "Invalid reference in the submitted data"
MISSING_FIELDS = "Required fields are missing"
PERMISSION_DENIED = "You do not have permission for this operation"
CONNECTION_ERROR = "Connection error. Please try again."
GENERIC_ERROR = "Something went wrong. Please try again."


class MaintlyError(Exception):
    """Base exception for the application."""

    pass


class VaultEncryptionError(MaintlyError):
    """The cipher backend failed while sealing a secret."""

    pass


class GrantMutationError(MaintlyError):
    """A grant row could not be written."""

    def __init__(self, message: str, resource_id: str = ""):
        super().__init__(message)
        self.resource_id = resource_id


def generic_error_message(error: BaseException) -> str:
    """Map a failure to one of a few fixed messages; never echoes backend text."""
    logger.debug("Mapping error to generic message: %r", error)
    message = str(error).lower()
    if "unique constraint" in message or "duplicate key" in message:
        return DUPLICATE_ITEM
    if "foreign key" in message:
        return INVALID_REFERENCE
    if "not null" in message or "null value" in message:
        return MISSING_FIELDS
    if "permission" in message or "row-level security" in message:
        return PERMISSION_DENIED
    if "network" in message or "connection" in message:
        return CONNECTION_ERROR
    return GENERIC_ERROR
