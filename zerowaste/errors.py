from typing import Any, Optional


class ZeroWasteError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(ZeroWasteError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class Forbidden(ZeroWasteError):
    code = "forbidden"
    status_code = 403
    default_message = "Not authorized to perform this action"


class InvalidState(ZeroWasteError):
    code = "invalid_state"
    status_code = 400
    default_message = "Operation not allowed in the current state"


class Expired(ZeroWasteError):
    code = "expired"
    status_code = 400
    default_message = "Donation has expired"


class DuplicateClaim(ZeroWasteError):
    code = "duplicate_claim"
    status_code = 400
    default_message = "You have already claimed this donation"


class Conflict(ZeroWasteError):
    code = "conflict"
    status_code = 409
    default_message = "Someone else updated this donation first"


class ValidationError(ZeroWasteError):
    code = "validation_error"
    status_code = 400
    default_message = "Validation failed"
