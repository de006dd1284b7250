from __future__ import annotations


class BoardError(Exception):
    """Base for every error the board reports back to a caller."""

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BoardError):
    code = "validation"
    default_message = "Invalid listing"


class ConflictError(ValidationError):
    code = "conflict"
    default_message = "Listing id already exists"


class DuplicateSubmissionError(BoardError):
    code = "duplicate_submission"
    default_message = "You already have an active listing. Delete it before posting a new one."


class RedemptionError(BoardError):
    code = "redemption"
    default_message = "Promo code is invalid or already used"


class NotFoundError(BoardError):
    code = "not_found"
    default_message = "Listing not found"


class AlreadyPermanentError(BoardError):
    code = "already_permanent"
    default_message = "Listing is already permanent"


class AuthorizationError(BoardError):
    code = "forbidden"
    default_message = "Not allowed"


class StorageError(BoardError):
    code = "storage"
    default_message = "Storage is unavailable, try again later"
