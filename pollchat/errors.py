class ChatError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ChatError):
    status_code = 422
    default_detail = "Invalid input"


class ConflictError(ChatError):
    status_code = 409
    default_detail = "A participant with this name is already connected"


class NotFoundError(ChatError):
    status_code = 404
    default_detail = "Not found"


class ForbiddenError(ChatError):
    status_code = 403
    default_detail = "Only the sender may change this message"


class StoreError(ChatError):
    status_code = 500
    default_detail = "Storage unavailable"
