"""Error taxonomy for the event catalog."""


class EventError(Exception):
    """Base class for catalog errors."""


class InvalidFormatError(EventError):
    """Raised when a date or time input cannot be normalized."""

    def __init__(self, value: str, kind: str):
        self.value = value
        self.kind = kind
        super().__init__(f"Invalid {kind} format: {value}")


class EventValidationError(EventError):
    """Raised when an event record fails field validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class DuplicateKeyError(EventError):
    """Raised when the slug uniqueness constraint rejects a write."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Slug already in use: {slug}")
