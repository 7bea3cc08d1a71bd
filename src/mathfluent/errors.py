"""Exception hierarchy shared across MathFluent modules."""


class MathFluentError(Exception):
    """Base class for all MathFluent errors."""


class StoreError(MathFluentError):
    """A document store operation failed."""


class NotConnectedError(StoreError):
    """The document store was used before connect() or after disconnect()."""

    def __init__(self, backend: str):
        super().__init__(f"{backend} document store is not connected")
        self.backend = backend


class ChatServiceError(MathFluentError):
    """A chat operation failed; the message is safe to show to the user."""


class AuthError(MathFluentError):
    """An auth operation was attempted in an invalid session state."""
