# exceptions.py


class DrivegateError(Exception):
    """Base class for errors that are rendered as a plain-text HTTP response."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return "Internal error"


class NotAuthenticatedError(DrivegateError):
    """The request carries no session cookie."""

    status_code = 401

    @classmethod
    def default_message(cls) -> str:
        return "User not authenticated"


class StorageError(DrivegateError):
    """The storage provider rejected the operation. The message is shown to the caller as is."""

    status_code = 400


class UnknownProviderError(DrivegateError):
    """No storage provider is registered under the requested name."""

    status_code = 404

    @classmethod
    def default_message(cls) -> str:
        return "Provider not found"


class InvalidStateError(DrivegateError):
    """The OAuth2 state is unknown, already used or expired."""

    status_code = 400

    @classmethod
    def default_message(cls) -> str:
        return "Invalid state token"


class AuthCodeError(DrivegateError):
    """The authorization code could not be exchanged for a token."""

    status_code = 400

    @classmethod
    def default_message(cls) -> str:
        return "Auth Code invalid"
