"""Error taxonomy shared by the store, the streaming pipeline and the API layer."""


class ChatRelayError(Exception):
    """Base exception. ``status_code`` is used when the error reaches HTTP before streaming."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ChatRelayError):
    """Missing or malformed request fields."""

    status_code = 400


class AuthError(ChatRelayError):
    """Missing or invalid bearer token."""

    status_code = 401


class NotFoundError(ChatRelayError):
    """Unknown chat id (strict lookups) or unknown bot name."""

    status_code = 404


class UpstreamProviderError(ChatRelayError):
    """The model provider failed. Once streaming started this only shows up as an aborted stream."""

    status_code = 502


class ConfigurationError(ChatRelayError):
    """A bot configuration the service cannot act on, such as an unknown provider type."""

    status_code = 500


class StorageError(ChatRelayError):
    """Cache tier I/O failure. Archive failures never raise this."""

    status_code = 500
