"""Exception hierarchy for the gateway.

Expected outcomes (a slot being held by someone else, a hold that expired)
are never exceptions; they come back as results. These classes cover genuine
faults of the collaborators the gateway talks to.
"""


class GatewayError(Exception):
    """Base class for gateway errors."""


class StorageError(GatewayError):
    """The storage layer failed (connectivity, permissions, schema)."""


class MessagingError(GatewayError):
    """The WhatsApp bridge rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int = None, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class CompletionError(GatewayError):
    """The text-completion service failed to produce a reply."""


class InvalidCredentialsError(CompletionError):
    """The completion service rejected the configured API key."""


class RateLimitError(CompletionError):
    """The completion service is rate limiting this account."""
