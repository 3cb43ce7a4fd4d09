"""Exception hierarchy for mailstore.

Lifecycle operations (acquire, connect, create, open) raise these so callers
can branch on the failure. Read operations never raise them for provider
failures; see :mod:`mailstore.mailbox`.
"""


class MailStoreError(Exception):
    """Base class for all mailstore errors.

    Args:
        message: Human-readable description
        target: Identifier of the protocol, host or folder concerned
    """

    def __init__(self, message: str, target: str | None = None):
        super().__init__(message)
        self.target = target


class ProviderError(MailStoreError):
    """No store provider is available for the requested protocol."""


class AuthError(MailStoreError):
    """Connecting or authenticating to the mail server failed."""


class FolderLookupError(MailStoreError):
    """A folder path could not be resolved."""


class FolderError(MailStoreError):
    """A folder operation failed on the server."""


class FolderCreateError(FolderError):
    pass


class FolderOpenError(FolderError):
    pass


class CloseError(MailStoreError):
    """Releasing a store connection failed."""


class InvalidStateError(MailStoreError):
    """An operation was called on a handle in the wrong lifecycle state."""


class StaleMessageError(InvalidStateError):
    """A message was used after its folder closed or it was expunged."""
