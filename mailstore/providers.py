"""Store providers keyed by protocol tag.

A provider knows how to open an authenticated connection for one protocol.
The IMAP providers hand back logged-in ``IMAPClient`` instances; everything
above this module talks to the server only through those connections.
"""

import contextlib
import logging
from typing import Protocol, runtime_checkable

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from .errors import ProviderError

logger = logging.getLogger("mailstore")

# Server, protocol and network failures a provider call may raise
PROVIDER_ERRORS = (IMAPClientError, OSError)


@runtime_checkable
class StoreProvider(Protocol):
    """Protocol for store providers."""

    @property
    def protocol(self) -> str:
        """Return the protocol tag this provider serves."""
        ...

    @property
    def default_port(self) -> int:
        ...

    def connect(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        timeout: float | None = None,
    ) -> IMAPClient:
        """Open a connection and authenticate.

        Raises:
            imapclient.exceptions.IMAPClientError: On protocol or login failure
            OSError: On network or TLS failure
        """
        ...


class ImapProvider:
    """IMAP provider, plain (``imap``) or over TLS (``imaps``)."""

    def __init__(self, protocol: str, ssl: bool):
        self._protocol = protocol
        self._ssl = ssl

    @property
    def protocol(self) -> str:
        return self._protocol

    @property
    def default_port(self) -> int:
        return 993 if self._ssl else 143

    def connect(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        timeout: float | None = None,
    ) -> IMAPClient:
        client = IMAPClient(host, port=port, ssl=self._ssl, timeout=timeout)
        try:
            client.login(username, password)
        except Exception:
            # Drop the socket without a LOGOUT round trip
            with contextlib.suppress(Exception):
                client.shutdown()
            raise
        logger.debug(f"Logged in to {host}:{port} as {username} ({self._protocol})")
        return client


_PROVIDERS: dict[str, StoreProvider] = {
    "imap": ImapProvider("imap", ssl=False),
    "imaps": ImapProvider("imaps", ssl=True),
}


def register_provider(provider: StoreProvider) -> None:
    """Make ``provider`` available under its protocol tag."""
    _PROVIDERS[provider.protocol] = provider


def get_provider(protocol: str) -> StoreProvider:
    """Look up the store provider for a protocol tag.

    Raises:
        ProviderError: If no store provider serves ``protocol`` (for example
            ``smtp``, which is a transport rather than a store)
    """
    try:
        return _PROVIDERS[protocol]
    except KeyError:
        raise ProviderError(f"No store provider for protocol '{protocol}'", target=protocol) from None


def supported_protocols() -> list[str]:
    return sorted(_PROVIDERS)
