"""Mail stores: one authenticated connection to a mail account."""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from imapclient import IMAPClient

from .errors import AuthError, CloseError, FolderLookupError, InvalidStateError, ProviderError
from .providers import PROVIDER_ERRORS, StoreProvider, get_provider
from .reporting import FailureReporter
from .session import Session

if TYPE_CHECKING:
    from .folder import Folder

logger = logging.getLogger("mailstore")

DEFAULT_SEPARATOR = "/"


class StoreState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class Store:
    """A connection to a mail account and the root of its folder namespace.

    The store's own connection serves namespace commands (LIST, CREATE,
    existence checks). Every opened folder gets a dedicated connection made
    with the same credentials, so several folders can be open at once.
    """

    def __init__(
        self,
        session: Session,
        provider: StoreProvider,
        reporter: FailureReporter | None = None,
    ):
        self.session = session
        self.provider = provider
        self.reporter = reporter or FailureReporter()
        self.state = StoreState.DISCONNECTED
        self._client: IMAPClient | None = None
        self._login: tuple[str, int, str, str, float | None] | None = None
        self._open_folders: list["Folder"] = []
        self._separator: str | None = None

    def __repr__(self) -> str:
        return f"Store(protocol={self.protocol!r}, host={self.host!r}, state={self.state.value})"

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        from .lifecycle import close_store

        close_store(self)

    @property
    def protocol(self) -> str:
        return self.provider.protocol

    @property
    def host(self) -> str | None:
        if self._login is not None:
            return self._login[0]
        return self.session.host_for(self.protocol)

    @property
    def is_connected(self) -> bool:
        return self.state is StoreState.CONNECTED

    @property
    def connection(self) -> IMAPClient:
        if self._client is None:
            raise InvalidStateError("Store is not connected", target=self.host)
        return self._client

    def connect(self, username: str, password: str, host: str | None = None) -> None:
        """Authenticate to the server.

        Args:
            username: Account login
            password: Account password
            host: Server to contact; defaults to the session's host for this protocol

        Raises:
            InvalidStateError: If the store is already connected
            AuthError: If the server cannot be reached or rejects the login.
                The store stays disconnected and ``connect`` may be retried.
        """
        if self.is_connected:
            raise InvalidStateError("Store is already connected", target=self.host)

        host = host or self.session.host_for(self.protocol)
        if not host:
            raise AuthError(f"No host configured for protocol '{self.protocol}'", target=self.protocol)
        port = self.session.port_for(self.protocol) or self.provider.default_port
        timeout = self.session.timeout_for(self.protocol)

        try:
            client = self.provider.connect(host, port, username, password, timeout)
        except PROVIDER_ERRORS as e:
            self.reporter.report("connect", f"{host}:{port}", e)
            raise AuthError(f"Connecting to {host}:{port} failed: {e}", target=host) from e

        self._client = client
        self._login = (host, port, username, password, timeout)
        self.state = StoreState.CONNECTED
        logger.info(f"Connected to {host}:{port} ({self.protocol})")

    def open_connection(self) -> IMAPClient:
        """Open an additional connection with the store's credentials.

        Raises:
            InvalidStateError: If the store is not connected
        """
        if self._login is None:
            raise InvalidStateError("Store is not connected", target=self.host)
        host, port, username, password, timeout = self._login
        return self.provider.connect(host, port, username, password, timeout)

    def open_folders(self) -> list["Folder"]:
        return list(self._open_folders)

    def _folder_opened(self, folder: "Folder") -> None:
        self._open_folders.append(folder)

    def _folder_closed(self, folder: "Folder") -> None:
        if folder in self._open_folders:
            self._open_folders.remove(folder)

    def close(self) -> None:
        """Log out of the server.

        Does nothing when already disconnected. The store always ends
        disconnected, even when the logout itself fails.

        Raises:
            InvalidStateError: If folders of this store are still open
            CloseError: If the logout failed
        """
        if not self.is_connected:
            return
        if self._open_folders:
            names = ", ".join(f.path for f in self._open_folders)
            raise InvalidStateError(f"Close open folders first: {names}", target=self.host)

        client = self.connection
        host = self.host
        self._client = None
        self._login = None
        self._separator = None
        self.state = StoreState.DISCONNECTED

        try:
            client.logout()
        except PROVIDER_ERRORS as e:
            raise CloseError(f"Logout from {host} failed: {e}", target=host) from e
        logger.info(f"Disconnected from {host}")

    @property
    def separator(self) -> str:
        """Hierarchy separator used by the server, discovered on first use."""
        if self._separator is None and self._client is not None:
            try:
                listing = self._client.list_folders("", "")
            except PROVIDER_ERRORS as e:
                self.reporter.report("discover separator", self.host or "", e)
                return DEFAULT_SEPARATOR
            self._separator = DEFAULT_SEPARATOR
            for _flags, delimiter, _name in listing:
                if delimiter:
                    self._separator = _text(delimiter)
                    break
        return self._separator or DEFAULT_SEPARATOR

    def get_folder(self, path: str) -> "Folder":
        """Return a handle for ``path``. No server round trip is made.

        Raises:
            InvalidStateError: If the store is not connected
            FolderLookupError: If the path is empty or contains wildcards
        """
        from .folder import Folder

        if not self.is_connected:
            raise InvalidStateError("Store is not connected", target=path)
        path = path.strip()
        if not path:
            raise FolderLookupError("Folder path is empty", target=path)
        if "*" in path or "%" in path:
            raise FolderLookupError(f"Wildcards are not allowed in folder paths: {path}", target=path)
        return Folder(self, path)

    def list_folders(self, pattern: str = "*", directory: str = "") -> list["Folder"]:
        """List folders matching an IMAP LIST pattern.

        Raises:
            FolderLookupError: If the server listing failed
        """
        from .folder import Folder

        try:
            listing = self.connection.list_folders(directory, pattern)
        except PROVIDER_ERRORS as e:
            self.reporter.report("list folders", directory or pattern, e)
            raise FolderLookupError(f"Listing folders failed: {e}", target=pattern) from e

        folders = []
        for flags, delimiter, name in listing:
            if delimiter and self._separator is None:
                self._separator = _text(delimiter)
            folders.append(Folder(self, _text(name), attributes=tuple(_text(f) for f in flags)))
        return folders


def _text(value: str | bytes) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def acquire_store(
    session: Session,
    protocol: str | None = None,
    reporter: FailureReporter | None = None,
) -> Store:
    """Resolve a store for ``protocol`` (default: the session's store protocol).

    Raises:
        ProviderError: If the protocol has no store provider. Callers should
            treat this as "cannot use this account", not as a crash.
    """
    protocol = protocol or session.protocol
    reporter = reporter or FailureReporter()
    try:
        provider = get_provider(protocol)
    except ProviderError as e:
        reporter.report("acquire store", protocol, e)
        raise
    return Store(session, provider, reporter)
