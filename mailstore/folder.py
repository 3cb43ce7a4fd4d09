"""Folders: named message containers inside a store."""

import contextlib
import logging
from enum import Enum, IntFlag
from typing import TYPE_CHECKING

from imapclient import IMAPClient

from . import mailbox
from .errors import FolderCreateError, FolderError, FolderOpenError, InvalidStateError
from .providers import PROVIDER_ERRORS
from .reporting import FailureReporter

if TYPE_CHECKING:
    from .message import FetchResult, Message
    from .search import SearchPredicate
    from .store import Store

logger = logging.getLogger("mailstore")


class OpenMode(str, Enum):
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class FolderType(IntFlag):
    """What a folder may contain, used when creating it."""
    HOLDS_MESSAGES = 1
    HOLDS_FOLDERS = 2


class FolderState(str, Enum):
    NONEXISTENT = "nonexistent"
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class Folder:
    """A node in a store's folder namespace.

    A folder is opened on its own connection; while open it is selected in
    ``mode`` and the messages it returns stay valid. Closing, or opening it
    again, invalidates every message previously handed out.
    """

    def __init__(self, store: "Store", path: str, attributes: tuple[str, ...] = ()):
        self.store = store
        self.path = path
        self.attributes = attributes
        self.state = FolderState.UNOPENED
        self.mode: OpenMode | None = None
        self.message_count: int | None = None
        self.generation = 0
        self._client: IMAPClient | None = None

    def __repr__(self) -> str:
        mode = f", mode={self.mode.value}" if self.mode else ""
        return f"Folder({self.path!r}, state={self.state.value}{mode})"

    def __enter__(self) -> "Folder":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        from .lifecycle import close_folder

        close_folder(self)

    @property
    def name(self) -> str:
        return self.path.rsplit(self.store.separator, 1)[-1]

    @property
    def parent(self) -> "Folder | None":
        separator = self.store.separator
        if separator not in self.path:
            return None
        return self.store.get_folder(self.path.rsplit(separator, 1)[0])

    @property
    def reporter(self) -> FailureReporter:
        return self.store.reporter

    @property
    def is_open(self) -> bool:
        return self.state is FolderState.OPEN

    @property
    def connection(self) -> IMAPClient:
        """The folder's dedicated connection.

        Raises:
            InvalidStateError: If the folder is not open
        """
        if self._client is None:
            raise InvalidStateError(f"Folder {self.path} is not open", target=self.path)
        return self._client

    def exists(self) -> bool:
        """Ask the server whether the folder exists.

        Raises:
            FolderError: If the server could not be asked
        """
        try:
            found = self.store.connection.folder_exists(self.path)
        except PROVIDER_ERRORS as e:
            self.reporter.report("check folder", self.path, e)
            raise FolderError(f"Checking {self.path} failed: {e}", target=self.path) from e

        if not found and not self.is_open:
            self.state = FolderState.NONEXISTENT
        elif found and self.state is FolderState.NONEXISTENT:
            self.state = FolderState.UNOPENED
        return found

    def create(self, folder_type: FolderType = FolderType.HOLDS_MESSAGES) -> bool:
        """Create the folder on the server.

        A folder that may only hold subfolders is created with a trailing
        hierarchy separator, which IMAP servers take as "no messages".

        Returns:
            True if created, False if it already existed

        Raises:
            FolderCreateError: If the existence check or creation failed
        """
        try:
            if self.exists():
                return False
        except FolderError as e:
            raise FolderCreateError(f"Cannot create {self.path}: {e}", target=self.path) from e

        name = self.path
        if not folder_type & FolderType.HOLDS_MESSAGES:
            name += self.store.separator
        try:
            self.store.connection.create_folder(name)
        except PROVIDER_ERRORS as e:
            self.reporter.report("create folder", self.path, e)
            raise FolderCreateError(f"Creating {self.path} failed: {e}", target=self.path) from e

        self.state = FolderState.UNOPENED
        logger.info(f"Created folder {self.path}")
        return True

    def open(self, mode: OpenMode = OpenMode.READ_ONLY) -> None:
        """Open the folder without checking that it exists.

        Raises:
            InvalidStateError: If the store is not connected or the folder is already open
            FolderOpenError: If connecting or selecting failed; the folder stays closed
        """
        if not self.store.is_connected:
            raise InvalidStateError(
                f"Cannot open {self.path}: store is not connected", target=self.path
            )
        if self.is_open:
            raise InvalidStateError(f"Folder {self.path} is already open", target=self.path)

        try:
            client = self.store.open_connection()
        except PROVIDER_ERRORS as e:
            self.reporter.report("open folder", self.path, e)
            raise FolderOpenError(f"Opening {self.path} failed: {e}", target=self.path) from e

        try:
            info = client.select_folder(self.path, readonly=mode is OpenMode.READ_ONLY)
        except PROVIDER_ERRORS as e:
            with contextlib.suppress(Exception):
                client.logout()
            self.reporter.report("open folder", self.path, e)
            raise FolderOpenError(f"Opening {self.path} failed: {e}", target=self.path) from e

        self._client = client
        self.mode = mode
        self.state = FolderState.OPEN
        self.generation += 1
        self.message_count = info.get(b"EXISTS") if isinstance(info, dict) else None
        self.store._folder_opened(self)
        logger.debug(f"Opened {self.path} ({mode.value}, {self.message_count} messages)")

    def ensure_exists_and_open(
        self,
        create_mode: FolderType = FolderType.HOLDS_MESSAGES,
        open_mode: OpenMode = OpenMode.READ_WRITE,
    ) -> None:
        """Create the folder if it is missing, then open it.

        Raises:
            FolderCreateError: If creation was needed and failed
            FolderOpenError: If opening failed
        """
        self.create(create_mode)
        self.open(open_mode)

    def close(self, save_changes: bool = False, expunge: bool = False) -> None:
        """Close the folder and release its connection.

        Does nothing unless the folder is open. When ``expunge`` is set the
        folder is expunged first on a best-effort basis: an expunge failure is
        reported and the close still happens.

        Args:
            save_changes: Issue CLOSE, letting the server apply pending
                deletions; otherwise the connection is dropped with LOGOUT only
            expunge: Expunge deleted messages before closing

        Raises:
            FolderError: If the server rejected CLOSE or LOGOUT. The folder is
                closed regardless.
        """
        if not self.is_open:
            return

        if expunge:
            if self.mode is OpenMode.READ_WRITE:
                mailbox.expunge(self)
            else:
                self.reporter.warn("expunge", self.path, "folder is open read-only")

        client = self.connection
        self._client = None
        self.mode = None
        self.state = FolderState.CLOSED
        self.store._folder_closed(self)

        error: Exception | None = None
        if save_changes:
            try:
                client.close_folder()
            except PROVIDER_ERRORS as e:
                error = e
        try:
            client.logout()
        except PROVIDER_ERRORS as e:
            error = error or e

        if error is not None:
            raise FolderError(f"Closing {self.path} failed: {error}", target=self.path) from error
        logger.debug(f"Closed {self.path}")

    def list(self, pattern: str = "%") -> list["Folder"]:
        """List subfolders; ``%`` matches one level, ``*`` all levels."""
        return self.store.list_folders(pattern, directory=self.path + self.store.separator)

    def messages(self) -> "FetchResult":
        return mailbox.fetch_all(self)

    def search(self, predicate: "SearchPredicate") -> "FetchResult":
        return mailbox.fetch_matching(self, predicate)

    def expunge(self) -> "FetchResult":
        return mailbox.expunge(self)

    def mark_deleted(self, messages: "list[Message]") -> None:
        mailbox.mark_deleted(self, messages)
