"""Ordered acquisition and release of stores and folders.

Teardown never raises: ``close_folder`` and ``close_store`` are safe to call
any number of times, on ``None``, and on handles that were never opened or
connected, and they report failures instead of propagating them. The context
managers call them on every exit path, so a failing operation inside the
block still releases its folder before its store.

Typical use::

    session = create_session(ConnectionConfig("imaps", "mail.example.com", 993))
    with connected_store(session, "user", "secret") as store:
        with opened_folder(store, "INBOX") as inbox:
            for message in inbox.messages():
                ...
"""

import contextlib
import logging
from collections.abc import Iterator

from .errors import CloseError, FolderError, InvalidStateError
from .folder import Folder, FolderType, OpenMode
from .reporting import FailureReporter
from .session import Session
from .store import Store, acquire_store

logger = logging.getLogger("mailstore")


def close_folder(folder: Folder | None, save_changes: bool = False, expunge: bool = False) -> bool:
    """Close ``folder`` if it is open, expunging first when asked.

    Returns:
        True if an open folder was closed without errors
    """
    if folder is None or not folder.is_open:
        return False
    try:
        folder.close(save_changes=save_changes, expunge=expunge)
    except FolderError as e:
        folder.reporter.report("close folder", folder.path, e.__cause__ or e)
        return False
    return True


def close_store(store: Store | None) -> bool:
    """Close any folders still open on ``store``, then the store itself.

    Returns:
        True if a connected store was closed without errors
    """
    if store is None or not store.is_connected:
        return False

    for folder in store.open_folders():
        close_folder(folder)

    try:
        store.close()
    except CloseError as e:
        store.reporter.report("close store", e.target or "", e.__cause__ or e)
        return False
    except InvalidStateError as e:
        store.reporter.report("close store", e.target or "", e)
        return False
    return True


@contextlib.contextmanager
def connected_store(
    session: Session,
    username: str,
    password: str,
    *,
    host: str | None = None,
    protocol: str | None = None,
    reporter: FailureReporter | None = None,
) -> Iterator[Store]:
    """Acquire and connect a store, closing it on exit.

    Raises:
        ProviderError: If the protocol has no store provider
        AuthError: If connecting failed
    """
    store = acquire_store(session, protocol, reporter)
    store.connect(username, password, host=host)
    try:
        yield store
    finally:
        close_store(store)


@contextlib.contextmanager
def opened_folder(
    store: Store,
    path: str,
    mode: OpenMode = OpenMode.READ_ONLY,
    *,
    create: FolderType | None = None,
    save_changes: bool = False,
    expunge: bool = False,
) -> Iterator[Folder]:
    """Open a folder of ``store``, closing it on exit.

    Args:
        store: Connected store
        path: Folder path
        mode: Open mode
        create: If given, create the folder with this type when it is missing
        save_changes: Passed to :func:`close_folder`
        expunge: Expunge deleted messages when the block exits

    Raises:
        FolderLookupError: If ``path`` is not a valid folder path
        FolderCreateError: If creation was needed and failed
        FolderOpenError: If opening failed
    """
    folder = store.get_folder(path)
    if create is not None:
        folder.ensure_exists_and_open(create, mode)
    else:
        folder.open(mode)
    try:
        yield folder
    finally:
        close_folder(folder, save_changes=save_changes, expunge=expunge)
