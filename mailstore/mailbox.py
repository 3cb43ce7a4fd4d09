"""Operations on the messages of an open folder.

Reads (``fetch_all``, ``fetch_matching``, ``expunge``) are fail-soft: a
provider failure is reported and an empty :class:`FetchResult` carrying the
error is returned, so one bad folder never aborts a caller iterating many.
Calling any of them on a folder that is not open is a programming error and
raises :class:`InvalidStateError`.
"""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from imapclient import DELETED, IMAPClient

from .errors import FolderError, InvalidStateError
from .message import FETCH_ITEMS, FetchResult, Message, message_from_fetch
from .providers import PROVIDER_ERRORS
from .search import SearchPredicate, encode_criteria

if TYPE_CHECKING:
    from .folder import Folder

logger = logging.getLogger("mailstore")


def _require_open(folder: "Folder", operation: str) -> IMAPClient:
    if not folder.is_open:
        raise InvalidStateError(f"Cannot {operation}: {folder.path} is not open", target=folder.path)
    return folder.connection


def _require_writable(folder: "Folder", operation: str) -> IMAPClient:
    from .folder import OpenMode

    client = _require_open(folder, operation)
    if folder.mode is not OpenMode.READ_WRITE:
        raise InvalidStateError(
            f"Cannot {operation}: {folder.path} is open read-only", target=folder.path
        )
    return client


def _load(folder: "Folder", client: IMAPClient, uids: Iterable[int]) -> list[Message]:
    uids = list(uids)
    if not uids:
        return []
    response = client.fetch(uids, FETCH_ITEMS)
    # The response may also carry unsolicited FETCH data for other messages
    return [message_from_fetch(folder, uid, response[uid]) for uid in sorted(uids) if uid in response]


def fetch_all(folder: "Folder") -> FetchResult:
    """Return every message currently in the folder."""
    client = _require_open(folder, "fetch messages")
    try:
        messages = _load(folder, client, client.search(["ALL"]))
    except PROVIDER_ERRORS as e:
        folder.reporter.report("fetch messages", folder.path, e)
        return FetchResult.failed(e)
    logger.debug(f"Fetched {len(messages)} messages from {folder.path}")
    return FetchResult(tuple(messages))


def fetch_matching(folder: "Folder", predicate: "SearchPredicate") -> FetchResult:
    """Return the messages matching ``predicate``.

    Predicates that translate to IMAP SEARCH criteria run on the server;
    others are evaluated locally against every message in the folder.
    """
    client = _require_open(folder, "search messages")
    criteria = predicate.criteria()
    try:
        if criteria is None:
            candidates = _load(folder, client, client.search(["ALL"]))
            messages = [m for m in candidates if predicate.evaluate(m)]
        else:
            criteria, charset = encode_criteria(criteria)
            uids = client.search(criteria, charset) if charset else client.search(criteria)
            messages = _load(folder, client, uids)
    except PROVIDER_ERRORS as e:
        folder.reporter.report("search messages", folder.path, e)
        return FetchResult.failed(e)
    logger.debug(f"{len(messages)} messages in {folder.path} match {predicate!r}")
    return FetchResult(tuple(messages))


def expunge(folder: "Folder") -> FetchResult:
    """Permanently remove messages flagged ``\\Deleted``.

    Returns:
        The removed messages, each marked expunged
    """
    client = _require_writable(folder, "expunge")
    try:
        removed = _load(folder, client, client.search(["DELETED"]))
        client.expunge()
    except PROVIDER_ERRORS as e:
        folder.reporter.report("expunge", folder.path, e)
        return FetchResult.failed(e)

    for message in removed:
        message.expunged = True
    if removed:
        logger.info(f"Expunged {len(removed)} messages from {folder.path}")
    return FetchResult(tuple(removed))


def add_flags(folder: "Folder", messages: Iterable[Message], flags: Iterable[str | bytes]) -> None:
    """Set ``flags`` on ``messages``.

    Raises:
        InvalidStateError: If the folder is not open read-write
        StaleMessageError: If a message no longer belongs to the open folder
        FolderError: If the server rejected the update
    """
    client = _require_writable(folder, "store flags")
    messages = list(messages)
    flags = [f.decode() if isinstance(f, bytes) else f for f in flags]
    for message in messages:
        if message.folder is not folder:
            raise InvalidStateError(
                f"Message {message.uid} belongs to {message.folder.path}", target=folder.path
            )
        message.check_valid()
    if not messages:
        return

    try:
        client.add_flags([m.uid for m in messages], flags)
    except PROVIDER_ERRORS as e:
        folder.reporter.report("store flags", folder.path, e)
        raise FolderError(f"Updating flags in {folder.path} failed: {e}", target=folder.path) from e

    for message in messages:
        message.flags = message.flags + tuple(f for f in flags if not message.has_flag(f))


def mark_deleted(folder: "Folder", messages: Iterable[Message]) -> None:
    """Flag ``messages`` for removal by the next expunge."""
    add_flags(folder, messages, [DELETED])
