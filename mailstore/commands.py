"""Command implementations for the mailstore CLI."""

from __future__ import annotations

import logging
from datetime import date

from .config import Config
from .folder import FolderType, OpenMode
from .lifecycle import connected_store, opened_folder
from .search import FlagTerm, FromTerm, SearchPredicate, SinceTerm, SubjectTerm
from .session import create_session

logger = logging.getLogger("mailstore")


def build_predicate(
    sender: str | None = None,
    subject: str | None = None,
    unseen: bool = False,
    since: date | None = None,
) -> SearchPredicate | None:
    """Combine the CLI filters into one predicate, or None for no filtering."""
    terms: list[SearchPredicate] = []
    if sender:
        terms.append(FromTerm(sender))
    if subject:
        terms.append(SubjectTerm(subject))
    if unseen:
        terms.append(FlagTerm("\\Seen", is_set=False))
    if since:
        terms.append(SinceTerm(since))

    if not terms:
        return None
    predicate = terms[0]
    for term in terms[1:]:
        predicate = predicate & term
    return predicate


def _connect(config: Config):
    session = create_session(config.account.connection_config())
    return connected_store(session, config.account.username, config.account.password)


def list_folders_cmd(config: Config) -> None:
    """List folders on the server."""
    with _connect(config) as store:
        folders = store.list_folders()
        for folder in sorted(folders, key=lambda f: f.path):
            marker = " (no messages)" if "\\Noselect" in folder.attributes else ""
            print(f"{folder.path}{marker}")


def list_messages_cmd(
    config: Config,
    folder: str,
    predicate: SearchPredicate | None = None,
    limit: int = 50,
) -> int:
    """List messages in a folder, optionally filtered.

    Returns:
        Number of messages listed, or -1 if the folder could not be read
    """
    with _connect(config) as store, opened_folder(store, folder) as mailbox:
        if predicate is None:
            result = mailbox.messages()
        else:
            result = mailbox.search(predicate)

        if not result.ok:
            logger.error(f"Could not read {folder}: {result.error}")
            return -1

        print(f"{'UID':<8} {'From':<30} {'Subject':<50}")
        print("-" * 90)

        shown = result[-limit:] if limit else result
        for message in shown:
            from_addr = message.sender[:28]
            subject = message.subject[:48]
            print(f"{message.uid:<8} {from_addr:<30} {subject:<50}")

        print(f"\nTotal: {len(shown)} of {len(result)} emails")
        return len(shown)


def create_folder_cmd(config: Config, folder: str, holds_folders: bool = False) -> bool:
    """Create a folder if it does not exist.

    Returns:
        True if the folder was created, False if it already existed
    """
    folder_type = FolderType.HOLDS_FOLDERS if holds_folders else FolderType.HOLDS_MESSAGES
    with _connect(config) as store:
        created = store.get_folder(folder).create(folder_type)
    if created:
        print(f"Created folder: {folder}")
    else:
        print(f"Folder already exists: {folder}")
    return created


def expunge_cmd(config: Config, folder: str) -> int:
    """Permanently remove deleted messages from a folder.

    Returns:
        Number of messages removed, or -1 if the expunge failed
    """
    with _connect(config) as store, opened_folder(store, folder, OpenMode.READ_WRITE) as mailbox:
        removed = mailbox.expunge()
        if not removed.ok:
            logger.error(f"Expunge of {folder} failed: {removed.error}")
            return -1
    print(f"Expunged {len(removed)} messages from {folder}")
    return len(removed)
