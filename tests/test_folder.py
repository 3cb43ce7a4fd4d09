"""Tests for folder state, creation, opening and closing."""

import pytest
from imapclient.exceptions import IMAPClientError

from mailstore.errors import (
    FolderCreateError,
    FolderError,
    FolderOpenError,
    InvalidStateError,
)
from mailstore.folder import FolderState, FolderType, OpenMode


@pytest.fixture
def store_client(store, imap_factory):
    """The store's own (namespace) connection."""
    return imap_factory.connections[0]


class TestFolderNames:
    def test_name_and_parent(self, store):
        folder = store.get_folder("Archive/2024/March")

        assert folder.name == "March"
        assert folder.parent.path == "Archive/2024"
        assert folder.parent.parent.parent is None

    def test_top_level_has_no_parent(self, store):
        assert store.get_folder("INBOX").parent is None

    def test_new_folder_is_unopened(self, store):
        folder = store.get_folder("INBOX")
        assert folder.state is FolderState.UNOPENED
        assert folder.mode is None
        assert not folder.is_open


class TestFolderExists:
    def test_exists(self, store, store_client):
        store_client.folder_exists.return_value = True
        folder = store.get_folder("INBOX")

        assert folder.exists() is True
        store_client.folder_exists.assert_called_once_with("INBOX")

    def test_missing_folder_is_nonexistent(self, store, store_client):
        store_client.folder_exists.return_value = False
        folder = store.get_folder("Archive")

        assert folder.exists() is False
        assert folder.state is FolderState.NONEXISTENT

    def test_exists_failure(self, store, store_client, reporter):
        store_client.folder_exists.side_effect = IMAPClientError("NO")
        folder = store.get_folder("Archive")

        with pytest.raises(FolderError):
            folder.exists()
        assert reporter.failures[-1].operation == "check folder"


class TestFolderCreate:
    def test_create_new(self, store, store_client):
        store_client.folder_exists.return_value = False
        folder = store.get_folder("Archive")

        assert folder.create() is True
        store_client.create_folder.assert_called_once_with("Archive")
        assert folder.state is FolderState.UNOPENED

    def test_create_existing(self, store, store_client):
        store_client.folder_exists.return_value = True
        folder = store.get_folder("Archive")

        assert folder.create() is False
        store_client.create_folder.assert_not_called()

    def test_create_folder_for_subfolders_only(self, store, store_client):
        store_client.folder_exists.return_value = False
        folder = store.get_folder("Projects")

        folder.create(FolderType.HOLDS_FOLDERS)

        store_client.create_folder.assert_called_once_with("Projects/")

    def test_create_folder_for_both(self, store, store_client):
        store_client.folder_exists.return_value = False
        folder = store.get_folder("Projects")

        folder.create(FolderType.HOLDS_MESSAGES | FolderType.HOLDS_FOLDERS)

        store_client.create_folder.assert_called_once_with("Projects")

    def test_create_failure(self, store, store_client, reporter):
        store_client.folder_exists.return_value = False
        store_client.create_folder.side_effect = IMAPClientError("NO [CANNOT]")
        folder = store.get_folder("Archive")

        with pytest.raises(FolderCreateError) as exc_info:
            folder.create()
        assert exc_info.value.target == "Archive"
        assert reporter.failures[-1].operation == "create folder"

    def test_create_fails_when_existence_check_fails(self, store, store_client):
        store_client.folder_exists.side_effect = OSError("connection reset")
        folder = store.get_folder("Archive")

        with pytest.raises(FolderCreateError):
            folder.create()


class TestFolderOpen:
    def test_open_read_only(self, store, imap_factory):
        imap_factory_count = len(imap_factory.connections)
        folder = store.get_folder("INBOX")

        folder.open(OpenMode.READ_ONLY)

        assert folder.state is FolderState.OPEN
        assert folder.mode is OpenMode.READ_ONLY
        # A dedicated connection per open folder
        assert len(imap_factory.connections) == imap_factory_count + 1
        imap_factory.connections[-1].select_folder.assert_called_once_with("INBOX", readonly=True)
        assert store.open_folders() == [folder]

    def test_open_read_write(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_WRITE)

        imap_factory.connections[-1].select_folder.assert_called_once_with("INBOX", readonly=False)

    def test_open_records_message_count(self, store):
        folder = store.get_folder("INBOX")
        folder.open()

        assert folder.message_count == 3

    def test_open_requires_connected_store(self, store):
        folder = store.get_folder("INBOX")
        store.close()

        with pytest.raises(InvalidStateError):
            folder.open()

    def test_open_twice_raises(self, store):
        folder = store.get_folder("INBOX")
        folder.open()

        with pytest.raises(InvalidStateError):
            folder.open()

    def test_open_select_failure_releases_connection(self, store, imap_factory, reporter):
        make_client = imap_factory.side_effect

        def make_failing_client(*args, **kwargs):
            client = make_client(*args, **kwargs)
            client.select_folder.side_effect = IMAPClientError("NO Mailbox does not exist")
            return client

        imap_factory.side_effect = make_failing_client
        folder = store.get_folder("Missing")

        with pytest.raises(FolderOpenError):
            folder.open()

        assert folder.state is FolderState.UNOPENED
        assert store.open_folders() == []
        imap_factory.connections[-1].logout.assert_called_once()
        imap_factory.connections[0].logout.assert_not_called()
        assert reporter.failures[-1].operation == "open folder"

    def test_open_connection_failure(self, store, imap_factory):
        imap_factory.side_effect = OSError("connection refused")
        folder = store.get_folder("INBOX")

        with pytest.raises(FolderOpenError):
            folder.open()
        assert not folder.is_open

    def test_reopen_after_close(self, store):
        folder = store.get_folder("INBOX")
        folder.open()
        folder.close()
        folder.open(OpenMode.READ_WRITE)

        assert folder.is_open
        assert folder.mode is OpenMode.READ_WRITE
        assert folder.generation == 2


class TestEnsureExistsAndOpen:
    def test_creates_then_opens(self, store, store_client, imap_factory):
        store_client.folder_exists.return_value = False
        folder = store.get_folder("Archive")

        folder.ensure_exists_and_open(FolderType.HOLDS_MESSAGES, OpenMode.READ_WRITE)

        store_client.create_folder.assert_called_once_with("Archive")
        imap_factory.connections[-1].select_folder.assert_called_once_with("Archive", readonly=False)
        assert folder.state is FolderState.OPEN
        assert folder.mode is OpenMode.READ_WRITE

    def test_existing_folder_is_only_opened(self, store, store_client):
        store_client.folder_exists.return_value = True
        folder = store.get_folder("INBOX")

        folder.ensure_exists_and_open(open_mode=OpenMode.READ_ONLY)

        store_client.create_folder.assert_not_called()
        assert folder.mode is OpenMode.READ_ONLY

    def test_create_failure_skips_open(self, store, store_client, imap_factory):
        store_client.folder_exists.return_value = False
        store_client.create_folder.side_effect = IMAPClientError("NO")
        folder = store.get_folder("Archive")
        count = len(imap_factory.connections)

        with pytest.raises(FolderCreateError):
            folder.ensure_exists_and_open()

        assert len(imap_factory.connections) == count
        assert not folder.is_open


class TestFolderClose:
    def test_close_never_opened_is_noop(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        count = len(imap_factory.connections)

        folder.close()

        assert folder.state is FolderState.UNOPENED
        assert len(imap_factory.connections) == count
        imap_factory.connections[0].close_folder.assert_not_called()

    def test_close_without_saving(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open()
        client = imap_factory.connections[-1]

        folder.close(save_changes=False)

        client.close_folder.assert_not_called()
        client.logout.assert_called_once()
        assert folder.state is FolderState.CLOSED
        assert folder.mode is None
        assert store.open_folders() == []

    def test_close_saving_changes(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_WRITE)
        client = imap_factory.connections[-1]

        folder.close(save_changes=True)

        client.close_folder.assert_called_once()
        client.logout.assert_called_once()

    def test_close_twice(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open()
        client = imap_factory.connections[-1]

        folder.close()
        folder.close()

        client.logout.assert_called_once()

    def test_close_expunges_first(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_WRITE)
        client = imap_factory.connections[-1]

        folder.close(save_changes=True, expunge=True)

        calls = [c[0] for c in client.method_calls]
        assert calls.index("expunge") < calls.index("close_folder")

    def test_expunge_failure_does_not_block_close(self, store, imap_factory, reporter):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_WRITE)
        client = imap_factory.connections[-1]
        client.expunge.side_effect = IMAPClientError("EXPUNGE failed")

        folder.close(save_changes=True, expunge=True)

        client.expunge.assert_called_once()
        client.close_folder.assert_called_once()
        assert folder.state is FolderState.CLOSED
        assert reporter.failures[-1].operation == "expunge"

    def test_expunge_skipped_on_read_only(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_ONLY)
        client = imap_factory.connections[-1]

        folder.close(expunge=True)

        client.expunge.assert_not_called()
        assert folder.state is FolderState.CLOSED

    def test_close_failure_still_closes(self, store, imap_factory):
        folder = store.get_folder("INBOX")
        folder.open(OpenMode.READ_WRITE)
        client = imap_factory.connections[-1]
        client.close_folder.side_effect = IMAPClientError("BAD")

        with pytest.raises(FolderError):
            folder.close(save_changes=True)

        client.logout.assert_called_once()
        assert folder.state is FolderState.CLOSED
        assert store.open_folders() == []


class TestSubfolders:
    def test_list_children(self, store, store_client):
        folder = store.get_folder("Archive")
        store_client.list_folders.return_value = [((), b"/", "Archive/2023"), ((), b"/", "Archive/2024")]

        children = folder.list()

        store_client.list_folders.assert_called_with("Archive/", "%")
        assert [c.name for c in children] == ["2023", "2024"]
