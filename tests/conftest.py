"""Shared test fixtures."""

import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from imapclient.response_types import Address, Envelope

from mailstore.config import ConnectionConfig
from mailstore.reporting import FailureReporter
from mailstore.session import create_session
from mailstore.store import acquire_store


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def imap_factory():
    """Patch IMAPClient so every connection is its own mock.

    The created mocks are available, in creation order, as
    ``imap_factory.connections``: the store's connection first, then one per
    opened folder.
    """
    connections = []

    def make_client(*args, **kwargs):
        client = MagicMock(name=f"IMAPClient-{len(connections)}")
        client.select_folder.return_value = {b"EXISTS": 3}
        client.list_folders.return_value = [((b"\\HasNoChildren",), b"/", "INBOX")]
        client.search.return_value = []
        client.fetch.return_value = {}
        connections.append(client)
        return client

    with patch("mailstore.providers.IMAPClient", side_effect=make_client) as mock_class:
        mock_class.connections = connections
        yield mock_class


@pytest.fixture
def connection_config():
    return ConnectionConfig(protocol="imaps", host="mail.example.com", port=993)


@pytest.fixture
def session(connection_config):
    return create_session(connection_config)


@pytest.fixture
def reporter():
    return FailureReporter()


@pytest.fixture
def store(session, reporter, imap_factory):
    """A connected store on a mocked server."""
    store = acquire_store(session, reporter=reporter)
    store.connect("user@example.com", "secret")
    return store


@pytest.fixture
def make_fetch_data():
    """Build one entry of an IMAPClient.fetch() response."""

    def build(
        subject: str = "Hello",
        sender: tuple[str | None, str, str] = ("Alice", "alice", "example.com"),
        flags: tuple[bytes, ...] = (),
        date: datetime = datetime(2024, 3, 1, 12, 0),
        size: int = 1024,
    ) -> dict:
        name, mailbox, host = sender
        address = Address(
            name=name.encode() if name else None,
            route=None,
            mailbox=mailbox.encode(),
            host=host.encode(),
        )
        envelope = Envelope(
            date=date,
            subject=subject.encode(),
            from_=(address,),
            sender=(address,),
            reply_to=(address,),
            to=None,
            cc=None,
            bcc=None,
            in_reply_to=None,
            message_id=b"<id@example.com>",
        )
        return {
            b"FLAGS": flags,
            b"ENVELOPE": envelope,
            b"INTERNALDATE": date,
            b"RFC822.SIZE": size,
        }

    return build


@pytest.fixture
def sample_config_toml(temp_dir, monkeypatch):
    """Create a sample TOML config file."""
    # Password must come from environment variable
    monkeypatch.setenv("MAILSTORE_PASSWORD", "secret")
    monkeypatch.delenv("MAILSTORE_USERNAME", raising=False)

    config_path = temp_dir / "config.toml"
    config_path.write_text('''
[account]
protocol = "imaps"
host = "imap.test.com"
port = 993
username = "user@test.com"
timeout_seconds = 30

[logging]
level = "DEBUG"
''')
    return config_path
