"""Message references and fetch outcomes."""

import email
import email.message
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from email.header import decode_header
from typing import TYPE_CHECKING

from .errors import FolderError, StaleMessageError
from .providers import PROVIDER_ERRORS

if TYPE_CHECKING:
    from .folder import Folder

# Attributes fetched for every message listed from a folder
FETCH_ITEMS = ["FLAGS", "ENVELOPE", "INTERNALDATE", "RFC822.SIZE"]


def decode_mime_header(header: str | bytes | None) -> str:
    """Decode a MIME-encoded email header."""
    if header is None:
        return ""
    if isinstance(header, bytes):
        header = header.decode("utf-8", errors="replace")
    decoded_parts = decode_header(header)
    result = []
    for part, charset in decoded_parts:
        if isinstance(part, bytes):
            result.append(part.decode(charset or "utf-8", errors="replace"))
        else:
            result.append(part)
    return "".join(result)


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def format_address(address) -> str:
    """Render an ``imapclient`` envelope address as ``Name <mailbox@host>``."""
    mailbox = _text(address.mailbox)
    host = _text(address.host)
    addr = f"{mailbox}@{host}" if mailbox and host else mailbox or host
    name = decode_mime_header(address.name)
    return f"{name} <{addr}>" if name else addr


@dataclass(eq=False)
class Message:
    """A message in an open folder.

    Only valid while the folder that produced it stays open; after the folder
    closes (or is reopened) or the message is expunged, reading its content
    raises :class:`StaleMessageError`.
    """
    uid: int
    folder: "Folder" = field(repr=False)
    flags: tuple[str, ...] = ()
    subject: str = ""
    sender: str = ""
    date: datetime | None = None  # server arrival time (INTERNALDATE)
    size: int | None = None
    generation: int = field(default=0, repr=False)
    expunged: bool = False

    @property
    def valid(self) -> bool:
        return (
            not self.expunged
            and self.folder.is_open
            and self.folder.generation == self.generation
        )

    def has_flag(self, flag: str) -> bool:
        return flag.lower() in (f.lower() for f in self.flags)

    @property
    def is_deleted(self) -> bool:
        return self.has_flag("\\Deleted")

    @property
    def is_seen(self) -> bool:
        return self.has_flag("\\Seen")

    def check_valid(self) -> None:
        if not self.valid:
            raise StaleMessageError(
                f"Message {self.uid} is no longer valid in {self.folder.path}",
                target=self.folder.path,
            )

    def fetch_raw(self) -> bytes | None:
        """Fetch the full RFC822 content without setting ``\\Seen``.

        Returns:
            Raw message bytes, or None if the server no longer has the message

        Raises:
            StaleMessageError: If the message is no longer valid
            FolderError: If the server could not be read
        """
        self.check_valid()
        try:
            # BODY.PEEK[] avoids marking the message as read
            response = self.folder.connection.fetch([self.uid], ["BODY.PEEK[]"])
        except PROVIDER_ERRORS as e:
            self.folder.reporter.report("fetch message", self.folder.path, e)
            raise FolderError(
                f"Fetching message {self.uid} from {self.folder.path} failed: {e}",
                target=self.folder.path,
            ) from e
        if self.uid not in response:
            return None
        return response[self.uid][b"BODY[]"]

    def parse(self) -> email.message.Message | None:
        raw = self.fetch_raw()
        if raw is None:
            return None
        return email.message_from_bytes(raw)


def message_from_fetch(folder: "Folder", uid: int, data: dict) -> Message:
    """Build a :class:`Message` from one entry of an ``IMAPClient.fetch`` response."""
    envelope = data.get(b"ENVELOPE")
    subject = ""
    sender = ""
    if envelope is not None:
        subject = decode_mime_header(envelope.subject)
        if envelope.from_:
            sender = format_address(envelope.from_[0])

    return Message(
        uid=uid,
        folder=folder,
        flags=tuple(_text(flag) for flag in data.get(b"FLAGS", ())),
        subject=subject,
        sender=sender,
        date=data.get(b"INTERNALDATE"),
        size=data.get(b"RFC822.SIZE"),
        generation=folder.generation,
    )


@dataclass(frozen=True)
class FetchResult(Sequence):
    """Messages returned by a fail-soft read.

    Behaves as a sequence of messages. A failed read is empty and carries the
    provider ``error``, so "no messages" and "could not read" stay distinct.
    """
    messages: tuple[Message, ...] = ()
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: BaseException) -> "FetchResult":
        return cls(messages=(), error=error)

    def __getitem__(self, index):
        return self.messages[index]

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def uids(self) -> list[int]:
        return [message.uid for message in self.messages]
