"""Composable search predicates.

Each predicate can run on the server, by translating to the criteria list
accepted by ``IMAPClient.search``, and on the client, via ``evaluate``.
Predicates are combined with ``&``, ``|`` and ``~``::

    (FromTerm("billing@") | SubjectTerm("invoice")) & ~FlagTerm("\\Seen")

A predicate whose ``criteria()`` is None (e.g. :class:`Matches`) makes the
whole expression client-side only.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .message import Message

# System flags and their IMAP SEARCH keys (set, unset)
SYSTEM_FLAG_KEYS = {
    "\\seen": ("SEEN", "UNSEEN"),
    "\\answered": ("ANSWERED", "UNANSWERED"),
    "\\flagged": ("FLAGGED", "UNFLAGGED"),
    "\\deleted": ("DELETED", "UNDELETED"),
    "\\draft": ("DRAFT", "UNDRAFT"),
}


class SearchPredicate(ABC):
    """Base class for boolean predicates over message metadata.

    Subclasses implement ``evaluate`` and, when the server can run them,
    ``criteria``.
    """

    def criteria(self) -> list[Any] | None:
        """IMAP SEARCH criteria, or None if only client-side evaluation works."""
        return None

    @abstractmethod
    def evaluate(self, message: "Message") -> bool:
        ...

    def __and__(self, other: "SearchPredicate") -> "And":
        return And(self, other)

    def __or__(self, other: "SearchPredicate") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)


@dataclass(frozen=True)
class FromTerm(SearchPredicate):
    """Sender contains ``pattern`` (case-insensitive)."""
    pattern: str

    def criteria(self) -> list[Any]:
        return ["FROM", self.pattern]

    def evaluate(self, message: "Message") -> bool:
        return self.pattern.lower() in message.sender.lower()


@dataclass(frozen=True)
class SubjectTerm(SearchPredicate):
    """Subject contains ``pattern`` (case-insensitive)."""
    pattern: str

    def criteria(self) -> list[Any]:
        return ["SUBJECT", self.pattern]

    def evaluate(self, message: "Message") -> bool:
        return self.pattern.lower() in message.subject.lower()


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class SinceTerm(SearchPredicate):
    """Arrived on or after ``day``."""
    day: date

    def __post_init__(self):
        object.__setattr__(self, "day", _as_date(self.day))

    def criteria(self) -> list[Any]:
        return ["SINCE", self.day]

    def evaluate(self, message: "Message") -> bool:
        return message.date is not None and message.date.date() >= self.day


@dataclass(frozen=True)
class BeforeTerm(SearchPredicate):
    """Arrived strictly before ``day``."""
    day: date

    def __post_init__(self):
        object.__setattr__(self, "day", _as_date(self.day))

    def criteria(self) -> list[Any]:
        return ["BEFORE", self.day]

    def evaluate(self, message: "Message") -> bool:
        return message.date is not None and message.date.date() < self.day


@dataclass(frozen=True)
class FlagTerm(SearchPredicate):
    """Message has (or, with ``is_set=False``, lacks) ``flag``.

    System flags are written with their backslash (``\\Seen``); anything
    else is treated as a keyword.
    """
    flag: str
    is_set: bool = True

    def criteria(self) -> list[Any]:
        keys = SYSTEM_FLAG_KEYS.get(self.flag.lower())
        if keys is not None:
            return [keys[0] if self.is_set else keys[1]]
        return ["KEYWORD" if self.is_set else "UNKEYWORD", self.flag]

    def evaluate(self, message: "Message") -> bool:
        return message.has_flag(self.flag) == self.is_set


class And(SearchPredicate):
    def __init__(self, *terms: SearchPredicate):
        if not terms:
            raise ValueError("And needs at least one term")
        self.terms = terms

    def __repr__(self) -> str:
        return f"And{self.terms!r}"

    def criteria(self) -> list[Any] | None:
        parts = [term.criteria() for term in self.terms]
        if any(part is None for part in parts):
            return None
        # Consecutive search keys are implicitly ANDed by the server
        return [item for part in parts for item in part]

    def evaluate(self, message: "Message") -> bool:
        return all(term.evaluate(message) for term in self.terms)


class Or(SearchPredicate):
    def __init__(self, *terms: SearchPredicate):
        if not terms:
            raise ValueError("Or needs at least one term")
        self.terms = terms

    def __repr__(self) -> str:
        return f"Or{self.terms!r}"

    def criteria(self) -> list[Any] | None:
        parts = [term.criteria() for term in self.terms]
        if any(part is None for part in parts):
            return None
        # IMAP OR is binary: fold right into OR a (OR b c)
        result = parts[-1]
        for part in reversed(parts[:-1]):
            result = ["OR", part, result]
        return result

    def evaluate(self, message: "Message") -> bool:
        return any(term.evaluate(message) for term in self.terms)


class Not(SearchPredicate):
    def __init__(self, term: SearchPredicate):
        self.term = term

    def __repr__(self) -> str:
        return f"Not({self.term!r})"

    def criteria(self) -> list[Any] | None:
        inner = self.term.criteria()
        if inner is None:
            return None
        return ["NOT", inner]

    def evaluate(self, message: "Message") -> bool:
        return not self.term.evaluate(message)


class Matches(SearchPredicate):
    """Client-side predicate wrapping an arbitrary function."""

    def __init__(self, func: Callable[["Message"], bool], description: str = ""):
        self.func = func
        self.description = description or getattr(func, "__name__", "function")

    def __repr__(self) -> str:
        return f"Matches({self.description})"

    def evaluate(self, message: "Message") -> bool:
        return bool(self.func(message))


def _is_ascii(criteria: list[Any]) -> bool:
    for item in criteria:
        if isinstance(item, list):
            if not _is_ascii(item):
                return False
        elif isinstance(item, str) and not item.isascii():
            return False
    return True


def _to_utf8(criteria: list[Any]) -> list[Any]:
    return [
        _to_utf8(item) if isinstance(item, list)
        else item.encode("utf-8") if isinstance(item, str)
        else item
        for item in criteria
    ]


def encode_criteria(criteria: list[Any]) -> tuple[list[Any], str | None]:
    """Prepare criteria for ``IMAPClient.search``.

    Returns the criteria and the charset to search with. Non-ASCII text is
    searched as UTF-8; its strings are encoded up front because imapclient
    applies the charset to top-level items only.
    """
    if _is_ascii(criteria):
        return criteria, None
    return _to_utf8(criteria), "UTF-8"
