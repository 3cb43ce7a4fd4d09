"""Session, store and folder lifecycle for IMAP mail accounts."""

from .config import AccountConfig, Config, ConnectionConfig, load_config
from .errors import (
    AuthError,
    CloseError,
    FolderCreateError,
    FolderError,
    FolderLookupError,
    FolderOpenError,
    InvalidStateError,
    MailStoreError,
    ProviderError,
    StaleMessageError,
)
from .folder import Folder, FolderState, FolderType, OpenMode
from .lifecycle import close_folder, close_store, connected_store, opened_folder
from .mailbox import add_flags, expunge, fetch_all, fetch_matching, mark_deleted
from .message import FetchResult, Message
from .providers import ImapProvider, StoreProvider, get_provider, register_provider
from .reporting import Failure, FailureReporter
from .search import (
    And,
    BeforeTerm,
    FlagTerm,
    FromTerm,
    Matches,
    Not,
    Or,
    SearchPredicate,
    SinceTerm,
    SubjectTerm,
)
from .session import Session, create_session
from .store import Store, StoreState, acquire_store

__all__ = [
    # Configuration and sessions
    "AccountConfig",
    "Config",
    "ConnectionConfig",
    "Session",
    "create_session",
    "load_config",
    # Stores and providers
    "ImapProvider",
    "Store",
    "StoreProvider",
    "StoreState",
    "acquire_store",
    "get_provider",
    "register_provider",
    # Folders and messages
    "FetchResult",
    "Folder",
    "FolderState",
    "FolderType",
    "Message",
    "OpenMode",
    "add_flags",
    "expunge",
    "fetch_all",
    "fetch_matching",
    "mark_deleted",
    # Lifecycle
    "close_folder",
    "close_store",
    "connected_store",
    "opened_folder",
    # Search
    "And",
    "BeforeTerm",
    "FlagTerm",
    "FromTerm",
    "Matches",
    "Not",
    "Or",
    "SearchPredicate",
    "SinceTerm",
    "SubjectTerm",
    # Errors and reporting
    "AuthError",
    "CloseError",
    "Failure",
    "FailureReporter",
    "FolderCreateError",
    "FolderError",
    "FolderLookupError",
    "FolderOpenError",
    "InvalidStateError",
    "MailStoreError",
    "ProviderError",
    "StaleMessageError",
]
