"""Mail sessions: immutable connection settings shared by stores."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .config import ConnectionConfig


@dataclass(frozen=True)
class Session:
    """Opaque handle holding connection configuration.

    Sessions perform no I/O and may be shared across any number of store
    acquisitions.
    """
    config: ConnectionConfig
    properties: Mapping[str, str] = field(repr=False)

    @property
    def protocol(self) -> str:
        return self.properties["mail.store.protocol"]

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def host_for(self, protocol: str) -> str | None:
        return self.properties.get(f"mail.{protocol}.host")

    def port_for(self, protocol: str) -> int | None:
        port = self.properties.get(f"mail.{protocol}.port")
        return int(port) if port is not None else None

    def timeout_for(self, protocol: str) -> float | None:
        timeout = self.properties.get(f"mail.{protocol}.timeout")
        return float(timeout) if timeout is not None else None


def create_session(config: ConnectionConfig) -> Session:
    """Build a session from connection settings. Never touches the network."""
    return Session(config=config, properties=MappingProxyType(config.properties()))
