"""Configuration management for mailstore."""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable connection settings for one mail account.

    The port may be given as a numeric string (as in provider property files)
    and is normalised to an int.
    """
    protocol: str
    host: str
    port: int
    timeout: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "port", int(self.port))

    def properties(self) -> dict[str, str]:
        """Provider configuration keys derived from this config."""
        props = {
            "mail.store.protocol": self.protocol,
            f"mail.{self.protocol}.host": self.host,
            f"mail.{self.protocol}.port": str(self.port),
        }
        if self.timeout is not None:
            props[f"mail.{self.protocol}.timeout"] = str(self.timeout)
        return props


@dataclass
class AccountConfig:
    """Mail account configuration.

    The password MUST be provided via environment variable:
    - MAILSTORE_PASSWORD: account password
    MAILSTORE_USERNAME overrides the configured username when set.
    """
    host: str
    protocol: str = "imaps"
    port: int = 993
    username: str = ""
    password: str = field(default="", repr=False)
    timeout_seconds: float | None = None

    def __post_init__(self):
        """Load credentials from environment variables."""
        env_username = os.environ.get("MAILSTORE_USERNAME")
        env_password = os.environ.get("MAILSTORE_PASSWORD")

        if env_username:
            self.username = env_username
        if env_password:
            self.password = env_password

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            protocol=self.protocol,
            host=self.host,
            port=self.port,
            timeout=self.timeout_seconds,
        )


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    account: AccountConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> Config:
    """Load configuration from a TOML file."""
    path = Path(path)
    with path.open("rb") as f:
        data = tomllib.load(f)

    account_data = data.get("account", {})
    if "password" in account_data:
        logger.warning("Ignoring password in config file; set MAILSTORE_PASSWORD instead")

    account_config = AccountConfig(
        host=account_data.get("host", ""),
        protocol=account_data.get("protocol", "imaps"),
        port=account_data.get("port", 993),
        username=account_data.get("username", ""),
        timeout_seconds=account_data.get("timeout_seconds"),
    )

    logging_data = data.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_data.get("level", "INFO"),
    )

    return Config(account=account_config, logging=logging_config)
