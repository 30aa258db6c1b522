"""
Connection configuration
"""
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class NatsConfig:
    """Settings used to open a broker connection"""
    servers: List[str]
    connection_name: str = "natstore"
    connect_timeout: float = 2.0  # seconds
    max_reconnect_attempts: int = 60
    reconnect_time_wait: float = 2.0  # seconds
    request_timeout: float = 0.01  # seconds, basic tier request default

    # Credentials are handed to nats-py untouched
    token: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    credentials_file: Optional[str] = None
    nkeys_seed: Optional[str] = None  # path to an nkey seed file

    @classmethod
    def from_env(cls) -> "NatsConfig":
        """Create config from environment variables"""
        servers = os.getenv("NATS_URL", "nats://localhost:4222")
        return cls(
            servers=[s.strip() for s in servers.split(",") if s.strip()],
            connection_name=os.getenv("NATS_CONNECTION_NAME", "natstore"),
            connect_timeout=_env_float("NATS_CONNECT_TIMEOUT", 2.0),
            max_reconnect_attempts=_env_int("NATS_MAX_RECONNECTS", 60),
            reconnect_time_wait=_env_float("NATS_RECONNECT_WAIT", 2.0),
            request_timeout=_env_float("NATS_REQUEST_TIMEOUT", 0.01),
            token=os.getenv("NATS_TOKEN"),
            user=os.getenv("NATS_USER"),
            password=os.getenv("NATS_PASSWORD"),
            credentials_file=os.getenv("NATS_CREDENTIALS"),
            nkeys_seed=os.getenv("NATS_NKEY_SEED"),
        )

    def to_connect_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``nats.connect``"""
        options: Dict[str, Any] = {
            "servers": self.servers,
            "name": self.connection_name,
            "connect_timeout": self.connect_timeout,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "reconnect_time_wait": self.reconnect_time_wait,
            "allow_reconnect": self.max_reconnect_attempts != 0,
        }
        if self.token:
            options["token"] = self.token
        if self.user:
            options["user"] = self.user
            options["password"] = self.password
        if self.credentials_file:
            options["user_credentials"] = self.credentials_file
        if self.nkeys_seed:
            options["nkeys_seed"] = self.nkeys_seed
        return options

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, secrets left out"""
        return {
            "servers": list(self.servers),
            "connection_name": self.connection_name,
            "connect_timeout": self.connect_timeout,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "reconnect_time_wait": self.reconnect_time_wait,
            "request_timeout": self.request_timeout,
            "has_credentials": bool(self.token or self.user or self.credentials_file or self.nkeys_seed),
        }
