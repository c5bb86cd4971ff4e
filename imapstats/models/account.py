"""Account dataclass — the IMAP server and user to report on."""
from __future__ import annotations

import re
from dataclasses import dataclass

from imapstats import config

# A proper FQDN regex is hard to get right; this is a basic sanity check.
_HOSTNAME_RE = re.compile(
    r"^(([a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*"
    r"([A-Za-z0-9]|[A-Za-z0-9][A-Za-z0-9\-]*[A-Za-z0-9])$"
)
_HOST_PORT_RE = re.compile(r"^([^:]+):(\d+)$")


@dataclass
class Account:
    host: str = ""
    port: int = config.DEFAULT_PORT
    username: str = ""
    use_ssl: bool = True

    @classmethod
    def from_server(cls, server: str, username: str, use_ssl: bool = True) -> Account:
        """Build an account from 'host' or 'host:port'."""
        match = _HOST_PORT_RE.match(server or "")
        if match:
            return cls(host=match.group(1), port=int(match.group(2)), username=username, use_ssl=use_ssl)
        return cls(host=server or "", username=username, use_ssl=use_ssl)

    @property
    def host_valid(self) -> bool:
        return bool(self.host) and bool(_HOSTNAME_RE.match(self.host))

    @property
    def user_valid(self) -> bool:
        return bool(self.username)

    @property
    def valid(self) -> bool:
        return self.host_valid and self.user_valid

    def __str__(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"
