"""Mail session — the server operations the report needs, backed by imapclient.

`MailSession` is the interface the mailbox tree and `Command` consume; tests
substitute a MagicMock. `IMAPSession` implements it on top of IMAPClient:
the connection is opened lazily, LIST results are cached for the lifetime of
the session, and message sizes are fetched in batches of
`config.FETCH_BATCH_SIZE`.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from imapclient import IMAPClient
from imapclient.exceptions import LoginError

from imapstats import config
from imapstats.imap.connection import IMAPConnectionError, open_connection
from imapstats.models.account import Account
from imapstats.models.mailbox import MailboxEntry

logger = logging.getLogger(__name__)

SIZE_ITEM = b"RFC822.SIZE"


class MailSession(Protocol):
    def login(self) -> bool: ...

    def logout(self) -> None: ...

    def list_folders(self) -> list[MailboxEntry]: ...

    def message_sizes(self, folder: str) -> list[int]: ...

    def hierarchy_delimiter(self) -> str | None: ...

    def greeting(self) -> str: ...

    def capabilities(self) -> list[str]: ...

    def supports_quota(self) -> bool: ...

    def quota(self) -> tuple[int, int, float | None] | None: ...


def _s(val: Any) -> str:
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace")
    return str(val) if val is not None else ""


class IMAPSession:
    """MailSession over a single IMAPClient connection."""

    def __init__(
        self,
        account: Account,
        password: str | None,
        connect: Callable[[Account], IMAPClient] = open_connection,
        batch_size: int | None = None,
    ) -> None:
        self.account = account
        self._password = password
        self._connect = connect
        self._batch_size = batch_size or config.FETCH_BATCH_SIZE
        self._client: IMAPClient | None = None
        self._logged_in = False
        self._folders: list[MailboxEntry] | None = None
        self._folders_by_name: dict[str, MailboxEntry] = {}
        self._delimiter: str | None = None
        self._delimiter_known = False
        self._capabilities: list[str] | None = None

    # ── Connection ────────────────────────────────────────────────────────

    @property
    def connection(self) -> IMAPClient:
        """The IMAPClient, connected on first use."""
        if self._client is None:
            self._client = self._connect(self.account)
        if self._client is None:
            raise IMAPConnectionError("no connection to a server")
        return self._client

    def login(self) -> bool:
        """
        Log in with the account credentials.
        Returns False if the server rejects them; raises IMAPConnectionError
        if there is no connection at all.
        """
        if self._logged_in:
            return True
        client = self.connection
        try:
            client.login(self.account.username, self._password or "")
        except LoginError as exc:
            logger.warning("Login failed for %s@%s: %s", self.account.username, self.account.host, exc)
            return False
        self._logged_in = True
        logger.info("Authenticated %s@%s via password", self.account.username, self.account.host)
        return True

    def logout(self) -> None:
        # use the attribute so logging out never opens a new connection
        if self._client is None:
            return
        try:
            self._client.logout()
        except Exception as exc:
            logger.debug("Logout failed: %s", exc)
        finally:
            self._client = None
            self._logged_in = False

    def _query(self) -> IMAPClient:
        client = self.connection
        if not self._logged_in:
            raise IMAPConnectionError("not logged in to the server")
        return client

    # ── Server information ────────────────────────────────────────────────

    def greeting(self) -> str:
        return _s(self.connection.welcome).strip()

    def capabilities(self) -> list[str]:
        if self._capabilities is None:
            self._capabilities = [_s(c) for c in self._query().capabilities()]
        return self._capabilities

    def supports_quota(self) -> bool:
        return "QUOTA" in {c.upper() for c in self.capabilities()}

    def quota(self) -> tuple[int, int, float | None] | None:
        """(usage KiB, limit KiB, percent used) of the INBOX quota root, or None."""
        if not self.supports_quota():
            return None
        _roots, quotas = self._query().get_quota_root("INBOX")
        for q in quotas:
            if _s(q.resource).upper() == "STORAGE":
                usage, limit = int(q.usage), int(q.limit)
                percent = usage / limit * 100 if limit > 0 else None
                return usage, limit, percent
        return None

    def hierarchy_delimiter(self) -> str | None:
        if not self._delimiter_known:
            listing = self._query().list_folders("", "")
            self._delimiter = (_s(listing[0][1]) or None) if listing else None
            self._delimiter_known = True
        return self._delimiter

    # ── Folders and messages ──────────────────────────────────────────────

    def list_folders(self) -> list[MailboxEntry]:
        if self._folders is None:
            entries = []
            for flags, delimiter, name in self._query().list_folders():
                entries.append(MailboxEntry(
                    name=_s(name),
                    delimiter=_s(delimiter) or None,
                    flags=tuple(_s(f) for f in flags),
                ))
            logger.info("Server lists %d folders", len(entries))
            self._folders = entries
            self._folders_by_name = {e.name: e for e in entries}
        return self._folders

    def message_sizes(self, folder: str) -> list[int]:
        """
        RFC822.SIZE of every message in *folder*, or [] for an empty or
        non-selectable folder.
        """
        self.list_folders()
        entry = self._folders_by_name.get(folder)
        if entry is not None and not entry.selectable:
            logger.debug("Skipping non-selectable folder %s", folder)
            return []
        client = self._query()
        client.select_folder(folder, readonly=True)
        uids = client.search(["ALL"])
        total = len(uids)
        logger.debug("Fetching sizes for %s: %d messages", folder, total)

        sizes: list[int] = []
        for batch_start in range(0, total, self._batch_size):
            batch_uids = uids[batch_start: batch_start + self._batch_size]
            try:
                fetch_data = client.fetch(batch_uids, [SIZE_ITEM])
            except Exception as exc:
                logger.error("FETCH failed for %s batch %d: %s", folder, batch_start, exc)
                raise
            sizes.extend(int(data.get(SIZE_ITEM, 0) or 0) for data in fetch_data.values())
        return sizes
