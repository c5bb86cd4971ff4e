"""IMAP connection factory."""
from __future__ import annotations

import logging

from imapclient import IMAPClient

from imapstats import config
from imapstats.models.account import Account

logger = logging.getLogger(__name__)


class IMAPConnectionError(Exception):
    pass


def open_connection(account: Account, timeout: int | None = None) -> IMAPClient:
    """
    Open an (unauthenticated) IMAPClient for the given account.
    Raises IMAPConnectionError on failure.
    """
    timeout = timeout or config.CONNECT_TIMEOUT_SECONDS
    try:
        client = IMAPClient(
            host=account.host,
            port=account.port,
            ssl=account.use_ssl,
            timeout=timeout,
        )
    except Exception as exc:
        raise IMAPConnectionError(f"Cannot connect to {account.host}:{account.port}: {exc}") from exc
    logger.info("Connected to %s:%d (ssl=%s)", account.host, account.port, account.use_ssl)
    return client
