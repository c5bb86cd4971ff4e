"""Password storage via system keyring (Secret Service / macOS Keychain / Windows Credential Manager)."""
from __future__ import annotations

import logging

import keyring
from keyring.errors import PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "imapstats"


def _service(host: str) -> str:
    return f"{SERVICE_NAME}:{host}"


def set_password(username: str, host: str, password: str) -> bool:
    """Store password in system keyring. Returns True on success."""
    try:
        keyring.set_password(_service(host), username, password)
        return True
    except Exception as exc:
        logger.warning("keyring set failed: %s", exc)
        return False


def get_password(username: str, host: str) -> str | None:
    """Retrieve password from system keyring. Returns None if not found."""
    try:
        return keyring.get_password(_service(host), username)
    except Exception as exc:
        logger.warning("keyring get failed: %s", exc)
        return None


def delete_password(username: str, host: str) -> bool:
    """
    Forget the password stored for *username* on *host*.
    Returns False if nothing was stored or the backend refused.
    """
    try:
        keyring.delete_password(_service(host), username)
    except PasswordDeleteError:
        logger.info("No stored password for %s@%s", username, host)
        return False
    except Exception as exc:
        logger.warning("Could not remove password for %s@%s: %s", username, host, exc)
        return False
    logger.info("Removed stored password for %s@%s", username, host)
    return True
