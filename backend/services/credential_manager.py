"""System keychain storage for the Plaid API keys.

Settings read the keys through :class:`config.KeychainSettingsSource`
before falling back to environment variables and ``.env``. Backend errors
are logged and treated as "not stored".
"""

import logging

import keyring
from keyring.errors import PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "ledger-sync"

CREDENTIAL_KEYS: frozenset[str] = frozenset({"PLAID_CLIENT_ID", "PLAID_SECRET"})


def get_credential(key: str) -> str | None:
    """Look up ``key`` in the keychain.

    Returns:
        The stored value, or ``None`` when nothing is stored or the keychain
        backend fails.
    """
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store ``value`` under ``key``; only :data:`CREDENTIAL_KEYS` are accepted.

    Returns:
        ``True`` when the keychain accepted the value.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Refusing to store non-credential key %s", key)
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store an empty value for %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except Exception:
        logger.warning("Keychain rejected %s", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove ``key`` from the keychain.

    Returns:
        ``True`` when an entry was deleted, ``False`` when none existed or
        the backend failed.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Refusing to delete non-credential key %s", key)
        return False

    try:
        keyring.delete_password(SERVICE_NAME, key)
    except PasswordDeleteError:
        return False
    except Exception:
        logger.warning("Failed to delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True


def stored_credentials() -> list[str]:
    """Sorted names of the credential keys that have a keychain entry."""
    return sorted(key for key in CREDENTIAL_KEYS if get_credential(key))
