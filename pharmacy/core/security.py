from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from pharmacy.config import get_settings

_HASH_SCHEME = "pbkdf2_sha256"

# Tokens are placeholders; requests are not authenticated.
SESSION_TOKEN = "dummy-token"
OFFLINE_TOKEN = "offline-token"


def _pbkdf2(password: str, salt: str, rounds: int) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    )
    return digest.hex()


def hash_password(password: str, *, rounds: Optional[int] = None) -> str:
    if rounds is None:
        rounds = get_settings().PASSWORD_PBKDF2_ROUNDS
    salt = secrets.token_hex(16)
    return "{}${}${}${}".format(_HASH_SCHEME, rounds, salt, _pbkdf2(password, salt, rounds))


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    parts = stored.split("$")
    if len(parts) != 4 or parts[0] != _HASH_SCHEME:
        return False
    try:
        rounds = int(parts[1])
    except ValueError:
        return False
    computed = _pbkdf2(password, parts[2], rounds)
    return hmac.compare_digest(computed, parts[3])


def verify_offline_admin(username: str, password: str) -> bool:
    """Credentials accepted while the database is unreachable."""
    settings = get_settings()
    username_ok = hmac.compare_digest(username.strip(), settings.ADMIN_USERNAME)
    password_ok = hmac.compare_digest(password, settings.ADMIN_PASSWORD)
    return username_ok and password_ok


__all__ = [
    "OFFLINE_TOKEN",
    "SESSION_TOKEN",
    "hash_password",
    "verify_offline_admin",
    "verify_password",
]
