"""
Crypto utilities — bcrypt password hashing & Fernet symmetric encryption.

Password hashing:
  LOCAL accounts store a bcrypt ($2b$) hash produced by `hash_password`.
  Anything else stored as a hash never verifies.

Symmetric encryption (LDAP bind password at rest):
  `encrypt_secret` / `decrypt_secret` use Fernet keyed by the
  ENCRYPTION_KEY app config value (falls back to the environment variable).

  WARNING: ENCRYPTION_KEY must be a 32-byte URL-safe base64 key generated via:
    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

import os

import bcrypt
from cryptography.fernet import Fernet
from flask import current_app, has_app_context

BCRYPT_PREFIXES = ("$2b$", "$2a$", "$2y$")


def hash_password(plain_password: str, rounds: int = 12) -> str:
    """Hash a plain-text password with bcrypt."""
    if has_app_context():
        rounds = current_app.config.get("BCRYPT_ROUNDS", rounds)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Check a plain-text password against a bcrypt hash."""
    if not password_hash or not password_hash.startswith(BCRYPT_PREFIXES):
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed salt
        return False


# ── Fernet symmetric encryption ──────────────────────────────────────────────


def _get_fernet() -> Fernet:
    """Return a Fernet instance keyed by ENCRYPTION_KEY.

    Raises RuntimeError if no key is configured.
    """
    raw_key = None
    if has_app_context():
        raw_key = current_app.config.get("ENCRYPTION_KEY")
    raw_key = raw_key or os.getenv("ENCRYPTION_KEY")
    if not raw_key:
        raise RuntimeError(
            "ENCRYPTION_KEY is not set. "
            "Generate one with: python -c \""
            "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
        )
    return Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)


def encrypt_secret(plaintext: str) -> str:
    """Encrypt a plaintext secret and return URL-safe base64 ciphertext."""
    return _get_fernet().encrypt(plaintext.encode("utf-8")).decode("utf-8")


def decrypt_secret(ciphertext: str) -> str:
    """Decrypt a value previously returned by encrypt_secret().

    Raises:
        RuntimeError: If ENCRYPTION_KEY is not set.
        cryptography.fernet.InvalidToken: If ciphertext is tampered or
            encrypted with a different key.
    """
    return _get_fernet().decrypt(ciphertext.encode("utf-8")).decode("utf-8")
