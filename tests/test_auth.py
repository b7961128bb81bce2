"""
Auth unit tests.

Tests cover:
  - Password hashing (bcrypt only)
  - Fernet secret encryption
  - JWT token generation / verification / expiry
  - authenticate(): local and directory accounts
"""

import jwt
import pytest
from cryptography.fernet import InvalidToken

from itil_tracker.core.exceptions import AuthenticationError
from itil_tracker.models.auth import USER_ROLE, AuthType, User
from itil_tracker.models.integrations import LdapConfig
from itil_tracker.services import jwt_service
from itil_tracker.services.auth_service import (
    DIRECTORY_DISABLED,
    DIRECTORY_PASSWORD_REQUIRED,
    INVALID_CREDENTIALS,
    authenticate,
)
from itil_tracker.utils.crypto import decrypt_secret, encrypt_secret, hash_password, verify_password


# ═══════════════════════════════════════════════════════════════
# PASSWORD HASHING
# ═══════════════════════════════════════════════════════════════

class TestPasswordHashing:
    def test_hash_and_verify(self, app_ctx):
        hashed = hash_password("MySecureP@ss123")
        assert hashed.startswith("$2b$04$")
        assert verify_password("MySecureP@ss123", hashed)

    def test_wrong_password(self, app_ctx):
        assert not verify_password("wrong", hash_password("right"))

    def test_missing_hash(self):
        assert not verify_password("anything", None)

    @pytest.mark.parametrize("stored", [
        "pbkdf2:sha256:600000$salt$0f1e2d3c4b5a",
        "old-pass",
    ])
    def test_non_bcrypt_hash_never_verifies(self, stored):
        assert not verify_password("old-pass", stored)


# ═══════════════════════════════════════════════════════════════
# SECRET ENCRYPTION
# ═══════════════════════════════════════════════════════════════

class TestSecretEncryption:
    def test_round_trip(self, app_ctx):
        token = encrypt_secret("bind-pass")
        assert token != "bind-pass"
        assert decrypt_secret(token) == "bind-pass"

    def test_tampered_ciphertext(self, app_ctx):
        with pytest.raises(InvalidToken):
            decrypt_secret(encrypt_secret("x")[:-4] + "AAAA")


# ═══════════════════════════════════════════════════════════════
# JWT
# ═══════════════════════════════════════════════════════════════

class TestJWT:
    def test_generate_and_decode(self, app_ctx):
        token = jwt_service.generate_access_token("u1", "role-admin")
        payload = jwt_service.decode_access_token(token)
        assert payload["sub"] == "u1"
        assert payload["role"] == "role-admin"
        assert payload["type"] == "access"
        assert payload["jti"]

    def test_token_response(self, app_ctx):
        body = jwt_service.token_response("u1", "role-admin")
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 8 * 3600

    def test_expired_token(self, app):
        app.config["JWT_ACCESS_EXPIRES"] = -10
        with app.app_context():
            token = jwt_service.generate_access_token("u1", "role-admin")
            with pytest.raises(jwt.ExpiredSignatureError):
                jwt_service.decode_access_token(token)

    def test_wrong_type_rejected(self, app):
        with app.app_context():
            token = jwt.encode({"sub": "u1", "type": "refresh"}, app.config["JWT_SECRET_KEY"], algorithm="HS256")
            with pytest.raises(jwt.InvalidTokenError):
                jwt_service.decode_access_token(token)

    def test_wrong_secret_rejected(self, app_ctx):
        token = jwt.encode({"sub": "u1", "type": "access"}, "another-secret-with-at-least-32-bytes!", algorithm="HS256")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt_service.decode_access_token(token)


# ═══════════════════════════════════════════════════════════════
# AUTHENTICATE
# ═══════════════════════════════════════════════════════════════

def _make_users():
    return (
        User(id="u-1", username="Maria", full_name="María", email="maria@example.com",
             role_id=USER_ROLE.id, password_hash=hash_password("clave", rounds=4)),
        User(id="u-2", username="jdoe", full_name="John", email="jdoe@example.com",
             role_id=USER_ROLE.id, auth_type=AuthType.DIRECTORY),
    )


class TestAuthenticate:
    def test_local_login_case_insensitive_username(self):
        assert authenticate(_make_users(), LdapConfig(), "maria", "clave").id == "u-1"

    def test_wrong_password(self):
        with pytest.raises(AuthenticationError, match=INVALID_CREDENTIALS):
            authenticate(_make_users(), LdapConfig(), "maria", "nope")

    def test_unknown_user_same_message(self):
        with pytest.raises(AuthenticationError) as exc:
            authenticate(_make_users(), LdapConfig(), "ghost", "clave")
        assert str(exc.value) == INVALID_CREDENTIALS

    def test_directory_login_when_enabled(self):
        assert authenticate(_make_users(), LdapConfig(enabled=True), "jdoe", "whatever").id == "u-2"

    def test_directory_login_when_disabled(self):
        with pytest.raises(AuthenticationError) as exc:
            authenticate(_make_users(), LdapConfig(), "jdoe", "whatever")
        assert str(exc.value) == DIRECTORY_DISABLED

    def test_directory_login_needs_password(self):
        with pytest.raises(AuthenticationError) as exc:
            authenticate(_make_users(), LdapConfig(enabled=True), "jdoe", "")
        assert str(exc.value) == DIRECTORY_PASSWORD_REQUIRED
