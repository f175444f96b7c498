"""
Password hashing, bearer tokens and encryption of stored LLM credentials
"""
import base64
import binascii
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from jose import JWTError, jwt

from researchflow.core.config import Settings
from researchflow.core.exceptions import AuthenticationError, ConfigurationError

NONCE_SIZE = 12


# ============================================================================
# Passwords
# ============================================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ============================================================================
# Access tokens
# ============================================================================

def create_access_token(user_id: int, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed JWT whose subject is the user id"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, _jwt_secret(settings), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the user id carried by a token or raise AuthenticationError"""
    try:
        payload = jwt.decode(token, _jwt_secret(settings), algorithms=[settings.JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise AuthenticationError("Invalid token")
        return int(subject)
    except (JWTError, ValueError):
        raise AuthenticationError("Invalid token")


def _jwt_secret(settings: Settings) -> str:
    if settings.JWT_SECRET_KEY is None:
        raise ConfigurationError("JWT_SECRET_KEY is not configured")
    return settings.JWT_SECRET_KEY.get_secret_value()


def require_jwt_secret(settings: Settings) -> None:
    if settings.JWT_SECRET_KEY is None or not settings.JWT_SECRET_KEY.get_secret_value():
        raise ConfigurationError("JWT_SECRET_KEY must be set")


# ============================================================================
# Credential encryption (AES-256-GCM)
# ============================================================================

class CredentialCipher:
    """Authenticated encryption for user-supplied API keys.

    Ciphertexts are ``urlsafe_b64(nonce || ciphertext+tag)`` with a fresh
    random nonce per value.
    """

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ConfigurationError("ENCRYPTION_KEY must decode to exactly 32 bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialCipher":
        if settings.ENCRYPTION_KEY is None or not settings.ENCRYPTION_KEY.get_secret_value():
            raise ConfigurationError("ENCRYPTION_KEY must be set to store LLM credentials")
        try:
            key = base64.urlsafe_b64decode(settings.ENCRYPTION_KEY.get_secret_value())
        except (binascii.Error, ValueError):
            raise ConfigurationError("ENCRYPTION_KEY is not valid base64")
        return cls(key)

    @staticmethod
    def generate_key() -> str:
        return base64.urlsafe_b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.urlsafe_b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, token: str) -> str:
        try:
            raw = base64.urlsafe_b64decode(token.encode("ascii"))
            nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
            return self._aead.decrypt(nonce, sealed, None).decode("utf-8")
        except (InvalidTag, binascii.Error, ValueError):
            raise ConfigurationError("Stored credential could not be decrypted")
