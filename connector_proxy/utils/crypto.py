"""Cryptographic utilities for credential encryption and state signing."""

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
import base64
import hashlib
import hmac


def generate_key(password: str, salt: bytes) -> bytes:
    """Generate encryption key from password."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(password.encode()))
    return key


class CredentialCipher:
    """Symmetric encryption for credential bags stored at rest."""

    def __init__(self, encryption_key: str, salt: str):
        self._fernet = Fernet(generate_key(encryption_key, salt.encode()))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Stored credentials could not be decrypted") from e


def sign(payload: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of payload."""
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def verify_signature(payload: str, signature: str, secret: str) -> bool:
    """Constant-time signature check."""
    return hmac.compare_digest(sign(payload, secret).encode(), signature.encode())
