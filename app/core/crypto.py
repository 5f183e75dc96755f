"""
Vault crypto: per-subject key derivation and secret encryption.

Keys are never stored. Each one is re-derived from the acting subject's id:
    PBKDF2-HMAC-SHA256(subject_id, APP_SALT, 10_000 iterations) -> 32-byte key
Secrets are sealed with AES-256-GCM and serialized as
    base64([nonce 12B][ciphertext + GCM tag 16B])

Only the subject whose id sealed a value can open it. Any value that cannot
be opened (foreign key, corruption, legacy plaintext stored before encryption)
is handed back unchanged instead of raising.

Security Note:
    Never log plaintext, ciphertext or key material.
"""
import base64
import binascii
import enum
import os
from typing import NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.errors import VaultEncryptionError

APP_SALT = b"maintly-security-salt-2024"
KDF_ITERATIONS = 10_000
KEY_LENGTH = 32  # AES-256
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16


class DecryptStatus(str, enum.Enum):
    DECRYPTED = "decrypted"
    PASSTHROUGH = "passthrough"


class DecryptResult(NamedTuple):
    value: str
    status: DecryptStatus

    @property
    def decrypted(self) -> bool:
        return self.status is DecryptStatus.DECRYPTED


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(subject_id: str) -> bytes:
    """Derive the 32-byte vault key for a subject.

    Args:
        subject_id: Stable user id from the auth provider. Must be non-empty.

    Returns:
        32-byte key, identical for identical ids in any process.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=APP_SALT,
        iterations=KDF_ITERATIONS,
    )
    return kdf.derive(subject_id.encode("utf-8"))


# ---------------------------------------------------------------------------
# Secret cipher
# ---------------------------------------------------------------------------

def encrypt(plaintext: str, subject_id: str) -> str:
    """Encrypt a secret under the subject's derived key.

    Empty plaintext or empty subject id is returned unchanged.

    Raises:
        VaultEncryptionError: If the cipher backend fails.
    """
    if not plaintext or not subject_id:
        return plaintext
    try:
        cipher = AESGCM(derive_key(subject_id))
        nonce = os.urandom(NONCE_SIZE)
        sealed = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")
    except Exception as e:
        raise VaultEncryptionError("Failed to encrypt secret") from e


def decrypt_with_status(ciphertext: str, subject_id: str) -> DecryptResult:
    """Decrypt a secret, reporting whether it was opened or passed through."""
    if not ciphertext or not subject_id:
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)
    try:
        raw = base64.b64decode(ciphertext.encode("ascii"), validate=True)
    except (binascii.Error, ValueError):
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)
    try:
        cipher = AESGCM(derive_key(subject_id))
        opened = cipher.decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None)
        plaintext = opened.decode("utf-8")
    except (InvalidTag, ValueError):
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)
    if not plaintext:
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)
    return DecryptResult(plaintext, DecryptStatus.DECRYPTED)


def decrypt(ciphertext: str, subject_id: str) -> str:
    """Decrypt a secret; returns the input unchanged when it cannot be opened."""
    return decrypt_with_status(ciphertext, subject_id).value
