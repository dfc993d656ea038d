"""
Credential encryption for Repurpose
Protects third-party API keys at rest with AES-256-GCM

Envelope format (UTF-8 string):
    <iv hex>:<tag hex>:<ciphertext hex>
    iv 16 bytes, tag 16 bytes, ciphertext variable length

Security Note:
    Never log plaintext or envelope values.
"""

import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from core.config import settings
from core.exceptions import ConfigurationError
from core.logging import security_logger

IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32  # AES-256
ENVELOPE_SEPARATOR = ":"

# scrypt parameters and salt are part of the stored format; changing them
# makes every existing envelope undecryptable.
KDF_SALT = b"salt"
KDF_N = 2**14
KDF_R = 8
KDF_P = 1


class DecryptStatus(Enum):
    """Outcome of decrypting a stored envelope"""

    OK = "ok"
    EMPTY = "empty"  # nothing stored
    FAILED = "failed"  # malformed, tampered, or encrypted under another key


@dataclass(frozen=True)
class DecryptResult:
    """Tagged decryption result; plaintext is "" unless status is OK"""

    status: DecryptStatus
    plaintext: str = ""

    @property
    def ok(self) -> bool:
        return self.status is DecryptStatus.OK


def derive_key(passphrase: str) -> bytes:
    """Derive the 32-byte cipher key from a passphrase with scrypt"""
    kdf = Scrypt(salt=KDF_SALT, length=KEY_LENGTH, n=KDF_N, r=KDF_R, p=KDF_P)
    return kdf.derive(passphrase.encode("utf-8"))


class CredentialCipher:
    """Reversible protection of short secret strings"""

    def __init__(self, passphrase: Optional[str] = None) -> None:
        """
        Args:
            passphrase: Key material; defaults to ENCRYPTION_KEY, then SESSION_SECRET
        """
        self._passphrase = passphrase
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    def _get_key(self) -> bytes:
        """Derive the key once and cache it for the life of the cipher"""
        if self._key is None:
            with self._lock:
                if self._key is None:
                    passphrase = (
                        self._passphrase
                        if self._passphrase is not None
                        else settings.encryption_passphrase
                    )
                    if not passphrase:
                        raise ConfigurationError("ENCRYPTION_KEY or SESSION_SECRET must be set")
                    self._key = derive_key(passphrase)
        return self._key

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret for storage

        Args:
            plaintext: Secret to protect; "" means nothing to protect

        Returns:
            Envelope string, or "" for empty input

        Raises:
            ConfigurationError: If no passphrase is configured
        """
        if not plaintext:
            return ""

        key = self._get_key()
        iv = os.urandom(IV_LENGTH)
        # AESGCM appends the 16-byte tag to the ciphertext
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return ENVELOPE_SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decrypt_result(self, envelope: Optional[str]) -> DecryptResult:
        """
        Decrypt an envelope into a tagged result

        Malformed or tampered envelopes, and a missing passphrase, yield
        FAILED rather than raising.
        """
        if not envelope:
            return DecryptResult(DecryptStatus.EMPTY)

        parts = envelope.split(ENVELOPE_SEPARATOR)
        if len(parts) != 3:
            security_logger.log_credential_decrypt_failure("malformed envelope")
            return DecryptResult(DecryptStatus.FAILED)

        try:
            key = self._get_key()
        except ConfigurationError:
            security_logger.log_credential_decrypt_failure("no passphrase configured")
            return DecryptResult(DecryptStatus.FAILED)

        try:
            iv = bytes.fromhex(parts[0])
            tag = bytes.fromhex(parts[1])
            ciphertext = bytes.fromhex(parts[2])

            if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
                raise ValueError("unexpected iv or tag length")

            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
            return DecryptResult(DecryptStatus.OK, plaintext.decode("utf-8"))

        except InvalidTag:
            security_logger.log_credential_decrypt_failure("authentication tag mismatch")
        except (ValueError, UnicodeDecodeError) as e:
            security_logger.log_credential_decrypt_failure(type(e).__name__)

        return DecryptResult(DecryptStatus.FAILED)

    def decrypt(self, envelope: Optional[str]) -> str:
        """Decrypt an envelope; "" when nothing usable is stored"""
        return self.decrypt_result(envelope).plaintext


_credential_cipher: Optional[CredentialCipher] = None


def get_credential_cipher() -> CredentialCipher:
    """Process-wide cipher keyed from environment configuration"""
    global _credential_cipher
    if _credential_cipher is None:
        _credential_cipher = CredentialCipher()
    return _credential_cipher


def encrypt(plaintext: str) -> str:
    """Encrypt with the process-wide cipher"""
    return get_credential_cipher().encrypt(plaintext)


def decrypt(envelope: Optional[str]) -> str:
    """Decrypt with the process-wide cipher"""
    return get_credential_cipher().decrypt(envelope)
