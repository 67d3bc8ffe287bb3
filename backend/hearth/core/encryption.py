"""
Field-level encryption for sensitive household data
Uses AES-256-GCM (authenticated encryption) from the cryptography library

Ciphertext wire format: hex(nonce):hex(tag):hex(ciphertext)
"""

import logging
import os
import re
import stat
import threading
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from hearth.core.exceptions import EncryptionError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # 256-bit
NONCE_SIZE = 12
TAG_SIZE = 16
DELIMITER = ":"

_ENCRYPTED_PATTERN = re.compile(
    r"^[0-9a-fA-F]{%d}:[0-9a-fA-F]{%d}:(?:[0-9a-fA-F]{2})+$" % (NONCE_SIZE * 2, TAG_SIZE * 2)
)


def load_master_key(path: Union[str, Path]) -> bytes:
    """
    Load the master key, generating and persisting it on first start

    Args:
        path: Location of the binary key file

    Returns:
        The 32-byte key
    """
    key_path = Path(path)

    if not key_path.exists():
        return _generate_master_key(key_path)

    key = key_path.read_bytes()
    if len(key) != KEY_SIZE:
        raise EncryptionError(
            f"Master key at {key_path} is {len(key)} bytes, expected {KEY_SIZE}"
        )

    if os.name == "posix":
        mode = stat.S_IMODE(key_path.stat().st_mode)
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            logger.warning("Master key %s is accessible by group/other (mode %o)", key_path, mode)

    logger.info("Master key loaded from %s", key_path)
    return key


def _generate_master_key(key_path: Path) -> bytes:
    key_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)

    try:
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        # Another process won the race; use its key.
        return load_master_key(key_path)

    with os.fdopen(fd, "wb") as f:
        f.write(key)

    logger.warning("Master key not found - generated a new one at %s", key_path)
    return key


class FieldCipher:
    """
    Encrypts and decrypts single string values under the master key

    Decryption is fail-open: anything that cannot be decrypted is returned
    unchanged so legacy plaintext rows keep working. Failures are counted
    per reason and logged as warnings.
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise EncryptionError(f"Master key must be {KEY_SIZE} bytes")
        self._aead = AESGCM(key)
        self._stats: Counter = Counter()
        self._stats_lock = threading.Lock()

    @classmethod
    def from_key_file(cls, path: Union[str, Path]) -> "FieldCipher":
        return cls(load_master_key(path))

    @staticmethod
    def is_encrypted(value: Any) -> bool:
        """
        Check whether a value has the three-part hex ciphertext shape
        """
        return isinstance(value, str) and _ENCRYPTED_PATTERN.match(value) is not None

    def encrypt(self, plaintext: Any) -> Any:
        """
        Encrypt a value with a fresh nonce

        Args:
            plaintext: Value to encrypt; non-strings are stringified

        Returns:
            Encrypted string, or the input itself when empty/None
        """
        if plaintext is None or plaintext == "":
            return plaintext

        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, str(plaintext).encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return DELIMITER.join((nonce.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, value: Any) -> Any:
        """
        Decrypt a value produced by encrypt()

        Args:
            value: Encrypted string

        Returns:
            Plaintext, or the input unchanged if it is not decryptable
        """
        if value is None or value == "":
            return value

        if not self.is_encrypted(value):
            self._count("plaintext")
            return value

        nonce_hex, tag_hex, ciphertext_hex = value.split(DELIMITER)
        try:
            plaintext = self._aead.decrypt(
                bytes.fromhex(nonce_hex),
                bytes.fromhex(ciphertext_hex) + bytes.fromhex(tag_hex),
                None,
            )
        except InvalidTag:
            self._count("auth_failed")
            logger.warning(
                "Decryption failed: authentication tag mismatch "
                "(corrupted ciphertext or different key); returning stored value"
            )
            return value

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            self._count("malformed")
            logger.warning("Decryption failed: plaintext is not valid UTF-8; returning stored value")
            return value

    def _count(self, reason: str) -> None:
        with self._stats_lock:
            self._stats[reason] += 1

    def stats(self) -> Dict[str, int]:
        """
        Fail-open counters by reason
        """
        with self._stats_lock:
            return {
                "plaintext": self._stats["plaintext"],
                "auth_failed": self._stats["auth_failed"],
                "malformed": self._stats["malformed"],
            }
