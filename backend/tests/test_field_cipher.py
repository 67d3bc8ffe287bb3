import os
import re
import stat

import pytest

from hearth.core.encryption import FieldCipher, load_master_key
from hearth.core.exceptions import EncryptionError


@pytest.mark.parametrize("plaintext", [
    "12345678",
    "P-123",
    "a much longer value with spaces, punctuation; and: colons",
    "ünïcödé ✓ 家",
    "0",
])
def test_round_trip(cipher, plaintext):
    assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext


def test_encrypt_uses_fresh_nonce(cipher):
    first = cipher.encrypt("same value")
    second = cipher.encrypt("same value")

    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_wire_format(cipher):
    nonce, tag, body = cipher.encrypt("sort code").split(":")

    assert len(nonce) == 24
    assert len(tag) == 32
    assert re.fullmatch(r"[0-9a-f]+", nonce + tag + body)
    assert len(body) == 2 * len("sort code")


def test_is_encrypted(cipher):
    assert cipher.is_encrypted(cipher.encrypt("x"))
    assert not cipher.is_encrypted("ordinary text")
    assert not cipher.is_encrypted("12:34:56")
    assert not cipher.is_encrypted("")
    assert not cipher.is_encrypted(None)
    assert not cipher.is_encrypted(1234)


def test_empty_values_pass_through(cipher):
    assert cipher.encrypt(None) is None
    assert cipher.encrypt("") == ""
    assert cipher.decrypt(None) is None
    assert cipher.decrypt("") == ""


def test_non_string_values_are_stringified(cipher):
    assert cipher.decrypt(cipher.encrypt(42)) == "42"


def test_plaintext_is_returned_and_counted(cipher):
    assert cipher.decrypt("legacy plaintext") == "legacy plaintext"
    assert cipher.stats() == {"plaintext": 1, "auth_failed": 0, "malformed": 0}


def test_tampered_ciphertext_fails_open(cipher):
    nonce, tag, body = cipher.encrypt("secret").split(":")
    flipped = format(int(body[:2], 16) ^ 0xFF, "02x") + body[2:]
    tampered = ":".join((nonce, tag, flipped))

    assert cipher.decrypt(tampered) == tampered
    assert cipher.stats()["auth_failed"] == 1


def test_foreign_key_fails_open(cipher):
    other = FieldCipher(os.urandom(32))
    value = other.encrypt("secret")

    assert cipher.decrypt(value) == value
    assert cipher.stats()["auth_failed"] == 1


def test_rejects_short_key():
    with pytest.raises(EncryptionError):
        FieldCipher(b"too short")


def test_master_key_generated_on_first_start(tmp_path):
    key_path = tmp_path / "keys" / "master.key"

    key = load_master_key(key_path)

    assert len(key) == 32
    assert key_path.read_bytes() == key
    if os.name == "posix":
        assert stat.S_IMODE(key_path.stat().st_mode) == 0o600


def test_master_key_is_stable_across_loads(tmp_path):
    key_path = tmp_path / "master.key"
    first = FieldCipher.from_key_file(key_path)
    value = first.encrypt("persisted")

    second = FieldCipher.from_key_file(key_path)

    assert second.decrypt(value) == "persisted"


def test_master_key_wrong_length(tmp_path):
    key_path = tmp_path / "master.key"
    key_path.write_bytes(b"x" * 16)

    with pytest.raises(EncryptionError):
        load_master_key(key_path)
