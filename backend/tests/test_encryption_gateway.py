import json

import pytest
from pydantic import ValidationError

from hearth.core.exceptions import EncryptionError
from hearth.core.policy import SENSITIVE_JSON_KEYS, policy_for, transform_tree
from hearth.models import CalendarDate, FinanceCurrentAccount, Member, RecurringCost
from hearth.schemas import RecurringCostCreate


def test_policies_are_declared_per_entity():
    assert policy_for(FinanceCurrentAccount).fields == ("account_number", "sort_code")
    assert policy_for(RecurringCost).json_fields == ("details",)
    assert policy_for(CalendarDate).is_empty


def test_flat_fields_are_encrypted(gateway, cipher):
    values = {"bank_name": "Acme", "account_number": "12345678", "sort_code": "00-11-22"}

    stored = gateway.encrypt_values(FinanceCurrentAccount, values)

    assert stored["bank_name"] == "Acme"
    assert cipher.is_encrypted(stored["account_number"])
    assert cipher.is_encrypted(stored["sort_code"])
    assert values["account_number"] == "12345678"
    assert gateway.decrypt_row(FinanceCurrentAccount, stored) == values


def test_empty_and_missing_fields_are_left_alone(gateway):
    stored = gateway.encrypt_values(Member, {"name": "Ann", "dob": None, "will_details": ""})

    assert stored == {"name": "Ann", "dob": None, "will_details": ""}


def test_already_encrypted_values_are_not_wrapped_twice(gateway, cipher):
    once = gateway.encrypt_values(Member, {"dob": "1990-01-01"})
    twice = gateway.encrypt_values(Member, once)

    assert twice["dob"] == once["dob"]
    assert cipher.decrypt(twice["dob"]) == "1990-01-01"


def test_nested_sensitive_keys(gateway, cipher):
    details = {
        "policy_number": "P-123",
        "other": "plain",
        "accounts": [{"account_number": "999", "label": "joint"}],
        "bank": {"sort_code": "11-22-33"},
    }

    stored = gateway.encrypt_values(RecurringCost, {"details": details})["details"]

    assert "P-123" not in json.dumps(stored)
    assert stored["other"] == "plain"
    assert stored["accounts"][0]["label"] == "joint"
    assert cipher.is_encrypted(stored["accounts"][0]["account_number"])
    assert cipher.is_encrypted(stored["bank"]["sort_code"])
    assert gateway.decrypt_row(RecurringCost, {"details": stored})["details"] == details


def test_nested_falsy_values_keep_their_type(gateway, cipher):
    details = {"account_number": 0, "sort_code": False, "policy_number": "", "registration": "AB12 CDE"}

    stored = gateway.encrypt_values(RecurringCost, {"details": details})["details"]

    assert stored["account_number"] == 0
    assert stored["sort_code"] is False
    assert stored["policy_number"] == ""
    assert cipher.is_encrypted(stored["registration"])
    assert gateway.decrypt_row(RecurringCost, {"details": stored})["details"] == details


def test_structured_field_stored_as_json_text(gateway, cipher):
    raw = json.dumps({"policy_number": "P-123", "other": "plain"})

    stored = gateway.encrypt_values(RecurringCost, {"details": raw})["details"]

    assert isinstance(stored, str)
    assert "P-123" not in stored
    decrypted = gateway.decrypt_row(RecurringCost, {"details": stored})["details"]
    assert json.loads(decrypted) == {"policy_number": "P-123", "other": "plain"}


def test_decrypt_keeps_legacy_plaintext(gateway, cipher):
    row = {"id": 1, "name": "Ann", "dob": "1990-01-01"}

    assert gateway.decrypt_row(Member, row) == row
    assert cipher.stats()["plaintext"] == 1


def test_decrypt_keeps_corrupt_ciphertext(gateway, cipher):
    stored = gateway.encrypt_values(Member, {"dob": "1990-01-01"})
    nonce, tag, body = stored["dob"].split(":")
    corrupt = ":".join((nonce, "0" * 32, body))

    row = gateway.decrypt_row(Member, {"dob": corrupt, "will_details": stored["dob"]})

    assert row["dob"] == corrupt
    assert row["will_details"] == "1990-01-01"
    assert cipher.stats()["auth_failed"] == 1


def test_encrypt_failure_never_stores_plaintext(gateway, monkeypatch):
    def broken(value):
        raise RuntimeError("cipher unavailable")

    monkeypatch.setattr(gateway.cipher, "encrypt", broken)

    with pytest.raises(EncryptionError):
        gateway.encrypt_values(Member, {"dob": "1990-01-01"})


def test_transform_tree_is_pure():
    tree = {"wifi_password": "hunter2", "nested": [{"serial_number": "SN1", "n": 1}]}
    snapshot = json.loads(json.dumps(tree))

    result = transform_tree(tree, SENSITIVE_JSON_KEYS, str.upper)

    assert tree == snapshot
    assert result == {"wifi_password": "HUNTER2", "nested": [{"serial_number": "SN1", "n": 1}]}


def test_transform_tree_skips_containers_and_nulls():
    tree = {"account_number": {"inner": "x"}, "sort_code": None}

    assert transform_tree(tree, SENSITIVE_JSON_KEYS, lambda v: "changed") == tree


def test_tagged_details_are_validated():
    cost = RecurringCostCreate(
        name="Car insurance",
        details={"kind": "insurance", "provider": "Acme", "policy_number": "P-1"},
    )
    assert cost.details == {"kind": "insurance", "provider": "Acme", "policy_number": "P-1"}

    with pytest.raises(ValidationError):
        RecurringCostCreate(name="Bad", details={"kind": "bank", "account_number": {"not": "a string"}})


def test_untagged_details_are_schema_less():
    cost = RecurringCostCreate(name="Misc", details={"anything": [1, 2, 3]})

    assert cost.details == {"anything": [1, 2, 3]}
