"""
Sensitive-field policy: which values are encrypted at rest
"""

from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Tuple

# Key names encrypted wherever they appear inside a structured payload
SENSITIVE_JSON_KEYS: FrozenSet[str] = frozenset({
    "account_number",
    "policy_number",
    "sort_code",
    "registration",
    "serial_number",
    "wifi_password",
})


@dataclass(frozen=True)
class FieldEncryptionPolicy:
    """
    Encryption policy attached to a tenant entity class

    fields: flat columns encrypted as a whole
    json_fields: structured columns whose sensitive keys are encrypted
    sensitive_keys: key names recognised inside json_fields
    """

    fields: Tuple[str, ...] = ()
    json_fields: Tuple[str, ...] = ()
    sensitive_keys: FrozenSet[str] = SENSITIVE_JSON_KEYS

    @property
    def is_empty(self) -> bool:
        return not self.fields and not self.json_fields


NO_ENCRYPTION = FieldEncryptionPolicy()


def policy_for(model: Any) -> FieldEncryptionPolicy:
    """
    Policy declared by an entity class (or instance) via ``__encryption__``
    """
    return getattr(model, "__encryption__", NO_ENCRYPTION)


def transform_tree(value: Any, keys: FrozenSet[str], fn: Callable[[Any], Any]) -> Any:
    """
    Apply fn to the value of every key in ``keys``, at any depth

    Falsy scalars (None, 0, False, "") are left as they are. Returns a new
    structure; lists keep their order and dicts keep their key set. The
    input is not modified.
    """
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key in keys and item and not isinstance(item, (dict, list)):
                result[key] = fn(item)
            else:
                result[key] = transform_tree(item, keys, fn)
        return result
    if isinstance(value, list):
        return [transform_tree(item, keys, fn) for item in value]
    return value
