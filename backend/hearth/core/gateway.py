"""
Encryption gateway: applies entity policies at the tenant store boundary
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable, List

from hearth.core.encryption import FieldCipher
from hearth.core.exceptions import EncryptionError
from hearth.core.policy import FieldEncryptionPolicy, policy_for, transform_tree

logger = logging.getLogger(__name__)


class EncryptionGateway:
    """
    Encrypts values on their way into a tenant store and decrypts rows on
    their way out, according to each entity's FieldEncryptionPolicy
    """

    def __init__(self, cipher: FieldCipher):
        self.cipher = cipher

    # ── Write path ─────────────────────────────────────────────────────

    def encrypt_values(self, model: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Encrypt the sensitive columns of a pending insert/update

        Args:
            model: Entity class carrying the policy
            values: Column values keyed by column name

        Returns:
            New dict ready to persist
        """
        policy = policy_for(model)
        if policy.is_empty:
            return dict(values)

        result = dict(values)
        for column, value in values.items():
            if not value:
                continue
            try:
                if column in policy.fields:
                    result[column] = self._seal(value)
                elif column in policy.json_fields:
                    result[column] = self._apply_structured(policy, value, self._seal)
            except Exception as e:
                # Never fall back to storing plaintext
                logger.error(f"Encryption of {column} failed: {e}")
                raise EncryptionError(f"Failed to encrypt {column}") from e
        return result

    def _seal(self, value: Any) -> Any:
        if self.cipher.is_encrypted(value):
            return value
        return self.cipher.encrypt(value)

    # ── Read path ──────────────────────────────────────────────────────

    def decrypt_row(self, model: Any, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Decrypt one row; a failing field keeps its stored value
        """
        policy = policy_for(model)
        if policy.is_empty or not row:
            return row

        result = dict(row)
        for column in policy.fields + policy.json_fields:
            value = row.get(column)
            if not value:
                continue
            try:
                if column in policy.fields:
                    result[column] = self._open(value)
                else:
                    result[column] = self._apply_structured(policy, value, self._open)
            except Exception as e:
                logger.warning(f"Decryption of {column} failed, keeping stored value: {e}")
                result[column] = value
        return result

    def decrypt_rows(self, model: Any, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Decrypt a batch of rows uniformly
        """
        return [self.decrypt_row(model, row) for row in rows]

    def _open(self, value: Any) -> Any:
        # Legacy plaintext passes through and is counted by the cipher
        return self.cipher.decrypt(value)

    # ── Structured payloads ────────────────────────────────────────────

    def _apply_structured(
        self,
        policy: FieldEncryptionPolicy,
        value: Any,
        fn: Callable[[Any], Any],
    ) -> Any:
        if isinstance(value, (dict, list)):
            return transform_tree(value, policy.sensitive_keys, fn)

        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except ValueError:
                # Opaque text in a structured column is handled as a flat value
                return fn(value)
            if isinstance(parsed, (dict, list)):
                return json.dumps(transform_tree(parsed, policy.sensitive_keys, fn))
            return fn(value)

        return value
