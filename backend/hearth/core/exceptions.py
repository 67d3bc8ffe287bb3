"""
Error vocabulary shared by every tenant-scoped route

Each externally visible error carries a stable ``kind`` token and the HTTP
status it maps to. The mapping itself happens once, in ``hearth.main``.
"""

from typing import Any, Dict, Optional


class HearthError(Exception):
    """Base class for errors that cross the API boundary"""

    kind = "server_error"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message())
        self.message = message or self.default_message()

    def default_message(self) -> str:
        return "Internal server error"

    def to_dict(self) -> Dict[str, Any]:
        """
        Body returned to the caller
        """
        return {"error": self.kind, "message": self.message}


class StorageInitError(HearthError):
    """Backing medium or schema provisioning unavailable"""

    kind = "storage_unavailable"
    status_code = 503

    def default_message(self) -> str:
        return "Household storage is unavailable"


class NotFound(HearthError):
    """Entity absent or not visible in this tenant scope"""

    kind = "not_found"
    status_code = 404

    def default_message(self) -> str:
        return "Not found"


class Forbidden(HearthError):
    """
    Tenancy or role violation

    Deliberately says nothing about whether the target exists.
    """

    kind = "forbidden"
    status_code = 403

    def default_message(self) -> str:
        return "Access to this household is not permitted"


class Conflict(HearthError):
    """Version mismatch on an optimistic update"""

    kind = "conflict"
    status_code = 409

    def __init__(self, current_version: int, message: Optional[str] = None):
        self.current_version = current_version
        super().__init__(message)

    def default_message(self) -> str:
        return (
            f"Entity was modified concurrently (current version {self.current_version}); "
            "refetch and retry"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["current_version"] = self.current_version
        return data


class InvalidRecord(HearthError):
    """Write would leave a record breaking one of its cross-field rules"""

    kind = "invalid_record"
    status_code = 422

    def default_message(self) -> str:
        return "The record is not valid"


class EncryptionError(Exception):
    """
    Internal cipher failure

    Raised at startup when the master key is unusable, and on the write
    path when a sensitive value cannot be encrypted so it is never stored
    as plaintext. Read-path failures are absorbed by the cipher.
    """
    pass
