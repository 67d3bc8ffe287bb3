"""
Full household export: directory record, linked users and every tenant table
"""

import logging
from typing import Any, Dict

from hearth import __version__
from hearth.core.gateway import EncryptionGateway
from hearth.core.tenant_registry import TenantHandle
from hearth.models import TENANT_MODELS
from hearth.models.base import utcnow
from hearth.services.directory import TenancyDirectory
from hearth.services.repository import TenantRepository

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = 1


def build_export(
    handle: TenantHandle,
    directory: TenancyDirectory,
    gateway: EncryptionGateway,
) -> Dict[str, Any]:
    """
    Decrypted snapshot of a household, soft-deleted rows included

    Args:
        handle: Tenant store of the household being exported
        directory: Source of the household record and its users
        gateway: Decrypts sensitive fields on the way out

    Returns:
        Export document with metadata, household, users and data sections
    """
    household_id = handle.household_id
    data = {}
    for slug, model in TENANT_MODELS.items():
        data[slug] = TenantRepository(handle, model, gateway).list(include_deleted=True)

    total = sum(len(rows) for rows in data.values())
    logger.info(f"Exported household {household_id}: {total} rows across {len(data)} tables")

    return {
        "metadata": {
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": utcnow().isoformat(),
            "household_id": household_id,
            "source": f"hearth {__version__}",
        },
        "household": directory.get_household(household_id),
        "users": directory.household_users(household_id),
        "data": data,
    }
