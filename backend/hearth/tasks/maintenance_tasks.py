"""
Background tasks for tenant store provisioning and backups
"""

import logging
from functools import lru_cache
from typing import Any, Dict

from celery import shared_task

from hearth.core.config import settings
from hearth.core.database import create_directory_engine, create_session_factory
from hearth.core.exceptions import StorageInitError
from hearth.core.tenant_registry import TenantStoreRegistry
from hearth.services import backup
from hearth.services.directory import TenancyDirectory

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def get_registry() -> TenantStoreRegistry:
    """Worker-wide tenant store registry"""
    return TenantStoreRegistry.from_settings(settings)


@lru_cache(maxsize=None)
def get_directory() -> TenancyDirectory:
    """Worker-wide read-only directory client"""
    return TenancyDirectory(create_session_factory(create_directory_engine(settings)))


@shared_task
def provision_all_households() -> Dict[str, Any]:
    """
    Resolve every live household so pending additive schema changes land

    Returns:
        Dict with provisioned and failed household ids
    """
    registry = get_registry()
    provisioned, failed = [], []

    for household_id in get_directory().active_household_ids():
        try:
            registry.resolve(household_id)
            provisioned.append(household_id)
        except StorageInitError as e:
            logger.error(f"Provisioning failed for household {household_id}: {e}")
            failed.append(household_id)

    logger.info(f"Provisioned {len(provisioned)} households, {len(failed)} failed")
    return {
        'status': 'completed' if not failed else 'partial',
        'provisioned': provisioned,
        'failed': failed,
    }


@shared_task(bind=True, max_retries=3)
def backup_household(self, household_id: int) -> Dict[str, Any]:
    """
    Zip a consistent copy of one household store into BACKUP_DIR

    Args:
        household_id: Household to back up

    Returns:
        Dict with the backup file name
    """
    if not get_directory().household_exists(household_id):
        logger.warning(f"Household {household_id} no longer exists, skipping backup")
        return {'status': 'skipped', 'household_id': household_id, 'message': 'Household not found'}

    registry = get_registry()
    if not registry.storage_path(household_id).exists():
        logger.warning(f"No store on disk for household {household_id}, skipping backup")
        return {'status': 'skipped', 'household_id': household_id, 'message': 'Store not found'}

    try:
        handle = registry.resolve(household_id)
        path = backup.create_backup(handle, settings.BACKUP_DIR, manifest={'trigger': 'scheduled'})
    except Exception as e:
        logger.error(f"Error backing up household {household_id}: {e}")
        # Retry with exponential backoff
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))

    return {'status': 'completed', 'household_id': household_id, 'file': path.name}


@shared_task
def backup_all_households() -> Dict[str, Any]:
    """
    Queue a backup for every live household
    """
    queued = 0
    for household_id in get_directory().active_household_ids():
        try:
            backup_household.delay(household_id)
            queued += 1
        except Exception as e:
            logger.error(f"Error queuing backup for household {household_id}: {e}")

    logger.info(f"Queued {queued} household backups")
    return {'status': 'completed', 'households_queued': queued}


@shared_task
def clean_old_backups() -> Dict[str, Any]:
    """
    Remove backup zips older than BACKUP_RETENTION_DAYS
    """
    removed = backup.clean_old_backups(settings.BACKUP_DIR, settings.BACKUP_RETENTION_DAYS)
    return {'status': 'completed', 'removed': removed}
