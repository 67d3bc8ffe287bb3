"""
Zip backups of individual tenant stores
"""

import json
import logging
import sqlite3
import tempfile
import time
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from hearth.core.tenant_registry import TenantHandle, storage_name
from hearth.models.base import utcnow

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def backup_filename(household_id: int, now: datetime) -> str:
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%f")
    return f"household-{household_id}-backup-{timestamp}.zip"


def create_backup(
    handle: TenantHandle,
    backup_dir: Union[str, Path],
    manifest: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Path:
    """
    Online copy of a household store, zipped with a manifest

    Uses the SQLite backup API so the copy is consistent while the store
    stays open for writes.

    Args:
        handle: Initialised tenant store
        backup_dir: Directory receiving the zip
        manifest: Extra metadata merged into manifest.json
        now: Timestamp used in the file name

    Returns:
        Path of the created zip
    """
    now = now or utcnow()
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_dir / backup_filename(handle.household_id, now)

    with tempfile.TemporaryDirectory(dir=backup_dir) as tmp:
        snapshot = Path(tmp) / storage_name(handle.household_id)

        raw = handle.engine.raw_connection()
        try:
            dest = sqlite3.connect(snapshot)
            try:
                raw.driver_connection.backup(dest)
            finally:
                dest.close()
        finally:
            raw.close()

        contents = {
            "household_id": handle.household_id,
            "created_at": now.isoformat(),
            "schema_version": handle.schema_version,
            "files": [snapshot.name],
        }
        contents.update(manifest or {})

        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.write(snapshot, arcname=snapshot.name)
            archive.writestr(MANIFEST_NAME, json.dumps(contents, indent=2, default=str))

    logger.info(f"Backup created for household {handle.household_id}: {target.name}")
    return target


def clean_old_backups(
    backup_dir: Union[str, Path],
    retention_days: int = 30,
    now: Optional[float] = None,
) -> List[str]:
    """
    Delete backup zips older than retention_days

    Args:
        backup_dir: Directory holding the zips
        retention_days: Age limit in days
        now: Reference epoch seconds

    Returns:
        Names of deleted files
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return []

    cutoff = (now if now is not None else time.time()) - retention_days * 24 * 60 * 60
    removed = []
    for path in sorted(backup_dir.glob("*.zip")):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed.append(path.name)
                logger.info(f"Deleted old backup: {path.name}")
        except OSError as e:
            logger.error(f"Could not remove backup {path.name}: {e}")
    return removed
