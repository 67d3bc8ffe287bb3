"""
Database utility functions for connection checks and health reporting
"""

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from typing import Any, Dict
import logging
import os
import time

from hearth.core.encryption import FieldCipher
from hearth.core.tenant_registry import TenantStoreRegistry
from hearth.models import DirectoryBase

logger = logging.getLogger(__name__)


def check_database_connection(engine: Engine) -> bool:
    """
    Check if database connection is working
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


class DatabaseHealthCheck:
    """
    Health of the directory database and the tenant store area
    """

    def __init__(self, engine: Engine, registry: TenantStoreRegistry, cipher: FieldCipher):
        self.engine = engine
        self.registry = registry
        self.cipher = cipher

    def check(self) -> Dict[str, Any]:
        """
        Comprehensive health check
        """
        health_status = {
            "status": "unknown",
            "connection": False,
            "tables_exist": False,
            "tenant_storage_writable": False,
            "details": {},
        }

        try:
            start_time = time.time()
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            health_status["connection"] = True
            health_status["details"]["query_time_ms"] = round((time.time() - start_time) * 1000, 2)

            existing = set(inspect(self.engine).get_table_names())
            expected = set(DirectoryBase.metadata.tables)
            health_status["tables_exist"] = expected.issubset(existing)
            health_status["details"]["missing_tables"] = sorted(expected - existing)
        except Exception as e:
            health_status["details"]["error"] = str(e)
            logger.error(f"Directory health check failed: {e}")

        data_dir = self.registry.data_dir
        health_status["tenant_storage_writable"] = data_dir.is_dir() and os.access(data_dir, os.W_OK)
        health_status["details"]["tenant_data_dir"] = str(data_dir)
        health_status["details"]["open_tenant_stores"] = len(self.registry.open_households())
        health_status["details"]["schema_version"] = self.registry.provisioner.schema_version
        health_status["details"]["decrypt_fallbacks"] = self.cipher.stats()

        if not health_status["connection"]:
            health_status["status"] = "unhealthy"
        elif health_status["tables_exist"] and health_status["tenant_storage_writable"]:
            health_status["status"] = "healthy"
        else:
            health_status["status"] = "degraded"

        return health_status
