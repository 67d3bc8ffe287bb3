"""
Tenant Store Registry: one isolated SQLite store per household

Handles are opened lazily, provisioned once, and cached for the process
lifetime. First access to a household is serialised per household so
concurrent requests share a single provisioning run.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generator, List, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from hearth.core.config import Settings
from hearth.core.database import create_session_factory, install_query_monitor
from hearth.core.exceptions import StorageInitError
from hearth.core.schema import SchemaProvisioner

logger = logging.getLogger(__name__)


@dataclass
class TenantHandle:
    """
    Opaque reference to one household's initialised store
    """

    household_id: int
    path: Path
    engine: Engine
    session_factory: sessionmaker
    schema_version: int

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Transactional session: commits on success, rolls back on error
        """
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"<TenantHandle(household_id={self.household_id}, path={self.path})>"


def storage_name(household_id: int) -> str:
    """
    Deterministic storage unit name for a household
    """
    return f"household_{household_id}.db"


def _validate_household_id(household_id: Union[int, str]) -> int:
    try:
        value = int(household_id)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid household id: {household_id!r}")
    if value <= 0 or str(value) != str(household_id).strip():
        raise ValueError(f"Invalid household id: {household_id!r}")
    return value


class TenantStoreRegistry:
    """
    Resolves household ids to initialised tenant store handles
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        provisioner: Optional[SchemaProvisioner] = None,
        slow_query_threshold_ms: int = 100,
        echo: bool = False,
    ):
        self.data_dir = Path(data_dir)
        self.provisioner = provisioner or SchemaProvisioner()
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self.echo = echo

        self._handles: Dict[int, TenantHandle] = {}
        self._init_locks: Dict[int, threading.Lock] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, config: Settings) -> "TenantStoreRegistry":
        return cls(
            data_dir=config.TENANT_DATA_DIR,
            slow_query_threshold_ms=config.SLOW_QUERY_THRESHOLD_MS,
            echo=config.DEBUG,
        )

    def storage_path(self, household_id: Union[int, str]) -> Path:
        """
        Location of a household's store; a pure function of the id
        """
        return self.data_dir / storage_name(_validate_household_id(household_id))

    def resolve(self, household_id: Union[int, str]) -> TenantHandle:
        """
        Return the initialised handle for a household, provisioning on first use

        Raises:
            StorageInitError: the store cannot be opened or provisioned
        """
        hid = _validate_household_id(household_id)

        handle = self._handles.get(hid)
        if handle is not None and handle.schema_version == self.provisioner.schema_version:
            return handle

        with self._init_lock_for(hid):
            handle = self._handles.get(hid)
            if handle is not None and handle.schema_version == self.provisioner.schema_version:
                return handle

            handle = self._initialize(hid, existing=handle)
            self._handles[hid] = handle
            return handle

    def _init_lock_for(self, household_id: int) -> threading.Lock:
        with self._lock:
            return self._init_locks.setdefault(household_id, threading.Lock())

    def _initialize(self, household_id: int, existing: Optional[TenantHandle]) -> TenantHandle:
        path = self.storage_path(household_id)
        engine = existing.engine if existing is not None else None

        try:
            if engine is None:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                engine = self._open_engine(path)
            report = self.provisioner.ensure(engine)
        except Exception as e:
            logger.error(f"Failed to initialise store for household {household_id}: {e}")
            if engine is not None:
                engine.dispose()
            with self._lock:
                self._handles.pop(household_id, None)
            raise StorageInitError(f"Storage for household {household_id} could not be initialised") from e

        logger.info(f"Tenant store ready for household {household_id} (schema v{report.schema_version})")
        return TenantHandle(
            household_id=household_id,
            path=path,
            engine=engine,
            session_factory=create_session_factory(engine),
            schema_version=report.schema_version,
        )

    def _open_engine(self, path: Path) -> Engine:
        engine = create_engine(
            f"sqlite:///{path}",
            echo=self.echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Set tenant connection parameters"""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        install_query_monitor(engine, self.slow_query_threshold_ms)
        return engine

    def is_open(self, household_id: Union[int, str]) -> bool:
        return _validate_household_id(household_id) in self._handles

    def open_households(self) -> List[int]:
        return sorted(self._handles)

    def invalidate(self, household_id: Union[int, str]) -> None:
        """
        Drop a cached handle; the next resolve() reopens and re-ensures it
        """
        hid = _validate_household_id(household_id)
        with self._init_lock_for(hid):
            handle = self._handles.pop(hid, None)
        if handle is not None:
            handle.dispose()

    def close_all(self) -> None:
        """
        Dispose every open handle (shutdown)
        """
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.dispose()
        logger.info(f"Closed {len(handles)} tenant store(s)")
