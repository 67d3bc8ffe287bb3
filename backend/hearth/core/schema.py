"""
Tenant store schema provisioning

Additive only: missing tables are created and missing columns are added,
existing structures are never dropped or renamed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from sqlalchemy import Column, DateTime, Integer, MetaData, Table, inspect, select, text
from sqlalchemy.engine import Connection, Dialect, Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.elements import TextClause

from hearth.models import TenantBase
from hearth.models.base import utcnow

logger = logging.getLogger(__name__)

# Bump when tenant models gain tables or columns so already-open stores are
# re-checked without a restart.
SCHEMA_VERSION = 1

schema_info = Table(
    "hearth_schema",
    TenantBase.metadata,
    Column("id", Integer, primary_key=True),
    Column("version", Integer, nullable=False),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)


@dataclass
class ProvisionReport:
    """Outcome of one ensure() call"""

    schema_version: int
    tables_created: List[str] = field(default_factory=list)
    columns_added: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.tables_created or self.columns_added)


class SchemaProvisioner:
    """
    Brings a tenant store up to the current table/column set
    """

    def __init__(self, metadata: MetaData = TenantBase.metadata, schema_version: int = SCHEMA_VERSION):
        self.metadata = metadata
        self.schema_version = schema_version

    def ensure(self, engine: Engine) -> ProvisionReport:
        """
        Create missing tables and add missing columns; safe to repeat

        Args:
            engine: Engine bound to one tenant store

        Returns:
            ProvisionReport describing what was changed
        """
        report = ProvisionReport(schema_version=self.schema_version)

        with engine.begin() as conn:
            inspector = inspect(conn)
            existing_tables = set(inspector.get_table_names())

            for table in self.metadata.sorted_tables:
                if table.name not in existing_tables:
                    table.create(conn, checkfirst=True)
                    report.tables_created.append(table.name)
                    continue

                present = {col["name"] for col in inspector.get_columns(table.name)}
                added = []
                for column in table.columns:
                    if column.name in present:
                        continue
                    if self._add_column(conn, table, column):
                        added.append(column.name)
                        report.columns_added.append((table.name, column.name))

                if added:
                    existing_indexes = {idx["name"] for idx in inspector.get_indexes(table.name)}
                    for index in table.indexes:
                        if index.name not in existing_indexes and any(c.name in added for c in index.columns):
                            index.create(conn)

            self._record_version(conn)

        if report.changed:
            logger.info(
                "Tenant schema updated on %s: %d table(s) created, %d column(s) added",
                engine.url.database,
                len(report.tables_created),
                len(report.columns_added),
            )
        return report

    def _add_column(self, conn: Connection, table: Table, column: Column) -> bool:
        ddl = self.add_column_ddl(table, column, conn.dialect)
        try:
            conn.execute(text(ddl))
        except OperationalError as e:
            # Concurrent provisioner from another process got there first
            if "duplicate column" in str(e).lower():
                return False
            raise
        logger.info("Added column %s.%s", table.name, column.name)
        return True

    @staticmethod
    def add_column_ddl(table: Table, column: Column, dialect: Dialect) -> str:
        """
        ALTER TABLE statement adding a column with a safe default

        NOT NULL is only kept when a constant default exists, so rows that
        predate the column stay valid.
        """
        quote = dialect.identifier_preparer.quote
        column_type = column.type.compile(dialect=dialect)
        default = _constant_default(column)

        ddl = f"ALTER TABLE {quote(table.name)} ADD COLUMN {quote(column.name)} {column_type}"
        if default is not None:
            ddl += f" DEFAULT {default}"
            if not column.nullable:
                ddl += " NOT NULL"
        return ddl

    def _record_version(self, conn: Connection) -> None:
        schema_info.create(conn, checkfirst=True)
        current = conn.execute(select(schema_info.c.version).where(schema_info.c.id == 1)).scalar()
        if current == self.schema_version:
            return
        if current is None:
            conn.execute(schema_info.insert().values(id=1, version=self.schema_version, applied_at=utcnow()))
        else:
            conn.execute(
                schema_info.update()
                .where(schema_info.c.id == 1)
                .values(version=self.schema_version, applied_at=utcnow())
            )

    def applied_version(self, engine: Engine) -> Optional[int]:
        """
        Schema version recorded in a tenant store, if any
        """
        with engine.connect() as conn:
            if not inspect(conn).has_table(schema_info.name):
                return None
            return conn.execute(select(schema_info.c.version).where(schema_info.c.id == 1)).scalar()


def _constant_default(column: Column) -> Optional[str]:
    server_default = column.server_default
    if server_default is not None:
        arg = getattr(server_default, "arg", None)
        if isinstance(arg, TextClause):
            return arg.text
        if isinstance(arg, str):
            return _literal(arg)
        # Function defaults such as now() cannot be added to existing rows
        return None

    default = column.default
    if default is not None and getattr(default, "is_scalar", False):
        return _literal(default.arg)
    return None


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"
