# crudwizard/wizard_engine/extractor.py

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import SQLAlchemyError

from crudwizard.connectors.sql_connector import SqlConnector
from crudwizard.wizard_engine.errors import SourceUnavailableError
from crudwizard.wizard_engine.models import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    PrimaryKeySchema,
    TableSchema,
)
from crudwizard.wizard_engine.sources.base import SchemaSource

logger = logging.getLogger(__name__)

SOURCE_NAME = "schema"


class SchemaExtractor(SchemaSource):
    """
    Reads table structures through SQLAlchemy reflection.

    The connector given at construction serves requests without a connection
    reference. A reference (a SQLAlchemy URL carried by the manifest) gets a
    short-lived connector of its own.
    """
    def __init__(self, connector: SqlConnector):
        self.connector = connector

    @contextmanager
    def _inspector(self, connection_ref: Optional[str]) -> Iterator[Inspector]:
        if connection_ref:
            with SqlConnector(dsn=connection_ref) as connector:
                yield connector.get_inspector()
        else:
            self.connector.connect()
            yield self.connector.get_inspector()

    def read_table_schema(self, connection_ref: Optional[str], schema_name: str, table_name: str) -> TableSchema:
        logger.info("Reading schema of table %s.%s", schema_name, table_name)
        try:
            with self._inspector(connection_ref) as inspector:
                if not inspector.has_table(table_name, schema=schema_name):
                    raise SourceUnavailableError(SOURCE_NAME, f"Table '{schema_name}.{table_name}' not found.")
                table = self._extract_table(inspector, schema_name, table_name)
        except SQLAlchemyError as e:
            raise SourceUnavailableError(SOURCE_NAME, f"Could not read '{schema_name}.{table_name}': {e}") from e

        for problem in table.validate_model():
            logger.warning("Table %s: %s", table.fully_qualified_name, problem)
        return table

    def read_all_tables(self, connection_ref: Optional[str], schema_name: str) -> List[TableSchema]:
        try:
            with self._inspector(connection_ref) as inspector:
                table_names = inspector.get_table_names(schema=schema_name)
                logger.info("Found %d tables in schema '%s'.", len(table_names), schema_name)
                return [self._extract_table(inspector, schema_name, name) for name in table_names]
        except SQLAlchemyError as e:
            raise SourceUnavailableError(SOURCE_NAME, f"Could not list tables of '{schema_name}': {e}") from e

    def test_connection(self, connection_ref: Optional[str]) -> bool:
        try:
            if connection_ref:
                with SqlConnector(dsn=connection_ref) as connector:
                    connector.ping()
            else:
                self.connector.connect()
                self.connector.ping()
        except (SQLAlchemyError, ConnectionError) as e:
            logger.warning("Database connection test failed: %s", e)
            return False
        return True

    def _extract_table(self, inspector: Inspector, schema_name: str, table_name: str) -> TableSchema:
        columns = [
            self._build_column(col, position)
            for position, col in enumerate(inspector.get_columns(table_name, schema=schema_name), start=1)
        ]

        pk_constraint = inspector.get_pk_constraint(table_name, schema=schema_name)
        primary_key = None
        if pk_constraint.get("constrained_columns"):
            primary_key = PrimaryKeySchema(
                constraint_name=pk_constraint.get("name") or "",
                columns=pk_constraint["constrained_columns"],
            )

        foreign_keys = [
            ForeignKeySchema(
                constraint_name=fk.get("name") or "",
                column_names=fk["constrained_columns"],
                referenced_schema=fk.get("referred_schema") or schema_name,
                referenced_table=fk["referred_table"],
                referenced_columns=fk["referred_columns"],
                delete_action=(fk.get("options", {}).get("ondelete") or "").upper() or None,
                update_action=(fk.get("options", {}).get("onupdate") or "").upper() or None,
            )
            for fk in inspector.get_foreign_keys(table_name, schema=schema_name)
        ]

        indexes = [
            IndexSchema(
                index_name=ix.get("name") or "",
                column_names=[c for c in ix.get("column_names", []) if c is not None],
                is_unique=bool(ix.get("unique")),
                is_clustered=bool(ix.get("dialect_options", {}).get("mssql_clustered", False)),
            )
            for ix in inspector.get_indexes(table_name, schema=schema_name)
        ]

        table = TableSchema(
            schema_name=schema_name,
            table_name=table_name,
            description=self._table_comment(inspector, schema_name, table_name),
            columns=columns,
            primary_key=primary_key,
            foreign_keys=foreign_keys,
            indexes=indexes,
        )
        table.schema_hash = table.compute_hash()
        logger.debug("Inspected table '%s' (%d columns).", table_name, len(columns))
        return table

    @staticmethod
    def _build_column(col: Dict[str, Any], position: int) -> ColumnSchema:
        col_type = col["type"]
        default = col.get("default")
        return ColumnSchema.from_native(
            col["name"],
            str(col_type),
            is_nullable=bool(col.get("nullable", True)),
            is_identity=col.get("identity") is not None or col.get("autoincrement") is True,
            is_computed=col.get("computed") is not None,
            max_length=getattr(col_type, "length", None),
            precision=getattr(col_type, "precision", None),
            scale=getattr(col_type, "scale", None),
            default_value=str(default) if default is not None else None,
            description=col.get("comment") or "",
            ordinal_position=position,
        )

    @staticmethod
    def _table_comment(inspector: Inspector, schema_name: str, table_name: str) -> str:
        try:
            return inspector.get_table_comment(table_name, schema=schema_name).get("text") or ""
        except NotImplementedError:
            # Dialects without table comments (e.g. SQLite).
            return ""
