# crudwizard/wizard_engine/core/conflict_detector.py

from typing import List, Set

from crudwizard.wizard_engine.enums import ConflictResolution, ConflictType
from crudwizard.wizard_engine.models import (
    ColumnSchema,
    Conflict,
    EntityManifest,
    FieldManifest,
    TableSchema,
)
from crudwizard.wizard_engine.type_mapping import strip_nullable


class ConflictDetector:
    """
    Compares a table's structure against its entity manifest and reports
    every discrepancy, field by field.

    Field names are matched case-insensitively on both sides. Conflicts come
    out in manifest field order, followed by the columns (in ordinal order)
    that the manifest does not declare.
    """
    def __init__(self, include_key_checks: bool = False):
        """
        Args:
            include_key_checks: Also compare primary/foreign key flags of
                matched fields. Off by default.
        """
        self.include_key_checks = include_key_checks

    def detect(self, schema: TableSchema, manifest: EntityManifest) -> List[Conflict]:
        conflicts: List[Conflict] = []
        columns = sorted(schema.columns, key=lambda c: c.ordinal_position)

        for manifest_field in manifest.fields:
            column = schema.get_column(manifest_field.field_name)
            if column is None:
                conflicts.append(self._missing_in_database(manifest_field))
                continue

            conflicts.extend(self._compare_field(column, manifest_field))
            if self.include_key_checks:
                conflicts.extend(self._compare_keys(schema, column, manifest_field))

        declared = {f.field_name.lower() for f in manifest.fields}
        for column in columns:
            if column.name.lower() not in declared:
                conflicts.append(self._missing_in_manifest(column))

        return conflicts

    def _missing_in_database(self, manifest_field: FieldManifest) -> Conflict:
        return Conflict(
            type=ConflictType.FIELD_NOT_IN_DATABASE,
            field_name=manifest_field.field_name,
            manifest_value=manifest_field.target_type,
            description=f"Field '{manifest_field.field_name}' exists in the manifest but not in the database.",
        )

    def _missing_in_manifest(self, column: ColumnSchema) -> Conflict:
        return Conflict(
            type=ConflictType.FIELD_NOT_IN_MANIFEST,
            field_name=column.name,
            database_value=column.target_type,
            description=f"Field '{column.name}' exists in the database but not in the manifest.",
            suggested_resolution=ConflictResolution.IGNORE,
        )

    def _compare_field(self, column: ColumnSchema, manifest_field: FieldManifest) -> List[Conflict]:
        conflicts: List[Conflict] = []
        database_type = strip_nullable(column.target_type)
        manifest_type = strip_nullable(manifest_field.target_type)

        if database_type != manifest_type:
            conflicts.append(Conflict(
                type=ConflictType.TYPE_MISMATCH,
                field_name=manifest_field.field_name,
                database_value=database_type,
                manifest_value=manifest_field.target_type,
                description=(
                    f"Type differs for '{manifest_field.field_name}': "
                    f"database={database_type}, manifest={manifest_field.target_type}"
                ),
            ))

        # A required manifest field must map onto a NOT NULL column.
        if column.is_nullable != (not manifest_field.is_required):
            conflicts.append(Conflict(
                type=ConflictType.NULLABILITY_MISMATCH,
                field_name=manifest_field.field_name,
                database_value="nullable" if column.is_nullable else "not null",
                manifest_value="required" if manifest_field.is_required else "optional",
                description=f"Nullability differs for '{manifest_field.field_name}'.",
            ))

        return conflicts

    def _compare_keys(self, schema: TableSchema, column: ColumnSchema,
                      manifest_field: FieldManifest) -> List[Conflict]:
        conflicts: List[Conflict] = []
        name = column.name.lower()

        pk_columns: Set[str] = {c.lower() for c in (schema.primary_key.columns if schema.primary_key else [])}
        in_pk = name in pk_columns
        if in_pk != manifest_field.is_primary_key:
            conflicts.append(Conflict(
                type=ConflictType.PRIMARY_KEY_MISMATCH,
                field_name=manifest_field.field_name,
                database_value="primary key" if in_pk else "not a key",
                manifest_value="primary key" if manifest_field.is_primary_key else "not a key",
                description=f"Primary key membership differs for '{manifest_field.field_name}'.",
            ))

        fk_columns: Set[str] = {c.lower() for fk in schema.foreign_keys for c in fk.column_names}
        in_fk = name in fk_columns
        if in_fk != manifest_field.is_foreign_key:
            conflicts.append(Conflict(
                type=ConflictType.FOREIGN_KEY_MISMATCH,
                field_name=manifest_field.field_name,
                database_value="foreign key" if in_fk else "not a key",
                manifest_value="foreign key" if manifest_field.is_foreign_key else "not a key",
                description=f"Foreign key membership differs for '{manifest_field.field_name}'.",
            ))

        return conflicts


def detect_conflicts(schema: TableSchema, manifest: EntityManifest,
                     include_key_checks: bool = False) -> List[Conflict]:
    """Pure, idempotent comparison of a table schema and an entity manifest."""
    return ConflictDetector(include_key_checks=include_key_checks).detect(schema, manifest)
