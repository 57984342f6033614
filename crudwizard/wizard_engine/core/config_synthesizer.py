# crudwizard/wizard_engine/core/config_synthesizer.py

import re
from typing import List

from crudwizard.wizard_engine.models import (
    ColumnSchema,
    EntityManifest,
    FormField,
    FormFieldConfig,
    FormLayoutConfig,
    GridFieldConfig,
    GridLayoutConfig,
    TableSchema,
    WizardConfig,
)
from crudwizard.wizard_engine.type_mapping import map_input_type

_CASE_BOUNDARY_RE = re.compile(r"([a-z])([A-Z])")


def format_label(column_name: str) -> str:
    """
    Turns a camelCase or snake_case column name into a Title Case label.

    "CustomerName" -> "Customer Name", "created_at" -> "Created At"
    """
    spaced = _CASE_BOUNDARY_RE.sub(r"\1 \2", column_name).replace("_", " ")
    return " ".join(word.capitalize() for word in spaced.lower().split(" "))


class DefaultConfigSynthesizer:
    """
    Builds the configuration suggested to the operator before any manual
    change: a short grid, a form of every editable column and the form field
    catalogue both layouts draw from.
    """
    GRID_FIELD_LIMIT = 5

    def synthesize(self, schema: TableSchema, manifest: EntityManifest) -> WizardConfig:
        columns = sorted(schema.columns, key=lambda c: c.ordinal_position)
        visible = [c for c in columns if not c.is_computed]
        editable = [c for c in visible if not c.is_identity]

        return WizardConfig(
            entity_id=manifest.entity_id,
            entity_name=manifest.entity_name,
            module=manifest.module,
            grid_layout=GridLayoutConfig(fields=self._grid_fields(visible[:self.GRID_FIELD_LIMIT])),
            form_layout=FormLayoutConfig(fields=self._form_layout_fields(editable)),
            form_fields=self._form_fields(visible),
        )

    def _grid_fields(self, columns: List[ColumnSchema]) -> List[GridFieldConfig]:
        return [
            GridFieldConfig(
                field_name=column.name,
                label=format_label(column.name),
                width="auto",
                order=i,
                is_visible=True,
                is_searchable=True,
                is_sortable=True,
            )
            for i, column in enumerate(columns)
        ]

    def _form_layout_fields(self, columns: List[ColumnSchema]) -> List[FormFieldConfig]:
        return [
            FormFieldConfig(
                field_name=column.name,
                label=format_label(column.name),
                order=i,
                is_required=not column.is_nullable,
                is_read_only=column.is_identity,
                input_type=map_input_type(column.target_type),
            )
            for i, column in enumerate(columns)
        ]

    def _form_fields(self, columns: List[ColumnSchema]) -> List[FormField]:
        # Identity columns stay in the catalogue (read-only) so grid fields resolve.
        return [
            FormField(
                field=column.name,
                label=format_label(column.name),
                input_type=map_input_type(column.target_type),
                required=not column.is_nullable,
                read_only=column.is_identity,
            )
            for column in columns
        ]


def synthesize_default_config(schema: TableSchema, manifest: EntityManifest) -> WizardConfig:
    return DefaultConfigSynthesizer().synthesize(schema, manifest)
