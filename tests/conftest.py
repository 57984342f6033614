"""Shared fixtures: sample Orders table and manifest, in-memory collaborators."""

from typing import Dict, List, Optional

import pytest

from crudwizard.connectors.manifest_connector import build_fallback_manifest
from crudwizard.wizard_engine.errors import SourceUnavailableError
from crudwizard.wizard_engine.generator import GeneratorService
from crudwizard.wizard_engine.models import (
    ColumnSchema,
    EntityManifest,
    FieldManifest,
    PrimaryKeySchema,
    TableSchema,
)
from crudwizard.wizard_engine.orchestrator import Orchestrator
from crudwizard.wizard_engine.sources.base import ManifestSource, SchemaSource
from crudwizard.wizard_engine.store import ConfigurationStore, InMemoryKeyValueStore
from crudwizard.wizard_engine.templates import Jinja2TemplateRenderer


class FakeSchemaSource(SchemaSource):
    """Serves tables from a dict keyed by (schema, table)."""

    def __init__(self, tables: Optional[Dict[tuple, TableSchema]] = None):
        self.tables = tables or {}
        self.calls: List[tuple] = []

    def read_table_schema(self, connection_ref, schema_name, table_name):
        self.calls.append((connection_ref, schema_name, table_name))
        table = self.tables.get((schema_name, table_name))
        if table is None:
            raise SourceUnavailableError("schema", f"Table '{schema_name}.{table_name}' not found.")
        return table.model_copy(deep=True)

    def read_all_tables(self, connection_ref, schema_name):
        return [t.model_copy(deep=True) for (s, _), t in self.tables.items() if s == schema_name]

    def test_connection(self, connection_ref):
        return True


class FakeManifestSource(ManifestSource):
    """Serves manifests from a dict; unknown entities get the fallback manifest."""

    def __init__(self, manifests: Optional[Dict[str, EntityManifest]] = None):
        self.manifests = manifests or {}

    @property
    def base_url(self):
        return "memory://"

    def get_entity_manifest(self, entity_id):
        manifest = self.manifests.get(entity_id)
        if manifest is None:
            return build_fallback_manifest(entity_id)
        return manifest.model_copy(deep=True)

    def get_all_manifests(self):
        return list(self.manifests.values())

    def get_manifests_by_module(self, module):
        return [m for m in self.manifests.values() if m.module == module]

    def has_permission(self, entity_id, permission_type):
        return True

    def test_connection(self):
        return True


def make_orders_schema() -> TableSchema:
    return TableSchema(
        schema_name="dbo",
        table_name="Orders",
        columns=[
            ColumnSchema.from_native("Id", "int", is_identity=True, ordinal_position=1),
            ColumnSchema.from_native("CustomerName", "nvarchar(100)", max_length=100, ordinal_position=2),
            ColumnSchema.from_native("OrderDate", "datetime2", ordinal_position=3),
            ColumnSchema.from_native("Total", "decimal(18,2)", is_nullable=True, precision=18, scale=2,
                                     ordinal_position=4),
            ColumnSchema.from_native("Notes", "nvarchar(max)", is_nullable=True, ordinal_position=5),
            ColumnSchema.from_native("IsPaid", "bit", ordinal_position=6),
            ColumnSchema.from_native("TotalWithTax", "decimal(18,2)", is_nullable=True, is_computed=True,
                                     ordinal_position=7),
        ],
        primary_key=PrimaryKeySchema(constraint_name="PK_Orders", columns=["Id"]),
    )


def make_orders_manifest() -> EntityManifest:
    return EntityManifest(
        entity_id="Orders",
        entity_name="Orders",
        module="Sales",
        system_code=10,
        function_code=20,
        table_name="dbo.Orders",
        fields=[
            FieldManifest(field_name="Id", label="Id", target_type="Int32", is_required=True,
                          is_primary_key=True, is_identity=True),
            FieldManifest(field_name="CustomerName", label="Customer", target_type="String", is_required=True),
            FieldManifest(field_name="OrderDate", label="Order Date", target_type="DateTime", is_required=True),
            FieldManifest(field_name="Total", label="Total", target_type="Decimal"),
            FieldManifest(field_name="Notes", label="Notes", target_type="String"),
            FieldManifest(field_name="IsPaid", label="Paid", target_type="Boolean", is_required=True),
            FieldManifest(field_name="TotalWithTax", label="Total With Tax", target_type="Decimal",
                          is_computed=True),
        ],
    )


@pytest.fixture
def orders_schema() -> TableSchema:
    return make_orders_schema()


@pytest.fixture
def orders_manifest() -> EntityManifest:
    return make_orders_manifest()


@pytest.fixture
def schema_source(orders_schema) -> FakeSchemaSource:
    return FakeSchemaSource({("dbo", "Orders"): orders_schema})


@pytest.fixture
def manifest_source(orders_manifest) -> FakeManifestSource:
    return FakeManifestSource({"Orders": orders_manifest})


@pytest.fixture
def config_store() -> ConfigurationStore:
    return ConfigurationStore(InMemoryKeyValueStore())


@pytest.fixture
def generator(tmp_path) -> GeneratorService:
    renderer = Jinja2TemplateRenderer(str(tmp_path / "templates"))
    return GeneratorService(renderer, str(tmp_path / "output"))


@pytest.fixture
def orchestrator(schema_source, manifest_source, generator, config_store, tmp_path) -> Orchestrator:
    return Orchestrator(
        schema_source=schema_source,
        manifest_source=manifest_source,
        generator=generator,
        store=config_store,
        package_path=str(tmp_path / "packages"),
    )
