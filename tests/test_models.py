"""Tests for schema, manifest and configuration models."""

from crudwizard.wizard_engine.enums import ConflictType, FormInputType, SqlDataType
from crudwizard.wizard_engine.models import (
    ColumnSchema,
    Conflict,
    EntityManifest,
    FieldManifest,
    ForeignKeySchema,
    FormField,
    FormFieldConfig,
    FormLayoutConfig,
    GridFieldConfig,
    GridLayoutConfig,
    ManifestRoutes,
    PrimaryKeySchema,
    TableSchema,
    WizardConfig,
)


def _valid_config(**overrides) -> WizardConfig:
    values = dict(
        entity_id="Orders",
        grid_layout=GridLayoutConfig(fields=[GridFieldConfig(field_name="Id", label="Id")]),
        form_layout=FormLayoutConfig(fields=[FormFieldConfig(field_name="Id", label="Id")]),
        form_fields=[FormField(field="Id", label="Id")],
    )
    values.update(overrides)
    return WizardConfig(**values)


class TestColumnSchema:
    """Type resolution and nullable naming of columns."""

    def test_types_resolved_from_native_name(self):
        """A column built from its native type gets semantic and target types."""
        column = ColumnSchema.from_native("Total", "DECIMAL(18, 2)")
        assert column.sql_data_type == SqlDataType.DECIMAL
        assert column.target_type == "Decimal"

    def test_plain_constructor_resolves_types(self):
        """Types left unset are derived on construction."""
        column = ColumnSchema(name="Code", data_type="uniqueidentifier")
        assert column.sql_data_type == SqlDataType.UNIQUE_IDENTIFIER
        assert column.target_type == "Guid"

    def test_unknown_native_type_maps_to_object(self):
        column = ColumnSchema.from_native("Shape", "geography")
        assert column.sql_data_type == SqlDataType.UNKNOWN
        assert column.target_type == "Object"
        assert column.validate_model() == []

    def test_nullable_value_type_gets_question_mark(self):
        assert ColumnSchema.from_native("Qty", "int", is_nullable=True).target_type_name == "Int32?"
        assert ColumnSchema.from_native("Qty", "int").target_type_name == "Int32"

    def test_nullable_reference_type_has_no_question_mark(self):
        assert ColumnSchema.from_native("Name", "varchar(20)", is_nullable=True).target_type_name == "String"

    def test_blank_name_is_reported(self):
        column = ColumnSchema.from_native(" ", "int")
        assert column.validate_model() == ["Column name must not be empty."]


class TestTableSchema:
    """Structural invariants and helpers of a table."""

    def test_valid_table_has_no_errors(self, orders_schema):
        assert orders_schema.validate_model() == []

    def test_missing_primary_key_is_reported(self, orders_schema):
        orders_schema.primary_key = None
        assert "The table must declare a primary key." in orders_schema.validate_model()

    def test_unknown_key_columns_are_reported(self, orders_schema):
        orders_schema.primary_key = PrimaryKeySchema(columns=["OrderId"])
        orders_schema.foreign_keys = [ForeignKeySchema(column_names=["CustomerId"], referenced_table="Customers")]
        errors = orders_schema.validate_model()
        assert "Primary key column 'OrderId' not found in table." in errors
        assert "Foreign key column 'CustomerId' not found in table." in errors

    def test_empty_table_collects_all_errors(self):
        errors = TableSchema(schema_name="", table_name="").validate_model()
        assert len(errors) == 4

    def test_get_column_ignores_case(self, orders_schema):
        assert orders_schema.get_column("customername").name == "CustomerName"
        assert orders_schema.get_column("Missing") is None

    def test_required_columns_skip_identity_and_computed(self, orders_schema):
        names = [c.name for c in orders_schema.get_required_columns()]
        assert names == ["CustomerName", "OrderDate", "IsPaid"]

    def test_primary_key_column(self, orders_schema):
        assert orders_schema.get_primary_key_column().name == "Id"
        assert orders_schema.fully_qualified_name == "[dbo].[Orders]"

    def test_hash_ignores_read_time(self, orders_schema):
        later = orders_schema.model_copy(update={"read_at": orders_schema.read_at.replace(year=2000)})
        assert later.compute_hash() == orders_schema.compute_hash()


class TestEntityManifest:
    """Manifest invariants, lookups and camelCase payloads."""

    def test_valid_manifest_has_no_errors(self, orders_manifest):
        assert orders_manifest.validate_model() == []

    def test_codes_must_be_positive(self, orders_manifest):
        orders_manifest.system_code = 0
        orders_manifest.function_code = -1
        errors = orders_manifest.validate_model()
        assert "System code must be greater than zero." in errors
        assert "Function code must be greater than zero." in errors

    def test_manifest_without_fields_is_invalid(self):
        manifest = EntityManifest(entity_id="X", entity_name="X", table_name="X", system_code=1, function_code=1)
        assert manifest.validate_model() == ["The entity must have at least one field."]

    def test_foreign_key_field_requires_info(self):
        field = FieldManifest(field_name="CustomerId", target_type="Int32", is_foreign_key=True)
        assert field.validate_model() == ["Foreign key info is required for foreign key fields."]

    def test_resolve_table_splits_schema(self, orders_manifest):
        assert orders_manifest.resolve_table() == ("dbo", "Orders")
        orders_manifest.table_name = "Orders"
        orders_manifest.database_schema = "sales"
        assert orders_manifest.resolve_table() == ("sales", "Orders")

    def test_parses_camel_case_payload(self):
        """Service payloads use camelCase keys and the legacy code names."""
        manifest = EntityManifest.model_validate({
            "entityId": "Products",
            "entityName": "Products",
            "tableName": "dbo.Products",
            "cdSistema": 3,
            "cdFuncao": 7,
            "routes": {"list": "/api/products/list", "import": "/api/products/import"},
            "fields": [
                {"fieldName": "Id", "clrType": "Int32", "isRequired": True, "suggestedInputType": "number"},
            ],
        })
        assert manifest.system_code == 3
        assert manifest.function_code == 7
        assert manifest.routes.import_ == "/api/products/import"
        assert manifest.fields[0].target_type == "Int32"
        assert manifest.fields[0].suggested_input_type == FormInputType.NUMBER
        assert manifest.get_field("id").is_required

    def test_base_route(self):
        assert ManifestRoutes(list_="/api/training-types/list").base_route() == "/api/training-types"
        assert ManifestRoutes().base_route() is None


class TestWizardConfig:
    """Configuration invariants."""

    def test_valid_config(self):
        assert _valid_config().validate_model() == []

    def test_grid_field_missing_from_form_fields(self):
        """A grid field absent from the form fields yields exactly one error naming it."""
        config = _valid_config(
            grid_layout=GridLayoutConfig(fields=[
                GridFieldConfig(field_name="Id", label="Id"),
                GridFieldConfig(field_name="X", label="X"),
            ]),
        )
        errors = config.validate_model()
        assert errors == ["Grid field 'X' not found in form fields."]

    def test_empty_config_collects_errors(self):
        errors = WizardConfig().validate_model()
        assert "Entity id must not be empty." in errors
        assert "Grid layout must have at least one field." in errors
        assert "Form layout must have at least one field." in errors
        assert "There must be at least one form field." in errors

    def test_form_field_without_label(self):
        config = _valid_config(form_fields=[FormField(field="Id", label="")])
        assert config.validate_model() == ["Label of form field 'Id' must not be empty."]

    def test_json_round_trip_keeps_resolutions(self):
        config = _valid_config(conflict_resolutions={"Email_field_not_in_database": "ignore"})
        restored = WizardConfig.model_validate_json(config.model_dump_json())
        assert restored.model_dump() == config.model_dump()


def test_conflict_key_combines_field_and_type():
    conflict = Conflict(type=ConflictType.TYPE_MISMATCH, field_name="Total")
    assert conflict.key == "Total_type_mismatch"
