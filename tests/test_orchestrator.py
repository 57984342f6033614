"""Tests for the wizard flow driven by the orchestrator."""

import zipfile
from unittest import mock

import pytest

from crudwizard.config.settings import Settings
from crudwizard.connectors.manifest_connector import ManifestConnector
from crudwizard.wizard_engine.core.config_hasher import compute_config_hash
from crudwizard.wizard_engine.enums import ConflictResolution, ConflictType, GenerationStatus
from crudwizard.wizard_engine.errors import NotFoundError, SourceUnavailableError
from crudwizard.wizard_engine.extractor import SchemaExtractor
from crudwizard.wizard_engine.models import FieldManifest, GridFieldConfig
from crudwizard.wizard_engine.orchestrator import Orchestrator, build_orchestrator
from crudwizard.wizard_engine.results import GenerationResult


@pytest.fixture
def conflicting_orchestrator(orchestrator, manifest_source):
    """The Orders manifest declares an Email field that the table lacks."""
    manifest_source.manifests["Orders"].fields.append(
        FieldManifest(field_name="Email", target_type="String", is_required=True)
    )
    return orchestrator


class TestInitialize:
    """Loading both sides and suggesting a configuration."""

    def test_initialize(self, orchestrator, schema_source):
        result = orchestrator.initialize("Orders")

        assert result.is_successful
        assert result.errors == []
        assert result.manifest.entity_id == "Orders"
        assert result.table_schema.table_name == "Orders"
        assert result.suggested_config.entity_id == "Orders"
        assert result.suggested_config.validate_model() == []
        assert schema_source.calls == [(None, "dbo", "Orders")]

    def test_connection_reference_from_manifest(self, orchestrator, schema_source, manifest_source):
        manifest_source.manifests["Orders"].connection_string = "mssql+pyodbc://other"
        orchestrator.default_connection_ref = "mssql+pyodbc://default"
        orchestrator.initialize("Orders")
        assert schema_source.calls[-1][0] == "mssql+pyodbc://other"

        manifest_source.manifests["Orders"].connection_string = None
        orchestrator.initialize("Orders")
        assert schema_source.calls[-1][0] == "mssql+pyodbc://default"

    def test_missing_table_is_reported(self, orchestrator):
        """The fallback manifest for Customers points at a table that does not exist."""
        result = orchestrator.initialize("Customers")

        assert not result.is_successful
        assert result.suggested_config is None
        assert len(result.errors) == 1
        assert "Customers" in result.errors[0]

    def test_load_schema_raises(self, orchestrator):
        with pytest.raises(SourceUnavailableError):
            orchestrator.load_schema("Customers")


class TestConflicts:
    """Detecting and resolving table/manifest discrepancies."""

    def test_no_conflicts(self, orchestrator):
        result = orchestrator.detect_conflicts("Orders")
        assert result.is_valid
        assert result.conflicts == []
        assert result.warnings == []

    def test_conflicts_are_listed(self, conflicting_orchestrator):
        result = conflicting_orchestrator.detect_conflicts("Orders")

        assert not result.is_valid
        assert [(c.type, c.field_name) for c in result.conflicts] == [(ConflictType.FIELD_NOT_IN_DATABASE, "Email")]
        assert result.errors == []

    def test_fallback_manifest_adds_warning(self, orchestrator, schema_source, orders_schema):
        customers = orders_schema.model_copy(update={"table_name": "Customers"})
        schema_source.tables[("dbo", "Customers")] = customers

        result = orchestrator.detect_conflicts("Customers")

        assert len(result.conflicts) == len(customers.columns)
        assert any("fallback" in w for w in result.warnings)

    def test_unreadable_source_is_an_error(self, orchestrator):
        result = orchestrator.detect_conflicts("Customers")
        assert not result.is_valid
        assert result.conflicts == []
        assert len(result.errors) == 1

    def test_resolve_all(self, conflicting_orchestrator):
        result = conflicting_orchestrator.resolve_conflicts(
            "Orders", {"Email_field_not_in_database": ConflictResolution.IGNORE},
        )
        assert result.is_successful
        assert result.unresolved_conflicts == []
        assert result.warnings == []

    def test_resolve_partial(self, conflicting_orchestrator):
        result = conflicting_orchestrator.resolve_conflicts(
            "Orders", {"Phone_field_not_in_database": ConflictResolution.IGNORE},
        )

        assert not result.is_successful
        assert [c.field_name for c in result.unresolved_conflicts] == ["Email"]
        assert result.warnings[0].startswith("Unresolved conflict: ")
        assert "Phone_field_not_in_database" in result.warnings[1]

    def test_resolve_without_conflicts(self, orchestrator):
        assert orchestrator.resolve_conflicts("Orders", {}).is_successful


class TestValidateConfiguration:
    """Model checks first, then checks against the live table."""

    def test_suggested_config_is_valid(self, orchestrator):
        config = orchestrator.initialize("Orders").suggested_config
        result = orchestrator.validate_configuration(config)
        assert result.is_valid
        assert result.warnings == []

    def test_model_errors_skip_schema_lookup(self, orchestrator, schema_source):
        config = orchestrator.initialize("Orders").suggested_config
        schema_source.calls.clear()
        config.entity_id = ""

        result = orchestrator.validate_configuration(config)

        assert not result.is_valid
        assert "Entity id must not be empty." in result.errors
        assert schema_source.calls == []

    def test_unknown_grid_field_is_a_model_error(self, orchestrator):
        config = orchestrator.initialize("Orders").suggested_config
        config.grid_layout.fields.append(GridFieldConfig(field_name="Discount", label="Discount", order=5))

        result = orchestrator.validate_configuration(config)
        assert "Grid field 'Discount' not found in form fields." in result.errors

    def test_fields_missing_from_table_are_warnings(self, orchestrator, schema_source):
        config = orchestrator.initialize("Orders").suggested_config
        table = schema_source.tables[("dbo", "Orders")]
        table.columns = [c for c in table.columns if c.name != "Notes"]

        result = orchestrator.validate_configuration(config)

        assert result.is_valid
        assert result.warnings == [
            "Grid field 'Notes' not found in the schema.",
            "Form field 'Notes' not found in the schema.",
        ]

    def test_table_without_columns(self, orchestrator, schema_source):
        config = orchestrator.initialize("Orders").suggested_config
        schema_source.tables[("dbo", "Orders")].columns = []

        result = orchestrator.validate_configuration(config)
        assert result.errors == ["Schema for 'Orders' has no columns."]


class TestGenerateCode:
    """Generation and packaging through the orchestrator."""

    def test_generate(self, orchestrator, tmp_path):
        config = orchestrator.initialize("Orders").suggested_config

        result = orchestrator.generate_code(config)

        assert result.is_successful
        assert result.status == GenerationStatus.SUCCESS
        assert len(result.files) == 8
        assert result.config_id == config.config_id
        assert result.metadata["config_hash"] == compute_config_hash(config)
        assert "unresolved_conflicts" not in result.metadata
        assert (tmp_path / "output" / "Orders" / "OrdersController.generated.cs").is_file()

    def test_caller_config_is_not_modified(self, orchestrator):
        config = orchestrator.initialize("Orders").suggested_config
        before = config.model_dump()

        orchestrator.generate_code(config)

        assert config.config_hash is None
        assert config.model_dump() == before

    def test_saved_config_keeps_its_identifier(self, orchestrator):
        """Generating from a loaded configuration reports the id it was saved under."""
        config = orchestrator.initialize("Orders").suggested_config
        config_id = orchestrator.save_configuration(config)

        result = orchestrator.generate_code(orchestrator.load_configuration(config_id))

        assert result.config_id == config_id
        assert result.metadata["config_hash"] == orchestrator.load_configuration(config_id).config_hash

    def test_invalid_config_generates_nothing(self, orchestrator, tmp_path):
        config = orchestrator.initialize("Orders").suggested_config
        config.form_fields = []

        result = orchestrator.generate_code(config)

        assert not result.is_successful
        assert result.status == GenerationStatus.ERROR
        assert result.files == []
        assert result.errors
        assert not (tmp_path / "output" / "Orders").exists()

    def test_unresolved_conflicts_make_generation_unsuccessful(self, conflicting_orchestrator):
        """Files are still written but the outcome carries the open conflicts."""
        config = conflicting_orchestrator.initialize("Orders").suggested_config

        result = conflicting_orchestrator.generate_code(config)

        assert not result.is_successful
        assert result.status == GenerationStatus.WARNING
        assert len(result.files) == 8
        assert any(w.startswith("Unresolved conflict: ") for w in result.warnings)
        (unresolved,) = result.metadata["unresolved_conflicts"]
        assert unresolved["field_name"] == "Email"
        assert unresolved["type"] == "field_not_in_database"

    def test_resolved_conflicts_generate_cleanly(self, conflicting_orchestrator):
        config = conflicting_orchestrator.initialize("Orders").suggested_config
        config.conflict_resolutions["Email_field_not_in_database"] = ConflictResolution.IGNORE

        result = conflicting_orchestrator.generate_code(config)

        assert result.is_successful
        assert result.warnings == []

    def test_source_failure_during_generation(self, orchestrator, schema_source):
        config = orchestrator.initialize("Orders").suggested_config
        del schema_source.tables[("dbo", "Orders")]

        result = orchestrator.generate_code(config)
        assert not result.is_successful
        assert result.files == []

    def test_package(self, orchestrator, tmp_path):
        config = orchestrator.initialize("Orders").suggested_config
        result = orchestrator.package(orchestrator.generate_code(config))

        assert result.output_zip_path.startswith(str(tmp_path / "packages"))
        with zipfile.ZipFile(result.output_zip_path) as archive:
            assert len(archive.namelist()) == 8

    def test_package_without_files(self, orchestrator):
        result = orchestrator.package(GenerationResult(config_id="c", entity_id="Orders"))
        assert result.output_zip_path is None
        assert result.warnings == ["Nothing to package."]

    def test_package_failure_is_reported(self, orchestrator):
        config = orchestrator.initialize("Orders").suggested_config
        generated = orchestrator.generate_code(config)
        orchestrator.packager = mock.Mock()
        orchestrator.packager.create_archive.side_effect = OSError("disk full")

        result = orchestrator.package(generated)

        assert not result.is_successful
        assert result.output_zip_path is None
        assert "disk full" in result.errors[-1]


class TestPersistence:
    """Saving, loading and history through the orchestrator."""

    def test_save_load_history(self, orchestrator):
        config = orchestrator.initialize("Orders").suggested_config

        config_id = orchestrator.save_configuration(config)
        loaded = orchestrator.load_configuration(config_id)

        assert loaded.entity_id == "Orders"
        assert [s.config_id for s in orchestrator.get_history("Orders")] == [config_id]

    def test_load_unknown(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.load_configuration("missing")


def test_build_orchestrator(tmp_path):
    settings = Settings(
        manifest_api_base_url="",
        templates_path=str(tmp_path / "templates"),
        output_path=str(tmp_path / "out"),
        config_storage_path=str(tmp_path / "configs"),
    )
    orchestrator = build_orchestrator(settings)

    assert isinstance(orchestrator, Orchestrator)
    assert isinstance(orchestrator.schema_source, SchemaExtractor)
    assert isinstance(orchestrator.manifest_source, ManifestConnector)
    assert (tmp_path / "configs").is_dir()
