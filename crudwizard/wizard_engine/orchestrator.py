# crudwizard/wizard_engine/orchestrator.py

import logging
import time
from typing import List, Mapping, Optional, Tuple

from crudwizard.config.settings import Settings
from crudwizard.connectors.manifest_connector import ManifestConnector
from crudwizard.connectors.sql_connector import SqlConnector
from crudwizard.wizard_engine.core.config_hasher import compute_config_hash
from crudwizard.wizard_engine.core.config_synthesizer import DefaultConfigSynthesizer
from crudwizard.wizard_engine.core.conflict_detector import ConflictDetector
from crudwizard.wizard_engine.enums import ConflictResolution, GenerationStatus
from crudwizard.wizard_engine.errors import WizardError
from crudwizard.wizard_engine.extractor import SchemaExtractor
from crudwizard.wizard_engine.generator import GeneratorService
from crudwizard.wizard_engine.models import Conflict, EntityManifest, TableSchema, WizardConfig
from crudwizard.wizard_engine.packager import ZipPackager
from crudwizard.wizard_engine.results import (
    ConflictResolutionResult,
    GenerationResult,
    GenerationSummary,
    ValidationResult,
    WizardInitializationResult,
)
from crudwizard.wizard_engine.sources.base import ManifestSource, Packager, SchemaSource
from crudwizard.wizard_engine.store import ConfigurationStore, FileKeyValueStore
from crudwizard.wizard_engine.templates import Jinja2TemplateRenderer

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Drives the wizard flow for one entity at a time:
    Initialize -> Detect Conflicts -> Resolve -> Validate -> Generate -> Package.

    Schema and manifest are fetched fresh for every operation. Collaborator
    failures are logged and reported in the returned result objects.
    """
    def __init__(
        self,
        schema_source: SchemaSource,
        manifest_source: ManifestSource,
        generator: GeneratorService,
        store: ConfigurationStore,
        packager: Optional[Packager] = None,
        default_connection_ref: Optional[str] = None,
        package_path: str = "GeneratedCode",
        include_key_checks: bool = False,
    ):
        self.schema_source = schema_source
        self.manifest_source = manifest_source
        self.generator = generator
        self.store = store
        self.packager = packager or ZipPackager()
        self.default_connection_ref = default_connection_ref
        self.package_path = package_path

        self.detector = ConflictDetector(include_key_checks=include_key_checks)
        self.synthesizer = DefaultConfigSynthesizer()

    # --- Sources ---

    def load_schema(self, entity_id: str) -> TableSchema:
        """
        Reads the table behind an entity, as located by its manifest.

        Raises:
            SourceUnavailableError: The schema source could not deliver the table.
        """
        manifest = self.manifest_source.get_entity_manifest(entity_id)
        return self._read_schema(manifest)

    def _read_schema(self, manifest: EntityManifest) -> TableSchema:
        schema_name, table_name = manifest.resolve_table()
        connection_ref = manifest.connection_string or self.default_connection_ref
        schema = self.schema_source.read_table_schema(connection_ref, schema_name, table_name)
        logger.info("Schema loaded for %s (%d columns).", manifest.entity_id, len(schema.columns))
        return schema

    def _read_sources(self, entity_id: str) -> Tuple[EntityManifest, TableSchema]:
        manifest = self.manifest_source.get_entity_manifest(entity_id)
        if manifest.is_fallback:
            logger.warning("Using fallback manifest for %s.", entity_id)
        return manifest, self._read_schema(manifest)

    def _unresolved(self, conflicts: List[Conflict], resolutions: Mapping[str, ConflictResolution]) -> List[Conflict]:
        return [c for c in conflicts if c.key not in resolutions]

    # --- Flow operations ---

    def initialize(self, entity_id: str) -> WizardInitializationResult:
        logger.info("Initializing wizard for entity: %s", entity_id)
        result = WizardInitializationResult()

        try:
            manifest, schema = self._read_sources(entity_id)
            result.manifest = manifest
            result.table_schema = schema
            result.suggested_config = self.synthesizer.synthesize(schema, manifest)
            result.is_successful = True
            logger.info("Wizard initialized for %s.", entity_id)
        except WizardError as e:
            logger.exception("Error initializing wizard for %s", entity_id)
            result.errors.append(f"Error initializing wizard: {e}")

        return result

    def detect_conflicts(self, entity_id: str) -> ValidationResult:
        """
        Compares the entity's table with its manifest.

        The conflicts are listed in the result; `is_valid` is true only when
        there are none and both sources were readable.
        """
        logger.info("Detecting conflicts for entity: %s", entity_id)
        result = ValidationResult()

        try:
            manifest, schema = self._read_sources(entity_id)
        except WizardError as e:
            logger.exception("Error detecting conflicts for %s", entity_id)
            result.add_error(f"Error detecting conflicts: {e}")
            return result

        for conflict in self.detector.detect(schema, manifest):
            result.add_conflict(conflict)
        if manifest.is_fallback:
            result.add_warning("The manifest service was unavailable; a fallback manifest was used.")

        logger.info("Detected %d conflicts for %s", len(result.conflicts), entity_id)
        return result

    def resolve_conflicts(self, entity_id: str, resolutions: Mapping[str, ConflictResolution]) -> ConflictResolutionResult:
        """
        Checks the operator's decisions against the conflicts detected now.

        Every conflict whose key has no decision is reported as unresolved and
        makes the result unsuccessful.
        """
        logger.info("Resolving %d conflicts for %s", len(resolutions), entity_id)
        result = ConflictResolutionResult()

        try:
            manifest, schema = self._read_sources(entity_id)
        except WizardError as e:
            logger.exception("Error resolving conflicts for %s", entity_id)
            result.is_successful = False
            result.errors.append(f"Error resolving conflicts: {e}")
            return result

        conflicts = self.detector.detect(schema, manifest)
        for conflict in conflicts:
            if conflict.key in resolutions:
                logger.info("Conflict %s resolved with %s", conflict.key, resolutions[conflict.key].value)
            else:
                result.unresolved_conflicts.append(conflict)
                result.warnings.append(f"Unresolved conflict: {conflict.description}")

        known_keys = {c.key for c in conflicts}
        for key in resolutions:
            if key not in known_keys:
                result.warnings.append(f"Resolution '{key}' does not match any current conflict.")

        result.is_successful = not result.unresolved_conflicts
        logger.info("Conflict resolution finished. Unresolved: %d", len(result.unresolved_conflicts))
        return result

    def validate_configuration(self, config: WizardConfig) -> ValidationResult:
        logger.info("Validating configuration for entity: %s", config.entity_id)
        result = ValidationResult()

        errors = config.validate_model()
        if errors:
            for error in errors:
                result.add_error(error)
            return result

        try:
            schema = self.load_schema(config.entity_id)
        except WizardError as e:
            logger.exception("Error validating configuration for %s", config.entity_id)
            result.add_error(f"Error validating configuration: {e}")
            return result

        if not schema.columns:
            result.add_error(f"Schema for '{config.entity_id}' has no columns.")
            return result

        for grid_field in config.grid_layout.fields:
            if schema.get_column(grid_field.field_name) is None:
                result.add_warning(f"Grid field '{grid_field.field_name}' not found in the schema.")
        for form_field in config.form_layout.fields:
            if schema.get_column(form_field.field_name) is None:
                result.add_warning(f"Form field '{form_field.field_name}' not found in the schema.")

        logger.info("Configuration for %s validated with %d warnings.", config.entity_id, len(result.warnings))
        return result

    def generate_code(self, config: WizardConfig) -> GenerationResult:
        """
        Validates the configuration and generates the entity's files.

        Conflicts without a recorded resolution do not stop generation, but
        they make the result unsuccessful and are listed in its warnings and
        in metadata['unresolved_conflicts'].
        """
        logger.info("Starting code generation for %s", config.entity_id)
        started = time.perf_counter()

        validation = self.validate_configuration(config)
        if not validation.is_valid:
            return GenerationResult(
                config_id=config.config_id,
                entity_id=config.entity_id,
                status=GenerationStatus.ERROR,
                errors=list(validation.errors),
                is_successful=False,
            )

        try:
            manifest, schema = self._read_sources(config.entity_id)
        except WizardError as e:
            logger.exception("Error generating code for %s", config.entity_id)
            result = GenerationResult(config_id=config.config_id, entity_id=config.entity_id)
            result.add_error(f"Error generating code: {e}")
            return result

        stamped = config.model_copy(deep=True)
        stamped.config_hash = compute_config_hash(stamped)
        result = self.generator.generate(stamped, schema, manifest)

        for warning in validation.warnings:
            result.add_warning(warning)

        unresolved = self._unresolved(self.detector.detect(schema, manifest), config.conflict_resolutions)
        if unresolved:
            for conflict in unresolved:
                result.add_warning(f"Unresolved conflict: {conflict.description}")
            result.metadata["unresolved_conflicts"] = [c.model_dump(mode="json") for c in unresolved]
            result.is_successful = False

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info("Generation finished in %dms for %s", result.duration_ms, config.entity_id)
        return result

    def package(self, result: GenerationResult) -> GenerationResult:
        """Bundles the generated files into an archive and records its path."""
        if not result.files:
            result.add_warning("Nothing to package.")
            return result

        try:
            result.output_zip_path = self.packager.create_archive(result.entity_id, result.files, self.package_path)
        except OSError as e:
            logger.exception("Error packaging files for %s", result.entity_id)
            result.add_error(f"Error creating package: {e}")
        return result

    # --- Persistence ---

    def save_configuration(self, config: WizardConfig) -> str:
        return self.store.save(config)

    def load_configuration(self, config_id: str) -> WizardConfig:
        """
        Raises:
            NotFoundError: No configuration was saved under the id.
            ConfigDeserializationError: The stored record is unreadable.
        """
        return self.store.load(config_id)

    def get_history(self, entity_id: str) -> List[GenerationSummary]:
        return self.store.history(entity_id)


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Wires the SQLAlchemy, HTTP, Jinja2 and file-store collaborators from settings."""
    renderer = Jinja2TemplateRenderer(settings.templates_path)
    return Orchestrator(
        schema_source=SchemaExtractor(SqlConnector(settings)),
        manifest_source=ManifestConnector(settings),
        generator=GeneratorService(renderer, settings.output_path),
        store=ConfigurationStore(FileKeyValueStore(settings.config_storage_path)),
        packager=ZipPackager(),
        package_path=settings.output_path,
    )
