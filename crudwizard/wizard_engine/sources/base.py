# crudwizard/wizard_engine/sources/base.py

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from crudwizard.wizard_engine.models import EntityManifest, TableSchema
from crudwizard.wizard_engine.results import GeneratedFile, TemplateValidationResult


class SchemaSource(ABC):
    """
    Authoritative provider of a table's real structure.
    Failures are not masked: there is no safe default for a table.
    """
    @abstractmethod
    def read_table_schema(self, connection_ref: Optional[str], schema_name: str, table_name: str) -> TableSchema:
        """
        Returns a fully populated TableSchema.

        Raises:
            SourceUnavailableError: The database cannot be reached or the
                table does not exist.
        """
        pass

    @abstractmethod
    def read_all_tables(self, connection_ref: Optional[str], schema_name: str) -> List[TableSchema]:
        pass

    @abstractmethod
    def test_connection(self, connection_ref: Optional[str]) -> bool:
        pass


class ManifestSource(ABC):
    """
    Provider of entity business metadata.

    get_entity_manifest never returns None; when the service cannot be used
    a synthesized stand-in is returned instead.
    """
    @property
    @abstractmethod
    def base_url(self) -> str:
        pass

    @abstractmethod
    def get_entity_manifest(self, entity_id: str) -> EntityManifest:
        pass

    @abstractmethod
    def get_all_manifests(self) -> List[EntityManifest]:
        pass

    @abstractmethod
    def get_manifests_by_module(self, module: str) -> List[EntityManifest]:
        pass

    @abstractmethod
    def has_permission(self, entity_id: str, permission_type: str) -> bool:
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        pass


class TemplateRenderer(ABC):
    @abstractmethod
    def render(self, template_text: str, context: Mapping[str, Any]) -> str:
        """Raises TemplateSyntaxError when the template is malformed."""
        pass

    @abstractmethod
    def render_file(self, template_name: str, context: Mapping[str, Any]) -> str:
        pass

    @abstractmethod
    def available_templates(self) -> List[str]:
        pass

    @abstractmethod
    def validate_template(self, template_text: str) -> TemplateValidationResult:
        pass


class Packager(ABC):
    @abstractmethod
    def create_archive(self, entity_id: str, files: Sequence[GeneratedFile], output_dir: str) -> str:
        """Bundles the files and returns the archive path."""
        pass
