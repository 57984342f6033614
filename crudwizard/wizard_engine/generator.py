# crudwizard/wizard_engine/generator.py

import hashlib
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, NamedTuple

from jinja2 import TemplateError

from crudwizard.wizard_engine.models import EntityManifest, TableSchema, WizardConfig, utcnow
from crudwizard.wizard_engine.results import (
    CodeError,
    CodeValidationResult,
    GeneratedFile,
    GenerationResult,
    GenerationStatistics,
    StyleIssue,
)
from crudwizard.wizard_engine.sources.base import TemplateRenderer
from crudwizard.wizard_engine.templates import TEMPLATE_SUFFIX

logger = logging.getLogger(__name__)

# Namespace root of the generated C# code.
DEFAULT_NAMESPACE = "GeneratedCode"

# Header column cap in the generated grid.
MAX_GRID_COLUMNS = 5

CSHARP_FILE_TYPES = ("Controller", "ViewModel")


class OutputFile(NamedTuple):
    template: str
    file_name: str
    file_type: str
    is_generated: bool
    description: str


def _output_files(entity_id: str) -> List[OutputFile]:
    slug = entity_id.lower()
    return [
        OutputFile("Controller.cs", f"{entity_id}Controller.generated.cs", "Controller", True, "API controller"),
        OutputFile("ViewModel.cs", f"{entity_id}ViewModel.generated.cs", "ViewModel", True, "View model"),
        OutputFile("Index.cshtml", "Index.generated.cshtml", "View", True, "Razor view"),
        OutputFile("script.js", f"{slug}.generated.js", "JavaScript", True, "Grid and form script"),
        OutputFile("style.css", f"{slug}.generated.css", "CSS", True, "Stylesheet"),
        OutputFile("Controller.custom.cs", f"{entity_id}Controller.custom.cs", "Controller", False, "Controller extensions"),
        OutputFile("ViewModel.custom.cs", f"{entity_id}ViewModel.custom.cs", "ViewModel", False, "View model extensions"),
        OutputFile("script.custom.js", f"{slug}.custom.js", "JavaScript", False, "Script extensions"),
    ]


def hash_content(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest().upper()


class GeneratorService:
    """
    Turns a configuration, a table schema and a manifest into the files of a
    CRUD interface, written under '<output_path>/<entity_id>/'.
    """
    def __init__(self, renderer: TemplateRenderer, output_path: str, namespace: str = DEFAULT_NAMESPACE):
        self.renderer = renderer
        self.output_path = Path(output_path)
        self.namespace = namespace

    def _build_context(self, config: WizardConfig, schema: TableSchema, manifest: EntityManifest) -> Dict[str, Any]:
        entity_slug = config.entity_id.lower()
        pk_column = schema.get_primary_key_column()
        grid_fields = sorted(
            (f for f in config.grid_layout.fields if f.is_visible),
            key=lambda f: f.order,
        )[:MAX_GRID_COLUMNS]

        return {
            "config": config,
            "entity": manifest,
            "schema": schema,
            "now": utcnow().isoformat(),
            "namespace": self.namespace,
            "entity_slug": entity_slug,
            "base_route": manifest.routes.base_route() or f"/api/{entity_slug}",
            "key_type": pk_column.target_type if pk_column else "Int32",
            "columns": sorted((c for c in schema.columns if not c.is_computed), key=lambda c: c.ordinal_position),
            "grid_fields": grid_fields,
            "form_fields": sorted(config.form_layout.fields, key=lambda f: f.order),
        }

    def generate(self, config: WizardConfig, schema: TableSchema, manifest: EntityManifest) -> GenerationResult:
        """
        Renders and writes every output file.

        A file that fails to render or write is recorded as an error and the
        remaining files are still produced.
        """
        logger.info("Starting generation for %s", config.entity_id)
        started = time.perf_counter()
        result = GenerationResult(config_id=config.config_id, entity_id=config.entity_id)

        entity_path = self.output_path / config.entity_id
        try:
            entity_path.mkdir(parents=True, exist_ok=True)
            for stale in entity_path.glob("*.generated.*"):
                stale.unlink()
        except OSError as e:
            logger.error("Could not prepare output directory %s: %s", entity_path, e)
            result.add_error(f"Could not prepare output directory: {e}")
            return result

        context = self._build_context(config, schema, manifest)

        for output in _output_files(config.entity_id):
            file_path = entity_path / output.file_name
            try:
                if not output.is_generated and file_path.exists():
                    # Customizable stubs are created once and then belong to the user.
                    logger.info("Keeping existing %s", output.file_name)
                    content = file_path.read_text(encoding="utf-8")
                else:
                    logger.info("Generating %s for %s", output.file_name, config.entity_id)
                    content = self.renderer.render_file(f"{output.template}.{TEMPLATE_SUFFIX}", context)
                    file_path.write_text(content, encoding="utf-8")
            except (TemplateError, OSError) as e:
                logger.error("Error generating %s for %s: %s", output.file_name, config.entity_id, e)
                result.add_error(f"Error generating {output.file_name}: {e}")
                continue

            result.files.append(GeneratedFile(
                relative_path=f"{config.entity_id}/{output.file_name}",
                file_path=str(file_path),
                file_name=output.file_name,
                file_type=output.file_type,
                content=content,
                file_hash=hash_content(content),
                is_generated=output.is_generated,
                description=output.description,
            ))

        result.generation_hash = hash_content("".join(f.file_hash for f in result.files))
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        result.metadata.update({
            "table": schema.fully_qualified_name,
            "config_hash": config.config_hash,
            "output_path": str(entity_path),
        })

        logger.info(
            "Generation finished for %s: %d files, %d errors.",
            config.entity_id, len(result.files), len(result.errors),
        )
        return result

    def validate_generated_code(self, result: GenerationResult) -> CodeValidationResult:
        """Light structural checks on generated files; nothing is compiled."""
        validation = CodeValidationResult()

        for generated_file in result.files:
            if not generated_file.content.strip():
                validation.is_valid = False
                validation.compilation_errors.append(CodeError(file=generated_file.file_name, message="Empty file"))
                continue

            if generated_file.file_type in CSHARP_FILE_TYPES:
                self._check_csharp(generated_file, validation)
            elif generated_file.file_type == "View":
                self._check_view(generated_file, validation)
            elif generated_file.file_type == "JavaScript":
                self._check_script(generated_file, validation)

        logger.info("Validation of %s finished. Valid: %s", result.entity_id, validation.is_valid)
        return validation

    @staticmethod
    def _check_csharp(generated_file: GeneratedFile, validation: CodeValidationResult) -> None:
        content = generated_file.content
        if "namespace" not in content:
            validation.is_valid = False
            validation.compilation_errors.append(CodeError(file=generated_file.file_name, message="Namespace not found"))
        if "public class" not in content and "public partial class" not in content:
            validation.is_valid = False
            validation.compilation_errors.append(CodeError(file=generated_file.file_name, message="Public class not found"))

    @staticmethod
    def _check_view(generated_file: GeneratedFile, validation: CodeValidationResult) -> None:
        if "<" not in generated_file.content or ">" not in generated_file.content:
            validation.style_issues.append(StyleIssue(
                file=generated_file.file_name,
                description="File contains no HTML tags",
            ))

    @staticmethod
    def _check_script(generated_file: GeneratedFile, validation: CodeValidationResult) -> None:
        opening = generated_file.content.count("{")
        closing = generated_file.content.count("}")
        if opening != closing:
            validation.style_issues.append(StyleIssue(
                file=generated_file.file_name,
                description=f"Unbalanced braces: {opening} '{{' vs {closing} '}}'",
                severity="Warning",
            ))

    def get_statistics(self, result: GenerationResult) -> GenerationStatistics:
        files = result.files
        return GenerationStatistics(
            total_files=len(files),
            csharp_files=sum(1 for f in files if f.file_type in CSHARP_FILE_TYPES),
            razor_files=sum(1 for f in files if f.file_type == "View"),
            javascript_files=sum(1 for f in files if f.file_type == "JavaScript"),
            css_files=sum(1 for f in files if f.file_type == "CSS"),
            total_size=result.total_file_size,
            total_lines=sum(len(f.content.split("\n")) for f in files),
        )
