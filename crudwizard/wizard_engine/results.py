# crudwizard/wizard_engine/results.py

import uuid
from datetime import datetime
from typing import List, Dict, Any, Optional

from pydantic import BaseModel, Field

from crudwizard.wizard_engine.enums import GenerationStatus
from crudwizard.wizard_engine.models import (
    Conflict,
    EntityManifest,
    TableSchema,
    WizardConfig,
    utcnow,
)


class ValidationResult(BaseModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    conflicts: List[Conflict] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_conflict(self, conflict: Conflict) -> None:
        self.conflicts.append(conflict)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


class ConflictResolutionResult(BaseModel):
    is_successful: bool = True
    unresolved_conflicts: List[Conflict] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class WizardInitializationResult(BaseModel):
    is_successful: bool = False
    manifest: Optional[EntityManifest] = None
    table_schema: Optional[TableSchema] = None
    suggested_config: Optional[WizardConfig] = None
    errors: List[str] = Field(default_factory=list)


class GeneratedFile(BaseModel):
    """One output file of a generation run."""
    relative_path: str = ""
    file_path: str = ""
    file_name: str = ""
    file_type: str = ""
    content: str = ""
    file_hash: Optional[str] = None
    # False for the customizable stubs that regeneration must not clobber.
    is_generated: bool = True
    description: str = ""

    @property
    def content_length(self) -> int:
        return len(self.content.encode("utf-8"))

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if not self.relative_path.strip():
            errors.append("Relative path must not be empty.")
        if not self.file_name.strip():
            errors.append("File name must not be empty.")
        if not self.file_type.strip():
            errors.append("File type must not be empty.")
        if not self.content.strip():
            errors.append(f"Content of '{self.file_name}' must not be empty.")
        return errors


class GenerationResult(BaseModel):
    generation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    config_id: str = ""
    entity_id: str = ""
    status: GenerationStatus = GenerationStatus.SUCCESS
    generated_at: datetime = Field(default_factory=utcnow)
    duration_ms: int = 0
    files: List[GeneratedFile] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    generation_hash: Optional[str] = None
    output_zip_path: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_successful: bool = True

    @property
    def total_file_size(self) -> int:
        return sum(f.content_length for f in self.files)

    def get_files_by_type(self, file_type: str) -> List[GeneratedFile]:
        return [f for f in self.files if f.file_type == file_type]

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
        if self.status == GenerationStatus.SUCCESS:
            self.status = GenerationStatus.WARNING

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.status = GenerationStatus.ERROR
        self.is_successful = False

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if not self.config_id.strip():
            errors.append("Config id must not be empty.")
        if not self.entity_id.strip():
            errors.append("Entity id must not be empty.")
        if not self.files:
            errors.append("No file was generated.")
        for generated_file in self.files:
            errors.extend(generated_file.validate_model())
        return errors


class GenerationSummary(BaseModel):
    """One line of an entity's history: a saved configuration and when it was written."""
    config_id: str = ""
    entity_id: str = ""
    config_hash: Optional[str] = None
    generated_at: datetime = Field(default_factory=utcnow)


class GenerationStatistics(BaseModel):
    total_files: int = 0
    csharp_files: int = 0
    razor_files: int = 0
    javascript_files: int = 0
    css_files: int = 0
    total_size: int = 0
    total_lines: int = 0


class CodeError(BaseModel):
    file: str = ""
    message: str = ""
    line: Optional[int] = None
    column: Optional[int] = None


class StyleIssue(BaseModel):
    file: str = ""
    description: str = ""
    severity: str = "Info"


class CodeValidationResult(BaseModel):
    is_valid: bool = True
    compilation_errors: List[CodeError] = Field(default_factory=list)
    style_issues: List[StyleIssue] = Field(default_factory=list)


class TemplateValidationResult(BaseModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
