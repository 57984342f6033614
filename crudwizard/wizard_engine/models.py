# crudwizard/wizard_engine/models.py

import hashlib
import json
import uuid
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from crudwizard.wizard_engine.enums import (
    ConflictResolution,
    ConflictType,
    FormInputType,
    SqlDataType,
)
from crudwizard.wizard_engine.type_mapping import (
    UNKNOWN_TARGET_TYPE,
    TARGET_TYPES,
    is_value_type,
    map_sql_data_type,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# --- Schema Model ---

class ColumnSchema(BaseModel):
    """Represents the schema of a single database column."""
    name: str
    data_type: str
    sql_data_type: Optional[SqlDataType] = None
    target_type: Optional[str] = None
    is_nullable: bool = False
    is_identity: bool = False
    is_computed: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Optional[str] = None
    description: str = ""
    extended_properties: Dict[str, str] = Field(default_factory=dict)
    ordinal_position: int = 0

    @model_validator(mode="after")
    def _resolve_types(self) -> "ColumnSchema":
        # Types are derived from the native name unless given explicitly.
        if self.sql_data_type is None:
            self.sql_data_type = map_sql_data_type(self.data_type)
        if self.target_type is None:
            self.target_type = TARGET_TYPES[self.sql_data_type][0]
        return self

    @classmethod
    def from_native(cls, name: str, data_type: str, **kwargs: Any) -> "ColumnSchema":
        """Builds a column whose semantic and target types come from the native type name."""
        sql_data_type = map_sql_data_type(data_type)
        return cls(
            name=name,
            data_type=data_type,
            sql_data_type=sql_data_type,
            target_type=TARGET_TYPES[sql_data_type][0],
            **kwargs,
        )

    @property
    def target_type_name(self) -> str:
        """Target type as it appears in generated code, e.g. 'Int32?'."""
        if not self.target_type:
            return UNKNOWN_TARGET_TYPE
        if self.is_nullable and is_value_type(self.target_type):
            return f"{self.target_type}?"
        return self.target_type

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if _is_blank(self.name):
            errors.append("Column name must not be empty.")
        if _is_blank(self.data_type):
            errors.append("Column data type must not be empty.")
        if _is_blank(self.target_type):
            errors.append(f"Target type was not mapped for '{self.data_type}'.")
        return errors


class PrimaryKeySchema(BaseModel):
    """Represents the primary key constraint of a table."""
    constraint_name: str = ""
    columns: List[str] = Field(default_factory=list)
    is_clustered: bool = True

    @property
    def single_column_name(self) -> Optional[str]:
        return self.columns[0] if len(self.columns) == 1 else None


class ForeignKeySchema(BaseModel):
    """Represents a single foreign key relationship."""
    constraint_name: str = ""
    column_names: List[str] = Field(default_factory=list)
    referenced_schema: str = "dbo"
    referenced_table: str = ""
    referenced_columns: List[str] = Field(default_factory=list)
    delete_action: Optional[str] = None
    update_action: Optional[str] = None

    @property
    def referenced_table_fully_qualified(self) -> str:
        return f"[{self.referenced_schema}].[{self.referenced_table}]"


class IndexSchema(BaseModel):
    index_name: str = ""
    column_names: List[str] = Field(default_factory=list)
    is_unique: bool = False
    is_clustered: bool = False
    is_primary_key: bool = False


class TableSchema(BaseModel):
    """Represents the complete schema of a single database table."""
    schema_name: str = "dbo"
    table_name: str
    description: str = ""
    columns: List[ColumnSchema] = Field(default_factory=list)
    primary_key: Optional[PrimaryKeySchema] = None
    foreign_keys: List[ForeignKeySchema] = Field(default_factory=list)
    indexes: List[IndexSchema] = Field(default_factory=list)
    extended_properties: Dict[str, str] = Field(default_factory=dict)
    read_at: datetime = Field(default_factory=utcnow)
    schema_hash: Optional[str] = None

    @property
    def fully_qualified_name(self) -> str:
        return f"[{self.schema_name}].[{self.table_name}]"

    def get_column(self, name: str) -> Optional[ColumnSchema]:
        """Case-insensitive column lookup."""
        wanted = name.lower()
        return next((c for c in self.columns if c.name.lower() == wanted), None)

    def get_primary_key_column(self) -> Optional[ColumnSchema]:
        if self.primary_key and self.primary_key.columns:
            first = self.primary_key.columns[0]
            return next((c for c in self.columns if c.name == first), None)
        return None

    def get_foreign_key_columns(self) -> List[ColumnSchema]:
        fk_column_names = {name for fk in self.foreign_keys for name in fk.column_names}
        return [c for c in self.columns if c.name in fk_column_names]

    def get_required_columns(self) -> List[ColumnSchema]:
        return [c for c in self.columns if not c.is_nullable and not c.is_identity and not c.is_computed]

    def compute_hash(self) -> str:
        """SHA-256 over the table structure; read time and stored hash are excluded."""
        content = self.model_dump(mode="json", exclude={"read_at", "schema_hash"})
        canonical = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest().upper()

    def validate_model(self) -> List[str]:
        errors: List[str] = []

        if _is_blank(self.schema_name):
            errors.append("Schema name must not be empty.")
        if _is_blank(self.table_name):
            errors.append("Table name must not be empty.")
        if not self.columns:
            errors.append("The table must have at least one column.")
        if self.primary_key is None or not self.primary_key.columns:
            errors.append("The table must declare a primary key.")

        column_names = {c.name for c in self.columns}
        if self.primary_key is not None:
            for pk_col in self.primary_key.columns:
                if pk_col not in column_names:
                    errors.append(f"Primary key column '{pk_col}' not found in table.")

        for fk in self.foreign_keys:
            for fk_col in fk.column_names:
                if fk_col not in column_names:
                    errors.append(f"Foreign key column '{fk_col}' not found in table.")

        return errors


# --- Manifest Model ---

class _ManifestModel(BaseModel):
    # The manifest API speaks camelCase JSON.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ManifestRoutes(_ManifestModel):
    list_: Optional[str] = Field(None, alias="list")
    get_by_id: Optional[str] = None
    create: Optional[str] = None
    update: Optional[str] = None
    delete: Optional[str] = None
    delete_batch: Optional[str] = None
    export: Optional[str] = None
    import_: Optional[str] = Field(None, alias="import")

    def base_route(self) -> Optional[str]:
        """'/api/training-types/list' -> '/api/training-types'."""
        route = self.list_ or self.get_by_id or self.create or self.update or self.delete
        if not route:
            return None
        return "/".join(route.split("/")[:-1])


class PermissionManifest(_ManifestModel):
    permission_type: str = ""
    is_enabled: bool = True
    description: str = ""
    allowed_roles: List[str] = Field(default_factory=list)


class ForeignKeyInfo(_ManifestModel):
    referenced_table: str = ""
    referenced_schema: str = "dbo"
    referenced_column: str = ""
    lookup_endpoint: Optional[str] = None
    lookup_value_field: str = "id"
    lookup_text_field: str = "nome"
    cascade_dependencies: List[str] = Field(default_factory=list)

    @property
    def referenced_table_fully_qualified(self) -> str:
        return f"[{self.referenced_schema}].[{self.referenced_table}]"


class FieldManifest(_ManifestModel):
    """One field as declared by the manifest service."""
    field_name: str = ""
    label: str = ""
    description: str = ""
    target_type: str = Field("", alias="clrType")
    is_primary_key: bool = False
    is_foreign_key: bool = False
    is_required: bool = False
    is_identity: bool = False
    is_computed: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Optional[str] = None
    suggested_input_type: FormInputType = FormInputType.TEXT
    foreign_key_info: Optional[ForeignKeyInfo] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if _is_blank(self.field_name):
            errors.append("Field name must not be empty.")
        if _is_blank(self.target_type):
            errors.append("Field type must not be empty.")
        if self.is_foreign_key and self.foreign_key_info is None:
            errors.append("Foreign key info is required for foreign key fields.")
        return errors


class EntityManifest(_ManifestModel):
    """Declared business metadata for one entity."""
    entity_id: str = ""
    entity_name: str = ""
    description: str = ""
    module: str = ""
    system_code: int = Field(0, alias="cdSistema")
    function_code: int = Field(0, alias="cdFuncao")
    database_schema: str = "dbo"
    table_name: str = ""
    connection_string: Optional[str] = None
    routes: ManifestRoutes = Field(default_factory=ManifestRoutes)
    permissions: List[PermissionManifest] = Field(default_factory=list)
    fields: List[FieldManifest] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    read_at: datetime = Field(default_factory=utcnow)
    # Set when the manifest service could not be used and a stand-in was built.
    is_fallback: bool = False

    def get_field(self, field_name: str) -> Optional[FieldManifest]:
        wanted = field_name.lower()
        return next((f for f in self.fields if f.field_name.lower() == wanted), None)

    def get_foreign_key_fields(self) -> List[FieldManifest]:
        return [f for f in self.fields if f.is_foreign_key]

    def get_required_fields(self) -> List[FieldManifest]:
        return [f for f in self.fields if f.is_required and not f.is_identity]

    def resolve_table(self) -> Tuple[str, str]:
        """Splits 'schema.table' table names; otherwise uses the declared schema."""
        if "." in self.table_name:
            schema_name, table_name = self.table_name.split(".", 1)
            return schema_name, table_name
        return self.database_schema or "dbo", self.table_name

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if _is_blank(self.entity_id):
            errors.append("Entity id must not be empty.")
        if _is_blank(self.entity_name):
            errors.append("Entity name must not be empty.")
        if _is_blank(self.table_name):
            errors.append("Table name must not be empty.")
        if self.system_code <= 0:
            errors.append("System code must be greater than zero.")
        if self.function_code <= 0:
            errors.append("Function code must be greater than zero.")
        if not self.fields:
            errors.append("The entity must have at least one field.")
        return errors


# --- Reconciliation ---

class Conflict(BaseModel):
    """A discrepancy between the table structure and the manifest for one field."""
    type: ConflictType
    field_name: str
    database_value: Optional[str] = None
    manifest_value: Optional[str] = None
    description: str = ""
    suggested_resolution: ConflictResolution = ConflictResolution.REQUIRES_MANUAL_REVIEW

    @property
    def key(self) -> str:
        """Key under which an operator's resolution is recorded."""
        return f"{self.field_name}_{self.type.value}"


# --- Configuration Model ---

class GridFieldConfig(BaseModel):
    field_name: str = ""
    label: str = ""
    width: str = "auto"
    order: int = 0
    is_visible: bool = True
    is_searchable: bool = True
    is_sortable: bool = True


class GridLayoutConfig(BaseModel):
    fields: List[GridFieldConfig] = Field(default_factory=list)
    page_size: int = 10
    server_side: bool = True
    has_search: bool = True
    has_filters: bool = True
    has_export: bool = True


class FormFieldConfig(BaseModel):
    field_name: str = ""
    label: str = ""
    order: int = 0
    is_required: bool = False
    is_read_only: bool = False
    input_type: FormInputType = FormInputType.TEXT
    placeholder: Optional[str] = None
    default_value: Optional[str] = None
    validations: List[str] = Field(default_factory=list)


class FormLayoutConfig(BaseModel):
    fields: List[FormFieldConfig] = Field(default_factory=list)
    columns: int = 2
    spacing: str = "normal"


class FormField(BaseModel):
    field: str = ""
    label: str = ""
    input_type: FormInputType = FormInputType.TEXT
    required: bool = False
    read_only: bool = False
    placeholder: Optional[str] = None
    default_value: Optional[str] = None
    validations: List[str] = Field(default_factory=list)

    def validate_model(self) -> List[str]:
        errors: List[str] = []
        if _is_blank(self.field):
            errors.append("Form field name must not be empty.")
        if _is_blank(self.label):
            errors.append(f"Label of form field '{self.field}' must not be empty.")
        return errors


class WizardConfig(BaseModel):
    """
    The operator's layout choices for one entity's generated interface.

    Persisted by the configuration store under a freshly generated id;
    `config_hash` identifies its content independently of id and timestamps.
    """
    config_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_id: str = ""
    entity_name: str = ""
    module: str = ""
    version: int = 1
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    grid_layout: GridLayoutConfig = Field(default_factory=GridLayoutConfig)
    form_layout: FormLayoutConfig = Field(default_factory=FormLayoutConfig)
    form_fields: List[FormField] = Field(default_factory=list)
    conflict_resolutions: Dict[str, ConflictResolution] = Field(default_factory=dict)
    config_hash: Optional[str] = None

    def get_field(self, field_name: str) -> Optional[FormField]:
        wanted = field_name.lower()
        return next((f for f in self.form_fields if f.field.lower() == wanted), None)

    def validate_model(self) -> List[str]:
        errors: List[str] = []

        if _is_blank(self.entity_id):
            errors.append("Entity id must not be empty.")
        if not self.grid_layout.fields:
            errors.append("Grid layout must have at least one field.")
        if not self.form_layout.fields:
            errors.append("Form layout must have at least one field.")
        if not self.form_fields:
            errors.append("There must be at least one form field.")

        form_field_names = {f.field for f in self.form_fields}
        for grid_field in self.grid_layout.fields:
            if grid_field.field_name not in form_field_names:
                errors.append(f"Grid field '{grid_field.field_name}' not found in form fields.")

        for form_field in self.form_fields:
            errors.extend(form_field.validate_model())

        return errors
