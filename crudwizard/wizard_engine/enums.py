# crudwizard/wizard_engine/enums.py

from enum import Enum


class SqlDataType(str, Enum):
    """Semantic SQL type a native column type resolves to."""
    # Numeric
    BIG_INT = "bigint"
    INT = "int"
    SMALL_INT = "smallint"
    TINY_INT = "tinyint"
    DECIMAL = "decimal"
    NUMERIC = "numeric"
    FLOAT = "float"
    REAL = "real"

    # String
    CHAR = "char"
    VAR_CHAR = "varchar"
    N_CHAR = "nchar"
    N_VAR_CHAR = "nvarchar"
    TEXT = "text"
    N_TEXT = "ntext"

    # Date/time
    DATE_TIME = "datetime"
    DATE_TIME2 = "datetime2"
    SMALL_DATE_TIME = "smalldatetime"
    DATE = "date"
    TIME = "time"
    DATE_TIME_OFFSET = "datetimeoffset"

    # Binary
    BINARY = "binary"
    VAR_BINARY = "varbinary"
    IMAGE = "image"

    # Other
    BIT = "bit"
    UNIQUE_IDENTIFIER = "uniqueidentifier"
    XML = "xml"
    JSON = "json"

    UNKNOWN = "unknown"


class ConflictType(str, Enum):
    FIELD_NOT_IN_DATABASE = "field_not_in_database"
    FIELD_NOT_IN_MANIFEST = "field_not_in_manifest"
    TYPE_MISMATCH = "type_mismatch"
    NULLABILITY_MISMATCH = "nullability_mismatch"
    PRIMARY_KEY_MISMATCH = "primary_key_mismatch"
    FOREIGN_KEY_MISMATCH = "foreign_key_mismatch"


class ConflictResolution(str, Enum):
    USE_DATABASE = "use_database"
    USE_MANIFEST = "use_manifest"
    IGNORE = "ignore"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"


class FormInputType(str, Enum):
    TEXT = "text"
    TEXT_AREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    PASSWORD = "password"
    DATE = "date"
    DATE_TIME = "datetime"
    TIME = "time"
    SELECT = "select"
    MULTI_SELECT = "multiselect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"
    HIDDEN = "hidden"
    COLOR = "color"
    TEL = "tel"
    URL = "url"
    SEARCH = "search"
    RANGE = "range"


class GenerationStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
