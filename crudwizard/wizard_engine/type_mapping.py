# crudwizard/wizard_engine/type_mapping.py

import re
from typing import Dict, Optional, Tuple

from crudwizard.wizard_engine.enums import FormInputType, SqlDataType

# Native type name (lower-case, without length/precision) -> semantic type.
# The extra aliases cover the generic names SQLAlchemy reports for dialects
# other than SQL Server.
NATIVE_TYPES: Dict[str, SqlDataType] = {
    "bigint": SqlDataType.BIG_INT,
    "int": SqlDataType.INT,
    "integer": SqlDataType.INT,
    "smallint": SqlDataType.SMALL_INT,
    "tinyint": SqlDataType.TINY_INT,
    "decimal": SqlDataType.DECIMAL,
    "numeric": SqlDataType.NUMERIC,
    "money": SqlDataType.DECIMAL,
    "float": SqlDataType.FLOAT,
    "double": SqlDataType.FLOAT,
    "real": SqlDataType.REAL,
    "char": SqlDataType.CHAR,
    "varchar": SqlDataType.VAR_CHAR,
    "nchar": SqlDataType.N_CHAR,
    "nvarchar": SqlDataType.N_VAR_CHAR,
    "text": SqlDataType.TEXT,
    "ntext": SqlDataType.N_TEXT,
    "datetime": SqlDataType.DATE_TIME,
    "datetime2": SqlDataType.DATE_TIME2,
    "timestamp": SqlDataType.DATE_TIME2,
    "smalldatetime": SqlDataType.SMALL_DATE_TIME,
    "date": SqlDataType.DATE,
    "time": SqlDataType.TIME,
    "datetimeoffset": SqlDataType.DATE_TIME_OFFSET,
    "binary": SqlDataType.BINARY,
    "varbinary": SqlDataType.VAR_BINARY,
    "image": SqlDataType.IMAGE,
    "blob": SqlDataType.VAR_BINARY,
    "bit": SqlDataType.BIT,
    "boolean": SqlDataType.BIT,
    "uniqueidentifier": SqlDataType.UNIQUE_IDENTIFIER,
    "uuid": SqlDataType.UNIQUE_IDENTIFIER,
    "xml": SqlDataType.XML,
    "json": SqlDataType.JSON,
}

# Semantic type -> (target type simple name, is value type).
TARGET_TYPES: Dict[SqlDataType, Tuple[str, bool]] = {
    SqlDataType.BIG_INT: ("Int64", True),
    SqlDataType.INT: ("Int32", True),
    SqlDataType.SMALL_INT: ("Int16", True),
    SqlDataType.TINY_INT: ("Byte", True),
    SqlDataType.DECIMAL: ("Decimal", True),
    SqlDataType.NUMERIC: ("Decimal", True),
    SqlDataType.FLOAT: ("Double", True),
    SqlDataType.REAL: ("Single", True),
    SqlDataType.CHAR: ("String", False),
    SqlDataType.VAR_CHAR: ("String", False),
    SqlDataType.N_CHAR: ("String", False),
    SqlDataType.N_VAR_CHAR: ("String", False),
    SqlDataType.TEXT: ("String", False),
    SqlDataType.N_TEXT: ("String", False),
    SqlDataType.DATE_TIME: ("DateTime", True),
    SqlDataType.DATE_TIME2: ("DateTime", True),
    SqlDataType.SMALL_DATE_TIME: ("DateTime", True),
    SqlDataType.DATE: ("DateTime", True),
    SqlDataType.TIME: ("TimeSpan", True),
    SqlDataType.DATE_TIME_OFFSET: ("DateTimeOffset", True),
    SqlDataType.BINARY: ("Byte[]", False),
    SqlDataType.VAR_BINARY: ("Byte[]", False),
    SqlDataType.IMAGE: ("Byte[]", False),
    SqlDataType.BIT: ("Boolean", True),
    SqlDataType.UNIQUE_IDENTIFIER: ("Guid", True),
    SqlDataType.XML: ("String", False),
    SqlDataType.JSON: ("String", False),
    SqlDataType.UNKNOWN: ("Object", False),
}

UNKNOWN_TARGET_TYPE = "Object"

VALUE_TYPES = frozenset(name for name, is_value in TARGET_TYPES.values() if is_value)

# Target type -> suggested form widget. Anything absent falls back to text.
INPUT_TYPES: Dict[str, FormInputType] = {
    "Int32": FormInputType.NUMBER,
    "Int64": FormInputType.NUMBER,
    "Int16": FormInputType.NUMBER,
    "Byte": FormInputType.NUMBER,
    "Decimal": FormInputType.NUMBER,
    "Double": FormInputType.NUMBER,
    "Single": FormInputType.NUMBER,
    "Boolean": FormInputType.CHECKBOX,
    "DateTime": FormInputType.DATE_TIME,
    "DateTimeOffset": FormInputType.DATE_TIME,
    "TimeSpan": FormInputType.TIME,
    "Guid": FormInputType.TEXT,
    "Byte[]": FormInputType.FILE,
}

_TYPE_ARGS_RE = re.compile(r"\(.*$")


def normalize_native_type(native_type: str) -> str:
    """
    Reduces a native type string to its bare lower-case name.

    "NVARCHAR(100) COLLATE Latin1_General" -> "nvarchar"
    "DOUBLE PRECISION" -> "double"
    """
    name = _TYPE_ARGS_RE.sub("", (native_type or "").strip()).strip().lower()
    return name.split(" ", 1)[0] if name else ""


def map_sql_data_type(native_type: str) -> SqlDataType:
    return NATIVE_TYPES.get(normalize_native_type(native_type), SqlDataType.UNKNOWN)


def map_target_type(native_type: str) -> str:
    return TARGET_TYPES[map_sql_data_type(native_type)][0]


def is_value_type(target_type: str) -> bool:
    return target_type in VALUE_TYPES


def strip_nullable(target_type: Optional[str]) -> str:
    """'Int32?' -> 'Int32'. Empty/None yields the unknown type."""
    if not target_type:
        return UNKNOWN_TARGET_TYPE
    return target_type[:-1] if target_type.endswith("?") else target_type


def map_input_type(target_type: Optional[str]) -> FormInputType:
    if not target_type:
        return FormInputType.TEXT
    return INPUT_TYPES.get(strip_nullable(target_type), FormInputType.TEXT)
