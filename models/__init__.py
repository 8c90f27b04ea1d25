"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    CamelSchema,
)
from models.import_fields import (
    FieldKey,
    SemanticField,
    SEMANTIC_FIELDS,
    get_field,
    required_fields,
)
from models.import_rows import (
    CellKind,
    CellValue,
    RawRow,
    TabularData,
    MappedRow,
)
from models.import_report import (
    RowType,
    ImportGroupKey,
    ImportGroupResponse,
    SkippedRow,
    ImportReport,
    ImportCommitRequest,
    ImportCommitResponse,
)
from models.wizard import (
    WizardState,
    WizardSnapshot,
    StartSessionRequest,
    ColumnMappingUpdate,
    CellEditRequest,
    ImportDoneResponse,
)
from models.line_item import (
    LineItemCreate,
    LineItemUpdate,
    LineItemResponse,
    LineItemCreatedResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "CamelSchema",

    # Semantic fields
    "FieldKey",
    "SemanticField",
    "SEMANTIC_FIELDS",
    "get_field",
    "required_fields",

    # Rows
    "CellKind",
    "CellValue",
    "RawRow",
    "TabularData",
    "MappedRow",

    # Groups and reports
    "RowType",
    "ImportGroupKey",
    "ImportGroupResponse",
    "SkippedRow",
    "ImportReport",
    "ImportCommitRequest",
    "ImportCommitResponse",

    # Wizard
    "WizardState",
    "WizardSnapshot",
    "StartSessionRequest",
    "ColumnMappingUpdate",
    "CellEditRequest",
    "ImportDoneResponse",

    # Line items
    "LineItemCreate",
    "LineItemUpdate",
    "LineItemResponse",
    "LineItemCreatedResponse",
]
