"""Public interface for the sql_column_lineage package."""

from __future__ import annotations

from sql_column_lineage.analyzer import analyze, to_json
from sql_column_lineage.config import LineageOptions
from sql_column_lineage.errors import (
    LineageError,
    RecursionDepthExceededError,
    SchemaError,
    UnsupportedStatementError,
    UnsupportedTransformationError,
)
from sql_column_lineage.models import (
    FieldLineage,
    InputField,
    Schema,
    Table,
    Transformation,
    TransformationSubtype,
    TransformationType,
    make_schema,
)
from sql_column_lineage.parser import parse_select
from sql_column_lineage.resolver import get_column_lineage, get_lineage
from sql_column_lineage.transformations import (
    DIRECT_AGGREGATION,
    DIRECT_IDENTITY,
    DIRECT_TRANSFORMATION,
    TransformationSet,
    merge_transformations,
)

__all__ = [
    "DIRECT_AGGREGATION",
    "DIRECT_IDENTITY",
    "DIRECT_TRANSFORMATION",
    "FieldLineage",
    "InputField",
    "LineageError",
    "LineageOptions",
    "RecursionDepthExceededError",
    "Schema",
    "SchemaError",
    "Table",
    "Transformation",
    "TransformationSet",
    "TransformationSubtype",
    "TransformationType",
    "UnsupportedStatementError",
    "UnsupportedTransformationError",
    "analyze",
    "get_column_lineage",
    "get_lineage",
    "make_schema",
    "merge_transformations",
    "parse_select",
    "to_json",
]
