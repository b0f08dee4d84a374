"""Data models for SQL column lineage."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from sql_column_lineage.errors import SchemaError


class TransformationType(str, Enum):
    """How directly an input column feeds an output column."""

    DIRECT = "DIRECT"
    INDIRECT = "INDIRECT"


class TransformationSubtype(str, Enum):
    """Finer classification of a transformation."""

    IDENTITY = "IDENTITY"
    TRANSFORMATION = "TRANSFORMATION"
    AGGREGATION = "AGGREGATION"
    JOIN = "JOIN"
    GROUP_BY = "GROUP_BY"
    FILTER = "FILTER"
    SORT = "SORT"
    WINDOW = "WINDOW"
    CONDITION = "CONDITION"


@dataclass(frozen=True)
class ColumnRef:
    """Reference to a column with an optional table qualifier."""

    table: Optional[str]
    column: str

    def qualified_name(self) -> str:
        return f"{self.table}.{self.column}" if self.table else self.column


@dataclass(frozen=True)
class Transformation:
    """Classification of how an input column contributes to an output column."""

    type: TransformationType
    subtype: Optional[TransformationSubtype] = None
    masking: bool = False

    @property
    def key(self) -> str:
        """Return the deduplication key of the transformation."""

        subtype = self.subtype.value if self.subtype is not None else ""
        masked = "MASKED" if self.masking else "UNMASKED"
        return f"{self.type.value}-{subtype}-{masked}"

    def to_dict(self) -> Dict[str, object]:
        """Serialize the transformation to a dictionary."""

        data: Dict[str, object] = {"type": self.type.value}
        if self.subtype is not None:
            data["subtype"] = self.subtype.value
        data["masking"] = self.masking
        return data


@dataclass(frozen=True)
class Table:
    """Physical table declared in a schema."""

    name: str
    columns: Tuple[str, ...] = ()

    def has_column(self, column: str) -> bool:
        return column in self.columns

    def to_dict(self) -> Dict[str, object]:
        """Serialize the table to a dictionary."""

        return {"name": self.name, "columns": list(self.columns)}


@dataclass(frozen=True)
class Schema:
    """Tables available to a query, grouped under a namespace."""

    namespace: str
    tables: Tuple[Table, ...] = ()

    def __post_init__(self) -> None:
        seen = set()
        for table in self.tables:
            if table.name in seen:
                raise SchemaError(f"Duplicate table in schema: {table.name}")
            seen.add(table.name)

    def find_table(self, name: str) -> Optional[Table]:
        """Return the table declared under ``name``, if any."""

        for table in self.tables:
            if table.name == name:
                return table
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Schema":
        """Build a schema from a JSON-compatible mapping."""

        if not isinstance(data, Mapping):
            raise SchemaError("Schema definition must be a mapping")
        namespace = data.get("namespace")
        if not isinstance(namespace, str):
            raise SchemaError("Schema requires a string 'namespace'")
        tables: List[Table] = []
        for entry in data.get("tables", []) or []:
            if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
                raise SchemaError(f"Invalid table entry: {entry!r}")
            columns = entry.get("columns", []) or []
            tables.append(Table(name=entry["name"], columns=tuple(columns)))
        return cls(namespace=namespace, tables=tuple(tables))

    def to_dict(self) -> Dict[str, object]:
        """Serialize the schema to a dictionary."""

        return {
            "namespace": self.namespace,
            "tables": [table.to_dict() for table in self.tables],
        }


def make_schema(namespace: str, tables: Mapping[str, Iterable[str]]) -> Schema:
    """Build a schema from a ``table -> columns`` mapping."""

    return Schema(
        namespace=namespace,
        tables=tuple(
            Table(name=name, columns=tuple(columns)) for name, columns in tables.items()
        ),
    )


@dataclass(frozen=True)
class InputField:
    """Source column contributing to an output column."""

    namespace: str
    name: str
    field: str
    transformations: Tuple[Transformation, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        """Serialize the input field to a dictionary."""

        return {
            "namespace": self.namespace,
            "name": self.name,
            "field": self.field,
            "transformations": [item.to_dict() for item in self.transformations],
        }


@dataclass(frozen=True)
class FieldLineage:
    """Lineage of a single output column."""

    input_fields: List[InputField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        """Serialize the field lineage to a dictionary."""

        return {"inputFields": [item.to_dict() for item in self.input_fields]}


LineageResult = Dict[str, FieldLineage]


def lineage_to_dict(result: LineageResult) -> Dict[str, Dict[str, object]]:
    """Serialize a lineage result keyed by output column name."""

    return {name: lineage.to_dict() for name, lineage in result.items()}
