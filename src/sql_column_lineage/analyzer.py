"""Top-level SQL column lineage analyzer."""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from sqlglot import exp
from sqlglot.errors import SqlglotError

from sql_column_lineage.config import LineageOptions
from sql_column_lineage.dialects import (
    DEFAULT_DIALECT,
    is_supported_dialect,
    normalize_dialect,
)
from sql_column_lineage.errors import LineageError
from sql_column_lineage.logger import get_logger
from sql_column_lineage.models import Schema, lineage_to_dict
from sql_column_lineage.parser import parse_select
from sql_column_lineage.resolver import get_lineage

logger = get_logger(__name__)


def _read_dialect(dialect: str, errors: List[str]) -> Optional[str]:
    """Return the sqlglot dialect to parse with, None for the generic one."""

    if is_supported_dialect(dialect):
        return dialect
    errors.append(f"Unsupported dialect: {dialect}")
    logger.warning("Unsupported dialect %r, using the generic sqlglot dialect", dialect)
    return None


def analyze(
    sql: str,
    schema: Schema,
    dialect: str = DEFAULT_DIALECT,
    options: Optional[LineageOptions] = None,
) -> Dict[str, object]:
    """Analyze SQL and return a JSON-compatible column lineage dictionary."""

    normalized_dialect = normalize_dialect(dialect)
    errors: List[str] = []
    read_dialect = _read_dialect(normalized_dialect, errors)
    result: Dict[str, object] = {
        "dialect": read_dialect or "generic",
        "fields": {},
        "errors": errors,
    }

    try:
        statement: exp.Expression = parse_select(sql, read_dialect)
    except SqlglotError as exc:
        logger.error("Failed to parse SQL with dialect %r: %s", read_dialect, exc)
        errors.append(f"Failed to parse SQL: {exc}")
        return result
    except LineageError as exc:
        logger.error("%s", exc)
        errors.append(str(exc))
        return result

    try:
        lineage = get_lineage(statement, schema, options=options)
    except LineageError as exc:
        logger.error("Lineage resolution failed: %s", exc)
        errors.append(str(exc))
        return result

    result["fields"] = lineage_to_dict(lineage)
    return result


def to_json(
    sql: str,
    schema: Schema,
    dialect: str = DEFAULT_DIALECT,
    options: Optional[LineageOptions] = None,
    indent: int = 2,
) -> str:
    """Serialize lineage analysis into JSON."""

    return json.dumps(
        analyze(sql, schema, dialect=dialect, options=options),
        indent=indent,
        ensure_ascii=False,
    )
