"""Parsing utilities for SQL column lineage."""

from __future__ import annotations

from typing import List, Optional

from sqlglot import exp, parse

from sql_column_lineage.errors import UnsupportedStatementError
from sql_column_lineage.tables import SET_OPERATIONS

QUERY_TYPES = (exp.Select,) + SET_OPERATIONS


def _statement_type(expression: exp.Expression) -> str:
    """Determine a statement type string for an expression."""

    if isinstance(expression, exp.Select):
        return "select"
    if isinstance(expression, exp.Union):
        return "union"
    return expression.key.lower()


def parse_select(sql: str, dialect: Optional[str] = None) -> exp.Expression:
    """Parse SQL text holding exactly one SELECT statement.

    Set operations over SELECTs are accepted; multi-statement scripts and
    any other statement kind raise ``UnsupportedStatementError``.
    """

    expressions: List[exp.Expression] = [
        expression for expression in parse(sql, read=dialect) if expression is not None
    ]
    if len(expressions) != 1:
        raise UnsupportedStatementError(
            f"Expected exactly one statement, found {len(expressions)}"
        )
    expression = expressions[0]
    while isinstance(expression, exp.Subquery):
        expression = expression.this
    if not isinstance(expression, QUERY_TYPES):
        raise UnsupportedStatementError(
            f"Unsupported statement type: {_statement_type(expression)}"
        )
    return expression
