"""Classification of DIRECT transformations over projection expressions."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlglot import exp

from sql_column_lineage.config import LineageOptions
from sql_column_lineage.models import (
    ColumnRef,
    Transformation,
    TransformationSubtype,
    TransformationType,
)
from sql_column_lineage.transformations import (
    DIRECT_IDENTITY,
    DIRECT_TRANSFORMATION,
    TransformationSet,
    merge_transformations,
)

TransformationsByColumn = Dict[ColumnRef, TransformationSet]

# CASE/IF only influence the output through their conditions.
CONDITIONAL_NODES = (exp.Case, exp.If)


def function_name(func: exp.Expression) -> str:
    """Normalize a function expression name."""

    if isinstance(func, exp.Anonymous):
        return str(func.name).lower()
    if hasattr(func, "sql_name"):
        return func.sql_name().lower()
    if hasattr(func, "name"):
        return str(func.name).lower()
    return func.__class__.__name__.lower()


def is_masking(func: exp.Expression, names: FrozenSet[str]) -> bool:
    """Return True if the function is listed by SQL name or by sqlglot node key."""

    return function_name(func) in names or func.key in names


def is_star(expression: exp.Expression) -> bool:
    """Return True for ``*`` and ``table.*`` projections."""

    if isinstance(expression, exp.Star):
        return True
    return isinstance(expression, exp.Column) and isinstance(expression.this, exp.Star)


def column_ref(column: exp.Column) -> ColumnRef:
    """Build the qualified input name of a column reference."""

    return ColumnRef(table=column.table or None, column=column.name)


def merge_by_column(
    results: Iterable[TransformationsByColumn],
) -> TransformationsByColumn:
    """Merge sibling results; columns reached through several siblings intersect."""

    merged: TransformationsByColumn = {}
    for result in results:
        for key, transformations in result.items():
            previous = merged.get(key)
            if previous is None:
                merged[key] = transformations
            else:
                merged[key] = previous.intersection(transformations)
    return merged


def _arguments(func: exp.Expression) -> List[exp.Expression]:
    return list(func.iter_expressions())


def get_direct_transformations(
    expression: Optional[exp.Expression],
    parent: Optional[Transformation] = None,
    options: Optional[LineageOptions] = None,
) -> TransformationsByColumn:
    """Map every column referenced by ``expression`` to its transformations.

    ``parent`` is the transformation accumulated from the enclosing
    operators; it is merged into every nested classification.
    """

    options = options or LineageOptions()
    if expression is None:
        return {}
    if isinstance(expression, (exp.Alias, exp.Paren)):
        return get_direct_transformations(expression.this, parent, options)
    if isinstance(expression, exp.Column):
        if is_star(expression) or not expression.name:
            return {}
        return {
            column_ref(expression): TransformationSet(
                [merge_transformations(parent, DIRECT_IDENTITY)]
            )
        }
    if isinstance(expression, exp.Binary) and not isinstance(expression, exp.Dot):
        upgraded = merge_transformations(parent, DIRECT_TRANSFORMATION)
        return merge_by_column(
            get_direct_transformations(operand, upgraded, options)
            for operand in (expression.left, expression.right)
        )
    # FILTER conditions and window partitions only influence rows.
    if isinstance(expression, (exp.Window, exp.Filter)):
        return get_direct_transformations(expression.this, parent, options)
    if isinstance(expression, exp.AggFunc):
        aggregation = Transformation(
            type=TransformationType.DIRECT,
            subtype=TransformationSubtype.AGGREGATION,
            masking=is_masking(expression, options.masking_aggregates),
        )
        upgraded = merge_transformations(parent, aggregation)
        return merge_by_column(
            get_direct_transformations(arg, upgraded, options)
            for arg in _arguments(expression)
        )
    if isinstance(expression, exp.Distinct):
        return merge_by_column(
            get_direct_transformations(arg, parent, options)
            for arg in expression.expressions
        )
    if isinstance(expression, exp.Func) and not isinstance(
        expression, CONDITIONAL_NODES
    ):
        transformation = Transformation(
            type=TransformationType.DIRECT,
            subtype=TransformationSubtype.TRANSFORMATION,
            masking=is_masking(expression, options.masking_functions),
        )
        upgraded = merge_transformations(parent, transformation)
        return merge_by_column(
            get_direct_transformations(arg, upgraded, options)
            for arg in _arguments(expression)
        )
    return {}
