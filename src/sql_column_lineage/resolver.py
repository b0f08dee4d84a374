"""Recursive column lineage resolution over SELECT statements."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlglot import exp

from sql_column_lineage.config import LineageOptions
from sql_column_lineage.errors import RecursionDepthExceededError
from sql_column_lineage.expressions import get_direct_transformations, is_star
from sql_column_lineage.logger import get_logger
from sql_column_lineage.models import (
    ColumnRef,
    FieldLineage,
    InputField,
    LineageResult,
    Schema,
    Table,
)
from sql_column_lineage.tables import (
    SET_OPERATIONS,
    DerivedTable,
    RegularTable,
    Scope,
    build_scope,
    get_table_expressions_from_select,
    select_branches,
)
from sql_column_lineage.transformations import TransformationSet, combine_sets

logger = get_logger(__name__)


def output_column_name(projection: exp.Expression) -> Optional[str]:
    """Resolve the output name of a projection, if it has one."""

    if isinstance(projection, exp.Alias):
        return projection.alias or None
    if isinstance(projection, exp.Column) and not is_star(projection):
        return projection.name or None
    return None


def _projection_expression(projection: exp.Expression) -> exp.Expression:
    if isinstance(projection, exp.Alias):
        return projection.this
    return projection


def _schema_table(schema: Schema, table: RegularTable) -> Optional[Table]:
    return schema.find_table(table.name) or schema.find_table(table.base_name)


def _find_regular_table(
    schema: Schema, regular_tables: List[RegularTable], ref: ColumnRef
) -> Optional[Table]:
    """Return the first schema table declaring the referenced column."""

    for table in regular_tables:
        if not table.matches(ref.table):
            continue
        declared = _schema_table(schema, table)
        if declared is not None and declared.has_column(ref.column):
            return declared
    return None


def _match_output(branches: List[exp.Select], column: str) -> Optional[int]:
    for index, projection in enumerate(branches[0].expressions):
        if output_column_name(projection) == column:
            return index
    return None


def _resolve_derived(
    derived: DerivedTable,
    schema: Schema,
    ref: ColumnRef,
    transformations: TransformationSet,
    options: LineageOptions,
    depth: int,
) -> List[InputField]:
    """Resolve a column through the output columns of a derived table."""

    branches = select_branches(derived.body)
    if not branches:
        return []
    scope: Scope = derived.scope
    if isinstance(derived.body, SET_OPERATIONS):
        scope = build_scope(derived.body, derived.scope)
    index = _match_output(branches, ref.column)
    input_fields: List[InputField] = []
    for branch in branches:
        if index is not None and index < len(branch.expressions):
            expression = _projection_expression(branch.expressions[index])
        else:
            # Wildcard pass-through: the column is looked up under its own name.
            expression = exp.column(ref.column)
        logger.debug(
            "Resolving %s through derived table %r at depth %d",
            ref.qualified_name(),
            derived.alias,
            depth + 1,
        )
        input_fields.extend(
            get_column_lineage(
                branch,
                schema,
                expression,
                transformations,
                scope=scope,
                options=options,
                depth=depth + 1,
            )
        )
    return input_fields


def get_column_lineage(
    select: exp.Select,
    schema: Schema,
    expression: exp.Expression,
    context: Optional[TransformationSet] = None,
    *,
    scope: Optional[Scope] = None,
    options: Optional[LineageOptions] = None,
    depth: int = 0,
) -> List[InputField]:
    """Trace the source columns of ``expression`` evaluated in ``select``.

    ``context`` carries the transformations accumulated by enclosing queries
    and is combined with every transformation found at this level.
    Unresolved references contribute nothing.
    """

    options = options or LineageOptions()
    if depth > options.max_depth:
        raise RecursionDepthExceededError(depth, options.max_depth)

    transformations_by_column = get_direct_transformations(
        _projection_expression(expression), options=options
    )
    if context is not None:
        transformations_by_column = {
            ref: combine_sets(context, transformations)
            for ref, transformations in transformations_by_column.items()
        }

    regular_tables, derived_tables = get_table_expressions_from_select(select, scope)
    input_fields: List[InputField] = []
    for ref, transformations in transformations_by_column.items():
        table = _find_regular_table(schema, regular_tables, ref)
        if table is not None:
            input_fields.append(
                InputField(
                    namespace=schema.namespace,
                    name=table.name,
                    field=ref.column,
                    transformations=tuple(transformations),
                )
            )
            continue
        resolved: List[InputField] = []
        for derived in derived_tables:
            if derived.matches(ref.table):
                resolved.extend(
                    _resolve_derived(
                        derived, schema, ref, transformations, options, depth
                    )
                )
        if not resolved:
            logger.debug("Unresolved column reference %s", ref.qualified_name())
        input_fields.extend(resolved)
    return input_fields


def _projections(
    statement: exp.Expression,
) -> List[Tuple[Optional[str], List[Tuple[exp.Select, exp.Expression]]]]:
    """Pair every output position with its expression in each branch."""

    branches = select_branches(statement)
    if not branches:
        return []
    columns = []
    for index, projection in enumerate(branches[0].expressions):
        if is_star(_projection_expression(projection)):
            continue
        sources = [
            (branch, branch.expressions[index])
            for branch in branches
            if index < len(branch.expressions)
        ]
        columns.append((output_column_name(projection), sources))
    return columns


def get_lineage(
    select: exp.Expression,
    schema: Schema,
    options: Optional[LineageOptions] = None,
) -> LineageResult:
    """Compute the lineage of every output column of a SELECT statement.

    Projections without a derivable name are reported as ``unknown_<n>``.
    A later projection with the same output name replaces an earlier one.
    """

    options = options or LineageOptions()
    scope: Optional[Scope] = None
    if isinstance(select, SET_OPERATIONS):
        scope = build_scope(select)
    unknown_count = 0
    result: Dict[str, FieldLineage] = {}
    for name, sources in _projections(select):
        if name is None:
            name = f"unknown_{unknown_count}"
            unknown_count += 1
        input_fields: List[InputField] = []
        for branch, projection in sources:
            input_fields.extend(
                get_column_lineage(
                    branch, schema, projection, scope=scope, options=options
                )
            )
        result[name] = FieldLineage(input_fields=input_fields)
    return result

