"""Table and alias resolution for SELECT statements."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Tuple

from sqlglot import exp

SET_OPERATIONS = (exp.Union, exp.Intersect, exp.Except)


@dataclass(frozen=True)
class RegularTable:
    """Reference to a physical table in a FROM or JOIN clause."""

    name: str
    alias: str = ""

    @property
    def base_name(self) -> str:
        """Return the table name without its database qualifier."""

        return self.name.rsplit(".", 1)[-1]

    def matches(self, qualifier: Optional[str]) -> bool:
        """Return True if a column qualifier can refer to this table."""

        if not qualifier:
            return True
        if self.alias:
            return qualifier == self.alias
        return qualifier in {self.name, self.base_name}


@dataclass(frozen=True, eq=False)
class DerivedTable:
    """Nested query used in place of a table.

    ``scope`` holds the common table expressions visible inside ``body``.
    """

    body: exp.Expression
    alias: str = ""
    scope: Mapping[str, "DerivedTable"] = field(default_factory=dict)

    def matches(self, qualifier: Optional[str]) -> bool:
        if not qualifier:
            return True
        return qualifier == self.alias

    def with_alias(self, alias: str) -> "DerivedTable":
        return replace(self, alias=alias)


Scope = Mapping[str, DerivedTable]


def _with_clause(expression: exp.Expression) -> Optional[exp.With]:
    with_clause = expression.args.get("with") or expression.args.get("with_")
    if isinstance(with_clause, exp.With):
        return with_clause
    return None


def build_scope(
    expression: exp.Expression, inherited: Optional[Scope] = None
) -> Dict[str, DerivedTable]:
    """Extend ``inherited`` with the CTEs declared on ``expression``.

    Each CTE only sees the CTEs declared before it.
    """

    scope: Dict[str, DerivedTable] = dict(inherited or {})
    with_clause = _with_clause(expression)
    if with_clause is None:
        return scope
    for cte in with_clause.expressions:
        if not isinstance(cte, exp.CTE):
            continue
        name = cte.alias_or_name
        scope[name] = DerivedTable(body=cte.this, alias=name, scope=dict(scope))
    return scope


def _table_name(table: exp.Table) -> str:
    parts = [table.catalog, table.db, table.name]
    return ".".join(part for part in parts if part)


def _from_items(select: exp.Select) -> List[exp.Expression]:
    """Collect relations referenced directly in FROM/JOIN clauses."""

    items: List[exp.Expression] = []
    from_clause = select.args.get("from") or select.args.get("from_")
    if isinstance(from_clause, exp.From):
        if getattr(from_clause, "this", None) is not None:
            items.append(from_clause.this)
        items.extend(getattr(from_clause, "expressions", []) or [])
    for join in select.args.get("joins", []) or []:
        if join.this is not None:
            items.append(join.this)
    return items


def get_table_expressions_from_select(
    select: exp.Select, scope: Optional[Scope] = None
) -> Tuple[List[RegularTable], List[DerivedTable]]:
    """Split the relations of a SELECT into physical and derived tables.

    A relation named after a visible CTE is derived, even when a physical
    table with the same name exists.
    """

    visible = build_scope(select, scope)
    regular_tables: List[RegularTable] = []
    derived_tables: List[DerivedTable] = []
    for item in _from_items(select):
        if isinstance(item, exp.Table):
            if not item.name:
                continue
            if not item.db and item.name in visible:
                cte = visible[item.name]
                derived_tables.append(cte.with_alias(item.alias or item.name))
            else:
                regular_tables.append(
                    RegularTable(name=_table_name(item), alias=item.alias)
                )
        elif isinstance(item, exp.Subquery):
            derived_tables.append(
                DerivedTable(body=item.this, alias=item.alias, scope=visible)
            )
    return regular_tables, derived_tables


def select_branches(expression: exp.Expression) -> List[exp.Select]:
    """Flatten a query into its SELECT branches, left to right."""

    if isinstance(expression, (exp.Subquery, exp.Paren)):
        return select_branches(expression.this)
    if isinstance(expression, SET_OPERATIONS):
        return select_branches(expression.left) + select_branches(expression.right)
    if isinstance(expression, exp.Select):
        return [expression]
    return []
