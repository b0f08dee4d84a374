from __future__ import annotations

from typing import List, Tuple

import pytest

from sql_column_lineage import (
    DIRECT_AGGREGATION,
    DIRECT_IDENTITY,
    DIRECT_TRANSFORMATION,
    LineageOptions,
    RecursionDepthExceededError,
    Transformation,
    TransformationSet,
    TransformationSubtype,
    TransformationType,
    UnsupportedTransformationError,
    get_column_lineage,
    get_lineage,
    make_schema,
    parse_select,
)
from sql_column_lineage.models import LineageResult, Schema

MASKED_AGGREGATION = Transformation(
    type=TransformationType.DIRECT,
    subtype=TransformationSubtype.AGGREGATION,
    masking=True,
)

USERS_SCHEMA = make_schema("trino", {"users": ["id", "name", "email"]})

MULTIPLE_CTES_SQL = """
WITH active_users AS (
  SELECT id, name, email
  FROM users
  WHERE status = 'active'
),
user_orders AS (
  SELECT user_id, COUNT(user_id) AS order_count, SUM(total) AS total_spent
  FROM orders
  GROUP BY user_id
),
enriched_users AS (
  SELECT
    au.id,
    au.name,
    au.email,
    COALESCE(uo.order_count, 0) AS order_count,
    COALESCE(uo.total_spent, 0) AS total_spent
  FROM active_users au
  LEFT JOIN user_orders uo ON au.id = uo.user_id
)
SELECT
  id,
  name AS full_name,
  order_count,
  total_spent * 1.1 AS total_with_tax
FROM enriched_users
WHERE order_count > 0
"""

PRODUCT_SALES_SQL = """
WITH filtered_sales AS (
  SELECT product_id, store_id, quantity_sold, unit_price, discount_percentage
  FROM product_sales
  WHERE sale_date >= '2023-01-01'
),
store_sales_summary AS (
  SELECT
    fs.product_id,
    fs.store_id,
    SUM(fs.quantity_sold) AS total_quantity,
    AVG(fs.unit_price) AS avg_price,
    SUM(fs.quantity_sold * fs.unit_price * (1 - fs.discount_percentage / 100)) AS net_revenue
  FROM filtered_sales fs
  GROUP BY fs.product_id, fs.store_id
),
final_report AS (
  SELECT
    sss.product_id,
    s.store_name,
    s.region,
    sss.total_quantity,
    sss.avg_price,
    sss.net_revenue
  FROM store_sales_summary sss
  JOIN stores s ON sss.store_id = s.id
)
SELECT product_id, store_name, region, total_quantity, avg_price, net_revenue
FROM final_report
ORDER BY net_revenue DESC
"""


def _lineage(sql: str, schema: Schema, **kwargs) -> LineageResult:
    """Parse a statement and compute its lineage."""

    return get_lineage(parse_select(sql, "trino"), schema, **kwargs)


def _inputs(
    result: LineageResult, column: str
) -> List[Tuple[str, str, List[Transformation]]]:
    """Flatten the input fields of an output column."""

    return [
        (item.name, item.field, list(item.transformations))
        for item in result[column].input_fields
    ]


def test_select_from_cte() -> None:
    sql = """
    WITH u AS (SELECT id, name FROM users)
    SELECT id, name AS wow FROM u
    """
    result = _lineage(sql, USERS_SCHEMA)
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]
    assert _inputs(result, "wow") == [("users", "name", [DIRECT_IDENTITY])]


def test_select_through_star_subquery_and_cte() -> None:
    sql = """
    WITH u AS (SELECT * FROM users)
    SELECT id, name AS wow
    FROM (SELECT * FROM u) AS t
    """
    result = _lineage(sql, USERS_SCHEMA)
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]
    assert _inputs(result, "wow") == [("users", "name", [DIRECT_IDENTITY])]


def test_renamed_columns_across_levels() -> None:
    sql = """
    WITH u AS (SELECT id AS i, name AS n FROM users)
    SELECT i AS id, n AS wow FROM u
    """
    result = _lineage(sql, USERS_SCHEMA)
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]
    assert _inputs(result, "wow") == [("users", "name", [DIRECT_IDENTITY])]


def test_multiple_ctes_compound_transformations() -> None:
    schema = make_schema(
        "trino",
        {
            "users": ["id", "name", "email", "status"],
            "orders": ["id", "user_id", "total"],
        },
    )
    result = _lineage(MULTIPLE_CTES_SQL, schema)
    assert list(result) == ["id", "full_name", "order_count", "total_with_tax"]
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]
    assert _inputs(result, "full_name") == [("users", "name", [DIRECT_IDENTITY])]
    assert _inputs(result, "order_count") == [
        ("orders", "user_id", [MASKED_AGGREGATION])
    ]
    assert _inputs(result, "total_with_tax") == [
        ("orders", "total", [DIRECT_AGGREGATION])
    ]


def test_product_sales_report() -> None:
    schema = make_schema(
        "trino",
        {
            "product_sales": [
                "product_id",
                "store_id",
                "quantity_sold",
                "unit_price",
                "discount_percentage",
                "sale_date",
            ],
            "stores": ["id", "store_name", "region"],
        },
    )
    result = _lineage(PRODUCT_SALES_SQL, schema)
    assert _inputs(result, "product_id") == [
        ("product_sales", "product_id", [DIRECT_IDENTITY])
    ]
    assert _inputs(result, "store_name") == [
        ("stores", "store_name", [DIRECT_IDENTITY])
    ]
    assert _inputs(result, "region") == [("stores", "region", [DIRECT_IDENTITY])]
    assert _inputs(result, "total_quantity") == [
        ("product_sales", "quantity_sold", [DIRECT_AGGREGATION])
    ]
    assert _inputs(result, "avg_price") == [
        ("product_sales", "unit_price", [DIRECT_AGGREGATION])
    ]
    assert _inputs(result, "net_revenue") == [
        ("product_sales", "quantity_sold", [DIRECT_AGGREGATION]),
        ("product_sales", "unit_price", [DIRECT_AGGREGATION]),
        ("product_sales", "discount_percentage", [DIRECT_AGGREGATION]),
    ]


def test_cte_alias_shadows_physical_table() -> None:
    schema = make_schema(
        "trino", {"users": ["id", "name"], "base": ["id", "name"]}
    )
    sql = """
    WITH base AS (SELECT id, UPPER(name) AS name FROM users)
    SELECT b.name, b.id FROM base AS b
    """
    result = _lineage(sql, schema)
    assert _inputs(result, "name") == [("users", "name", [DIRECT_TRANSFORMATION])]
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]


def test_cte_referencing_physical_table_of_same_name() -> None:
    sql = """
    WITH users AS (SELECT id, LOWER(email) AS email FROM users)
    SELECT email FROM users
    """
    result = _lineage(sql, USERS_SCHEMA)
    assert _inputs(result, "email") == [("users", "email", [DIRECT_TRANSFORMATION])]


def test_outer_transformation_wraps_inner_aggregation() -> None:
    schema = make_schema("trino", {"orders": ["user_id", "total"]})
    sql = """
    SELECT ROUND(spent) AS rounded, spent + 1 AS bumped
    FROM (SELECT user_id, SUM(total) AS spent FROM orders GROUP BY user_id) AS s
    """
    result = _lineage(sql, schema)
    assert _inputs(result, "rounded") == [("orders", "total", [DIRECT_AGGREGATION])]
    assert _inputs(result, "bumped") == [("orders", "total", [DIRECT_AGGREGATION])]


def test_union_in_cte_resolves_every_branch() -> None:
    schema = make_schema(
        "trino", {"users": ["id", "email"], "customers": ["customer_id", "email"]}
    )
    sql = """
    WITH contacts AS (
      SELECT id, email FROM users
      UNION ALL
      SELECT customer_id, UPPER(email) FROM customers
    )
    SELECT id AS contact_id, email FROM contacts
    """
    result = _lineage(sql, schema)
    assert _inputs(result, "contact_id") == [
        ("users", "id", [DIRECT_IDENTITY]),
        ("customers", "customer_id", [DIRECT_IDENTITY]),
    ]
    assert _inputs(result, "email") == [
        ("users", "email", [DIRECT_IDENTITY]),
        ("customers", "email", [DIRECT_TRANSFORMATION]),
    ]


def test_top_level_union() -> None:
    schema = make_schema(
        "trino", {"users": ["id", "email"], "orders": ["user_id", "email"]}
    )
    sql = """
    SELECT id AS user_id, email FROM users
    UNION ALL
    SELECT user_id, email FROM orders
    """
    result = _lineage(sql, schema)
    assert list(result) == ["user_id", "email"]
    assert _inputs(result, "user_id") == [
        ("users", "id", [DIRECT_IDENTITY]),
        ("orders", "user_id", [DIRECT_IDENTITY]),
    ]


def test_nested_subqueries_within_depth_limit() -> None:
    sql = """
    SELECT id FROM (SELECT id FROM (SELECT id FROM users) AS a) AS b
    """
    result = _lineage(sql, USERS_SCHEMA)
    assert _inputs(result, "id") == [("users", "id", [DIRECT_IDENTITY])]


def test_depth_limit_is_enforced() -> None:
    sql = """
    SELECT id FROM (SELECT id FROM (SELECT id FROM users) AS a) AS b
    """
    with pytest.raises(RecursionDepthExceededError) as excinfo:
        _lineage(sql, USERS_SCHEMA, options=LineageOptions(max_depth=1))
    assert excinfo.value.depth == 2
    assert excinfo.value.limit == 1


def test_column_lineage_with_inherited_context() -> None:
    statement = parse_select("SELECT id FROM users", "trino")
    fields = get_column_lineage(
        statement,
        USERS_SCHEMA,
        statement.expressions[0],
        TransformationSet([DIRECT_AGGREGATION]),
    )
    assert [(item.name, item.field, list(item.transformations)) for item in fields] == [
        ("users", "id", [DIRECT_AGGREGATION])
    ]


def test_indirect_context_fails_loudly() -> None:
    statement = parse_select("SELECT id FROM users", "trino")
    context = TransformationSet(
        [
            Transformation(
                type=TransformationType.INDIRECT,
                subtype=TransformationSubtype.FILTER,
            )
        ]
    )
    with pytest.raises(UnsupportedTransformationError):
        get_column_lineage(statement, USERS_SCHEMA, statement.expressions[0], context)
