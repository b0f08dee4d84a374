from __future__ import annotations

import json
from pathlib import Path

from sql_column_lineage import LineageOptions, Schema, analyze, to_json


def _load_fixture(name: str) -> str:
    """Load fixture content."""

    return Path(__file__).parent.joinpath("fixtures", name).read_text(encoding="utf-8")


def _schema() -> Schema:
    return Schema.from_dict(json.loads(_load_fixture("schema.json")))


def test_analyze_fixture() -> None:
    result = analyze(_load_fixture("enriched_users.sql"), _schema(), dialect="trino")
    assert result["errors"] == []
    assert result["dialect"] == "trino"
    fields = result["fields"]
    assert list(fields) == ["id", "full_name", "order_count", "total_with_tax"]
    assert fields["order_count"]["inputFields"] == [
        {
            "namespace": "trino",
            "name": "orders",
            "field": "user_id",
            "transformations": [
                {"type": "DIRECT", "subtype": "AGGREGATION", "masking": True}
            ],
        }
    ]
    assert fields["full_name"]["inputFields"][0]["field"] == "name"


def test_dialect_is_normalized() -> None:
    result = analyze("SELECT id FROM users", _schema(), dialect="  Trino ")
    assert result["dialect"] == "trino"
    assert result["errors"] == []


def test_unsupported_dialect_is_reported() -> None:
    result = analyze("SELECT id FROM users", _schema(), dialect="nosuchdb")
    assert result["errors"] == ["Unsupported dialect: nosuchdb"]
    assert result["dialect"] == "generic"
    assert list(result["fields"]) == ["id"]


def test_parse_failure_is_reported() -> None:
    result = analyze("SELECT id FROM users WHERE (id = 1", _schema())
    assert result["fields"] == {}
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("Failed to parse SQL")


def test_multi_statement_is_reported() -> None:
    result = analyze("SELECT id FROM users; SELECT id FROM orders", _schema())
    assert result["fields"] == {}
    assert result["errors"] == ["Expected exactly one statement, found 2"]


def test_fatal_error_discards_partial_results() -> None:
    sql = "SELECT name, id FROM (SELECT id, name FROM users) AS u"
    result = analyze(sql, _schema(), options=LineageOptions(max_depth=0))
    assert result["fields"] == {}
    assert "depth 1 exceeds the limit of 0" in result["errors"][0]


def test_to_json_matches_analyze() -> None:
    sql = _load_fixture("enriched_users.sql")
    assert json.loads(to_json(sql, _schema())) == analyze(sql, _schema())
