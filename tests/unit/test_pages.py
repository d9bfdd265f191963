"""Unit tests for page payloads consumed by the dashboard and API."""

from __future__ import annotations

import pytest

from foodsupply.data import build_report_data, prepare_context
from foodsupply.metrics_change import compute_change_page
from foodsupply.metrics_quality import compute_quality_page
from foodsupply.metrics_trends import compute_map_page, compute_trends_page


@pytest.fixture()
def ctx(input_files, code_table):
    data_ctx = build_report_data(*input_files, code_table)
    return prepare_context({"year_a": 1961, "year_b": 2018, "top_n": 2}, data_ctx)


def test_change_page_payload(ctx) -> None:
    payload = compute_change_page(ctx["filters"], ctx)

    assert payload["years"] == [1961, 2018]
    assert [r["country"] for r in payload["table"]] == ["Bar", "Baz", "Foo"]
    assert [r["country"] for r in payload["gainers"]] == ["Foo", "Bar"]
    assert [r["country"] for r in payload["decliners"]] == ["Baz", "Bar"]
    assert payload["statistics"]["max_relative"]["country"] == "Foo"
    assert set(payload["charts"]) == {"endpoint_comparison", "absolute_change"}
    assert payload["charts"]["endpoint_comparison"]["mark"]["type"] == "bar"


def test_change_page_single_region_same_year(input_files, code_table) -> None:
    data_ctx = build_report_data(*input_files, code_table)
    ctx = prepare_context({"selected_regions": ["ASIA"], "year_a": 1962, "year_b": 1962}, data_ctx)
    payload = compute_change_page(ctx["filters"], ctx)
    assert [r["country"] for r in payload["table"]] == ["Qux"]
    assert payload["table"][0]["absolute_change"] == 0.0


def test_trends_page_respects_year_range(input_files, code_table) -> None:
    data_ctx = build_report_data(*input_files, code_table)
    ctx = prepare_context({"year_range": [1962, 2018]}, data_ctx)
    payload = compute_trends_page(ctx["filters"], ctx)

    assert payload["year_range"] == [1962, 2018]
    assert {r["year"] for r in payload["totals"]} == {1962, 2018}
    assert "region_totals" in payload["charts"]


def test_map_page_uses_iso3_locations(ctx) -> None:
    payload = compute_map_page(ctx["filters"], ctx)

    assert payload["year"] == 2018
    assert sorted(r["iso3_code"] for r in payload["totals"]) == ["BAR", "BAZ", "FOO", "QUX"]
    trace = payload["charts"]["world_map"]["data"][0]
    assert trace["type"] == "choropleth"
    assert sorted(trace["locations"]) == ["BAR", "BAZ", "FOO", "QUX"]


def test_quality_page_reports_cleaning(ctx) -> None:
    payload = compute_quality_page(ctx["filters"], ctx)

    assert payload["row_counts"]["joined_records"] == 10
    assert payload["cleaning_checks"] == {"duplicate_rows_removed": 1, "empty_cells_dropped": 2}
    assert payload["unresolved_supply_names"] == ["Atlantis"]
    regions = {r["region"]: r for r in payload["year_coverage"]}
    assert regions["ASIA"]["countries"] == 2
