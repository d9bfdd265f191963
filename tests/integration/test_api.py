"""API tests against fixture CSV files."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import foodsupply.data as data
from api.main import app


@pytest.fixture()
def client(monkeypatch, input_files, code_table):
    supply_path, metadata_path = input_files
    monkeypatch.setattr(data, "SUPPLY_PATH", supply_path)
    monkeypatch.setattr(data, "METADATA_PATH", metadata_path)
    monkeypatch.setattr(data, "load_code_table", lambda path=None: code_table)
    return TestClient(app)


def test_meta_endpoints(client) -> None:
    assert client.get("/meta/years").json() == {"years": [1961, 1962, 2018]}
    assert client.get("/meta/regions").json() == {"regions": ["AFRICA", "ASIA"]}


def test_change_endpoint_marks_undefined_relative_change(client) -> None:
    r = client.post("/change", json={"year_a": 1961, "year_b": 2018})
    assert r.status_code == 200

    rows = {row["country"]: row for row in r.json()["table"]}
    assert rows["Foo"]["relative_change"] == pytest.approx(0.5)
    assert rows["Baz"]["relative_change"] is None
    assert rows["Baz"]["relative_change_defined"] is False
    assert r.json()["statistics"]["min_relative"] == {"country": "Bar", "value": pytest.approx(0.2)}


def test_trends_endpoint_filters_regions(client) -> None:
    r = client.post("/trends", json={"selected_regions": ["AFRICA"]})
    assert r.status_code == 200
    assert {row["region"] for row in r.json()["totals"]} == {"AFRICA"}


def test_map_endpoint(client) -> None:
    r = client.post("/map", json={"map_year": 1962})
    assert r.status_code == 200
    body = r.json()
    assert body["year"] == 1962
    assert sorted(row["country"] for row in body["totals"]) == ["Baz", "Foo", "Qux"]


def test_quality_endpoint(client) -> None:
    r = client.post("/quality", json={})
    assert r.status_code == 200
    assert r.json()["unresolved_metadata_names"] == ["Atlantis"]


def test_export_joined_csv(client) -> None:
    r = client.get("/export/joined.csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]
    lines = r.text.strip().splitlines()
    assert lines[0].startswith("country,iso3_code,region,year,kcal_per_day")
    assert len(lines) == 11


def test_missing_input_file_is_503(client, monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(data, "SUPPLY_PATH", tmp_path / "missing.csv")
    r = client.get("/meta/years")
    assert r.status_code == 503
    assert r.json()["type"] == "InputFileError"


def test_schema_violation_is_422(client, monkeypatch, write_csv) -> None:
    monkeypatch.setattr(data, "SUPPLY_PATH", write_csv("bad.csv", "Country,Year 1961\nFoo,1\n"))
    r = client.post("/change", json={})
    assert r.status_code == 422
    assert r.json()["type"] == "SchemaError"


def test_meta_endpoints_document_response_models(client) -> None:
    schema = client.get("/openapi.json").json()
    assert {"MetaYearsResponse", "MetaRegionsResponse"} <= set(schema["components"]["schemas"])
    years_ok = schema["paths"]["/meta/years"]["get"]["responses"]["200"]["content"]["application/json"]["schema"]
    regions_ok = schema["paths"]["/meta/regions"]["get"]["responses"]["200"]["content"]["application/json"]["schema"]
    assert years_ok["$ref"].endswith("/MetaYearsResponse")
    assert regions_ok["$ref"].endswith("/MetaRegionsResponse")
