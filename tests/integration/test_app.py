"""Streamlit page tests against fixture CSV files."""

from __future__ import annotations

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

import foodsupply.data as data

APP_PATH = Path(__file__).resolve().parents[2] / "app.py"


@pytest.fixture()
def app_test(monkeypatch, input_files, code_table) -> AppTest:
    supply_path, metadata_path = input_files
    monkeypatch.setattr(data, "SUPPLY_PATH", supply_path)
    monkeypatch.setattr(data, "METADATA_PATH", metadata_path)
    monkeypatch.setattr(data, "load_code_table", lambda path=None: code_table)
    return AppTest.from_file(str(APP_PATH), default_timeout=30)


def _chips(at: AppTest) -> list:
    return [m.value for m in at.markdown if "<div class='chip-row'>" in m.value]


def test_change_page_shows_filter_chips_and_statistics(app_test) -> None:
    at = app_test.run()
    assert not at.exception

    chips = _chips(at)
    assert len(chips) == 1
    assert "Years: 1961 vs 2018" in chips[0]
    assert "Regions: All" in chips[0]

    metrics = {m.label: m.value for m in at.metric}
    assert metrics["Largest increase"] == "Foo: +1,000"
    assert metrics["Largest relative decrease"] == "Bar: +20.0%"


@pytest.mark.parametrize("page", ["Regional trends", "World map", "Data table", "Data quality"])
def test_every_page_renders_filter_chips(app_test, page) -> None:
    at = app_test.run()
    at.sidebar.radio[0].set_value(page).run()
    assert not at.exception

    chips = _chips(at)
    assert len(chips) == 1
    assert "Years: 1961 vs 2018" in chips[0]


def test_region_filter_is_reflected_in_chips(app_test) -> None:
    at = app_test.run()
    at.sidebar.multiselect[0].set_value(["ASIA"]).run()
    assert not at.exception
    assert "Regions: ASIA" in _chips(at)[0]


def test_missing_input_file_shows_error(app_test, monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(data, "SUPPLY_PATH", tmp_path / "missing.csv")
    at = app_test.run()
    assert not at.exception
    assert "Could not read input data" in at.error[0].value
