"""Pytest configuration and shared CSV fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from foodsupply.codes import CountryCodeTable  # noqa: E402


SUPPLY_CSV = """Country,1961,1962,2018
Foo,2000,2100,3000
Bar,1500,,1800
Bar,1500,,1800
Baz,0,100,200
Qux,,2500,2600
Atlantis,1000,1000,1000
"""

METADATA_CSV = """Country,Region,Population
Foo ,AFRICA                ,1000
Bar,ASIA,2000
Baz,AFRICA,300
Qux,ASIA,
Atlantis,OCEANIA,10
"""


@pytest.fixture()
def code_table() -> CountryCodeTable:
    return CountryCodeTable.from_mapping({"Foo": "FOO", "Bar": "BAR", "Baz": "BAZ", "Qux": "QUX"})


@pytest.fixture()
def write_csv(tmp_path):
    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def input_files(write_csv):
    return write_csv("food_supply.csv", SUPPLY_CSV), write_csv("countries.csv", METADATA_CSV)
