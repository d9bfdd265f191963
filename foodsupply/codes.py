from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import pandas as pd

from foodsupply.errors import InputFileError, SchemaError


DEFAULT_CODE_TABLE_PATH = Path(__file__).resolve().parent / "resources" / "country_codes.csv"

_NA_TOKENS = {"nan", "none", "null", "<na>", "na", "n/a"}
_ISO3_RE = re.compile(r"[A-Z]{3}")


def normalize_country_name(value: object) -> Optional[str]:
    """Canonical lookup key for a country name: 'Korea,  South ' -> 'korea, south'."""
    if value is None or pd.isna(value):
        return None
    s = re.sub(r"\s+", " ", str(value).strip()).casefold()
    s = s.replace("&", "and")
    if not s or s in _NA_TOKENS:
        return None
    return s


@dataclass(frozen=True)
class CountryCodeTable:
    """Immutable name -> ISO3 lookup, keyed on normalized names."""

    codes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "codes", MappingProxyType(dict(self.codes)))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "CountryCodeTable":
        codes = {}
        for name, iso3 in mapping.items():
            key = normalize_country_name(name)
            if key is None:
                continue
            codes[key] = _validate_iso3(iso3, name)
        return cls(codes=codes)

    def resolve(self, name: object) -> Optional[str]:
        key = normalize_country_name(name)
        if key is None:
            return None
        return self.codes.get(key)

    def __len__(self) -> int:
        return len(self.codes)


def _validate_iso3(value: object, name: object) -> str:
    code = str(value).strip().upper() if value is not None and not pd.isna(value) else ""
    if not _ISO3_RE.fullmatch(code):
        raise SchemaError(f"Invalid ISO3 code {value!r} for country {name!r}")
    return code


def resolve_country_code(name: object, table: CountryCodeTable) -> Optional[str]:
    return table.resolve(name)


def read_code_table(path: Path) -> CountryCodeTable:
    try:
        df = pd.read_csv(path, dtype=str, encoding="utf-8-sig", keep_default_na=False)
    except FileNotFoundError as exc:
        raise InputFileError(f"Country code table not found: {path}") from exc
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise InputFileError(f"Country code table is not valid CSV: {path}") from exc

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {"name", "iso3"} - set(df.columns)
    if missing:
        raise SchemaError(f"Country code table {path} is missing columns: {sorted(missing)}")
    return CountryCodeTable.from_mapping(dict(zip(df["name"], df["iso3"])))


@lru_cache(maxsize=1)
def _default_code_table() -> CountryCodeTable:
    return read_code_table(DEFAULT_CODE_TABLE_PATH)


def load_code_table(path: Optional[Path] = None) -> CountryCodeTable:
    if path is None:
        return _default_code_table()
    return read_code_table(Path(path))
