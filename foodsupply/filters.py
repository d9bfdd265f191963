from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple


DATA_DIR = Path(__file__).resolve().parents[1] / "data"
SUPPLY_PATH = DATA_DIR / "food_supply.csv"
METADATA_PATH = DATA_DIR / "countries.csv"

DEFAULT_YEAR_A = 1961
DEFAULT_YEAR_B = 2018
DEFAULT_TOP_N = 15


@dataclass(frozen=True)
class ReportFilters:
    year_a: int = DEFAULT_YEAR_A
    year_b: int = DEFAULT_YEAR_B
    selected_regions: List[str] = field(default_factory=list)
    map_year: int = DEFAULT_YEAR_B
    year_range: Tuple[int, int] = (DEFAULT_YEAR_A, DEFAULT_YEAR_B)
    top_n: int = DEFAULT_TOP_N


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _snap_year(value: int, available: List[int], fallback: int) -> int:
    if not available:
        return value
    if value in available:
        return value
    return fallback


def normalize_filters(
    raw: dict,
    *,
    available_years: Optional[Iterable[int]] = None,
    available_regions: Optional[Iterable[str]] = None,
) -> ReportFilters:
    """Coerce a raw UI/API dict into ReportFilters.

    Unknown endpoint years fall back to the first/last available year, unknown
    regions are dropped and an out-of-order year pair is swapped.
    """
    years = sorted(int(y) for y in (available_years or []))
    first_year = years[0] if years else DEFAULT_YEAR_A
    last_year = years[-1] if years else DEFAULT_YEAR_B

    year_a = _snap_year(_as_int(raw.get("year_a"), first_year), years, first_year)
    year_b = _snap_year(_as_int(raw.get("year_b"), last_year), years, last_year)
    if year_a > year_b:
        year_a, year_b = year_b, year_a

    map_year = _snap_year(_as_int(raw.get("map_year"), last_year), years, last_year)

    span = raw.get("year_range") or (first_year, last_year)
    try:
        lo, hi = (_as_int(span[0], first_year), _as_int(span[1], last_year))
    except (TypeError, IndexError, KeyError):
        lo, hi = first_year, last_year
    if lo > hi:
        lo, hi = hi, lo
    lo, hi = max(lo, first_year), min(hi, last_year)

    regions = [str(r).strip() for r in (raw.get("selected_regions") or []) if r is not None and str(r).strip()]
    if available_regions is not None:
        known = set(available_regions)
        regions = [r for r in regions if r in known]

    top_n = max(1, min(200, _as_int(raw.get("top_n", DEFAULT_TOP_N), DEFAULT_TOP_N)))

    return ReportFilters(
        year_a=year_a,
        year_b=year_b,
        selected_regions=regions,
        map_year=map_year,
        year_range=(lo, hi),
        top_n=top_n,
    )
