from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd


CHANGE_COLUMNS = [
    "country",
    "iso3_code",
    "region",
    "value_at_t0",
    "value_at_t1",
    "absolute_change",
    "relative_change",
    "relative_change_defined",
]


def _attribute_columns(records: pd.DataFrame) -> List[str]:
    return [c for c in ["iso3_code", "region"] if c in records.columns]


def _value_at(records: pd.DataFrame, year: int, keys: List[str], name: str) -> pd.DataFrame:
    rows = records[records["year"] == year]
    return rows.groupby(keys, as_index=False)["kcal_per_day"].sum(min_count=1).rename(columns={"kcal_per_day": name})


def compute_change_summary(records: pd.DataFrame, year_a: int, year_b: int) -> pd.DataFrame:
    """Per-country change between two years.

    Countries missing either endpoint are left out. relative_change is <NA>
    with relative_change_defined=False when the start value is zero.
    """
    attrs = _attribute_columns(records)
    columns = ["country"] + attrs + CHANGE_COLUMNS[3:]
    if records.empty:
        return pd.DataFrame(columns=columns)

    start = _value_at(records, year_a, ["country"] + attrs, "value_at_t0")
    end = _value_at(records, year_b, ["country"], "value_at_t1")
    out = start.merge(end, on="country", how="inner").dropna(subset=["value_at_t0", "value_at_t1"])

    out["absolute_change"] = out["value_at_t1"] - out["value_at_t0"]
    defined = out["value_at_t0"] != 0
    relative = (out["absolute_change"] / out["value_at_t0"].where(defined)).astype("Float64")
    out["relative_change"] = relative.mask(~defined)
    out["relative_change_defined"] = defined.astype(bool)

    return out[columns].sort_values("country", kind="mergesort").reset_index(drop=True)


def compute_region_year_totals(records: pd.DataFrame) -> pd.DataFrame:
    # Sum, not mean: feeds a "total" series. Missing values contribute 0.
    if records.empty:
        return pd.DataFrame(columns=["region", "year", "total_kcal"])
    out = (
        records.groupby(["region", "year"], as_index=False)["kcal_per_day"]
        .sum()
        .rename(columns={"kcal_per_day": "total_kcal"})
    )
    return out.sort_values(["region", "year"], kind="mergesort").reset_index(drop=True)


def compute_country_year_totals(records: pd.DataFrame) -> pd.DataFrame:
    keys = ["country"] + _attribute_columns(records) + ["year"]
    if records.empty:
        return pd.DataFrame(columns=keys + ["total_kcal"])
    out = (
        records.groupby(keys, as_index=False)["kcal_per_day"]
        .sum()
        .rename(columns={"kcal_per_day": "total_kcal"})
    )
    return out.sort_values(["country", "year"], kind="mergesort").reset_index(drop=True)


def _extreme(change: pd.DataFrame, col: str, how: str) -> Optional[Dict[str, Any]]:
    if change.empty or col not in change.columns:
        return None
    rows = change
    if col == "relative_change" and "relative_change_defined" in change.columns:
        rows = rows[rows["relative_change_defined"].astype(bool)]
    values = pd.to_numeric(rows[col], errors="coerce").astype(float)
    values = values[values.notna()]
    if values.empty:
        return None
    idx = values.idxmax() if how == "max" else values.idxmin()
    return {"country": str(rows.at[idx, "country"]), "value": float(values.at[idx])}


def summary_statistics(change: pd.DataFrame) -> Dict[str, Optional[Dict[str, Any]]]:
    return {
        "max_absolute": _extreme(change, "absolute_change", "max"),
        "min_absolute": _extreme(change, "absolute_change", "min"),
        "max_relative": _extreme(change, "relative_change", "max"),
        "min_relative": _extreme(change, "relative_change", "min"),
    }


def compute_all_views(records: pd.DataFrame, year_a: int, year_b: int) -> Dict[str, Any]:
    change = compute_change_summary(records, year_a, year_b)
    return {
        "change_summary": change,
        "region_year_totals": compute_region_year_totals(records),
        "country_year_totals": compute_country_year_totals(records),
        "statistics": summary_statistics(change),
    }
