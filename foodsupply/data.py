from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from foodsupply.codes import CountryCodeTable, load_code_table, normalize_country_name, resolve_country_code
from foodsupply.errors import InputFileError, SchemaError
from foodsupply.filters import METADATA_PATH, SUPPLY_PATH, ReportFilters, normalize_filters


logger = logging.getLogger(__name__)

SUPPLY_COLUMNS = {
    "country": "country",
    "country name": "country",
    "entity": "country",
    "area": "country",
    "name": "country",
}

METADATA_COLUMNS = {
    "name": "name",
    "country": "name",
    "country name": "name",
    "region": "region",
    "population": "population",
    "area": "area",
    "area (sq. mi.)": "area",
}
METADATA_NUMERIC = ["population", "area"]

JOINED_KEY_COLUMNS = ["country", "iso3_code", "region", "year", "kcal_per_day"]

_YEAR_RE = re.compile(r"\d{1,4}")


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


# ---------------- Loader ----------------
def read_table(path: Path) -> pd.DataFrame:
    path = Path(path)
    try:
        df = pd.read_csv(path, encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise InputFileError(f"Input file not found: {path}") from exc
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise InputFileError(f"Input file is not tabular CSV: {path} ({exc})") from exc
    except OSError as exc:
        raise InputFileError(f"Input file is unreadable: {path} ({exc})") from exc
    # Rows wider than the header make pandas promote the first field to the index.
    if not isinstance(df.index, pd.RangeIndex):
        raise InputFileError(f"Input file is not tabular CSV: {path} (data rows have more fields than the header)")
    return df


def year_columns(df: pd.DataFrame, id_columns: Sequence[str] = ("country",)) -> Dict[str, int]:
    """Map every non-id column header to its integer year.

    The year set is taken from the header as-is, so a source that grows new
    year columns is picked up without any change here.
    """
    years: Dict[str, int] = {}
    bad: List[str] = []
    for col in df.columns:
        if col in id_columns:
            continue
        label = str(col).strip()
        if _YEAR_RE.fullmatch(label):
            years[col] = int(label)
        else:
            bad.append(str(col))
    if bad:
        raise SchemaError(f"Non-numeric year column header(s): {bad}")
    if not years:
        raise SchemaError("Supply table has no year columns")
    return years


def load_supply_raw(path: Optional[Path] = None) -> pd.DataFrame:
    path = Path(path or SUPPLY_PATH)
    df = read_table(path)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=lambda c: SUPPLY_COLUMNS.get(c.lower(), c))
    if "country" not in df.columns:
        raise SchemaError(f"Supply table {path} has no country column")
    if df.columns.duplicated().any():
        dupes = sorted(set(df.columns[df.columns.duplicated()]))
        raise SchemaError(f"Supply table {path} has duplicate columns: {dupes}")
    years = year_columns(df)
    df = coerce_str_safe(df, ["country"])
    df = numericize(df, years.keys())
    logger.info("Loaded %d supply rows with %d year columns from %s", len(df), len(years), path)
    return df


def load_country_metadata(path: Optional[Path] = None) -> pd.DataFrame:
    path = Path(path or METADATA_PATH)
    df = read_table(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    df = df.rename(columns=METADATA_COLUMNS)
    df = drop_duplicate_columns(df)
    missing = {"name", "region"} - set(df.columns)
    if missing:
        raise SchemaError(f"Country metadata {path} is missing required columns: {sorted(missing)}")
    df = coerce_str_safe(df, ["name", "region"])
    df = numericize(df, METADATA_NUMERIC)
    logger.info("Loaded %d country metadata rows from %s", len(df), path)
    return df


# ---------------- Reshaper / Joiner ----------------
def deduplicate_raw(df: pd.DataFrame) -> pd.DataFrame:
    out = df.drop_duplicates().reset_index(drop=True)
    removed = len(df) - len(out)
    if removed:
        logger.info("Removed %d duplicate raw supply rows", removed)
    return out


def reshape_to_long(df: pd.DataFrame) -> pd.DataFrame:
    """Wide year columns -> one (country, year, kcal_per_day) row per present cell."""
    if "country" not in df.columns:
        raise SchemaError("Supply table has no country column")
    years = year_columns(df)
    long = df.melt(
        id_vars=["country"],
        value_vars=list(years.keys()),
        var_name="year",
        value_name="kcal_per_day",
    )
    long["year"] = long["year"].map(years).astype(int)
    long["kcal_per_day"] = pd.to_numeric(long["kcal_per_day"], errors="coerce").astype(float)
    long = long.dropna(subset=["country", "kcal_per_day"])
    long["country"] = long["country"].astype(str)

    name_key = long["country"].map(lambda n: normalize_country_name(n) or n)
    clash = pd.DataFrame({"name_key": name_key, "year": long["year"]}).duplicated(keep="first")
    if clash.any():
        names = sorted(long.loc[clash, "country"].unique().tolist())
        logger.warning("Conflicting supply rows for %s; keeping the first row per country/year", names)
        long = long[~clash]

    return long.sort_values(["country", "year"], kind="mergesort").reset_index(drop=True)[
        ["country", "year", "kcal_per_day"]
    ]


def attach_country_codes(df: pd.DataFrame, table: CountryCodeTable, *, name_col: str = "country") -> pd.DataFrame:
    out = df.copy()
    out["iso3_code"] = out[name_col].map(lambda name: resolve_country_code(name, table)).astype(object)
    return out


def unresolved_names(df: pd.DataFrame, table: CountryCodeTable, *, name_col: str = "country") -> List[str]:
    if df.empty or name_col not in df.columns:
        return []
    names = df[name_col].dropna().astype(str).unique()
    return sorted(n for n in names if resolve_country_code(n, table) is None)


def join_supply_metadata(supply: pd.DataFrame, metadata: pd.DataFrame, table: CountryCodeTable) -> pd.DataFrame:
    """Inner join long supply records to country metadata on (name, ISO3).

    Names are compared in normalized form. Rows whose name resolves to no code,
    or that find no partner on the other side, are dropped.
    """
    left = attach_country_codes(supply, table, name_col="country")
    right = attach_country_codes(metadata, table, name_col="name")

    for label, frame, col in [("supply", left, "country"), ("metadata", right, "name")]:
        missing = sorted(frame.loc[frame["iso3_code"].isna(), col].dropna().astype(str).unique().tolist())
        if missing:
            logger.warning("No ISO3 code for %d %s name(s), excluded from join: %s", len(missing), label, missing)

    no_region = right["region"].isna() & right["iso3_code"].notna()
    if no_region.any():
        logger.warning("Country metadata without region, excluded from join: %s", right.loc[no_region, "name"].tolist())

    left = left.dropna(subset=["iso3_code"])
    right = right.dropna(subset=["iso3_code", "name", "region"])
    right = right.assign(name_key=right["name"].map(normalize_country_name))
    dupes = right.duplicated(subset=["name_key", "iso3_code"], keep="first")
    if dupes.any():
        logger.warning("Duplicate country metadata rows, keeping the first: %s", right.loc[dupes, "name"].tolist())
        right = right[~dupes]
    right = right.drop(columns=["name"]).assign(region=lambda d: d["region"].astype(str))
    right = right.drop(columns=[c for c in ["country", "year", "kcal_per_day"] if c in right.columns])

    left = left.assign(name_key=left["country"].map(normalize_country_name))
    joined = left.merge(right, on=["name_key", "iso3_code"], how="inner", validate="many_to_one")
    joined = joined.drop(columns=["name_key"]).dropna(subset=["kcal_per_day"])

    extra = [c for c in joined.columns if c not in JOINED_KEY_COLUMNS]
    joined = joined[JOINED_KEY_COLUMNS + extra]
    return joined.sort_values(["country", "year"], kind="mergesort").reset_index(drop=True)


# ---------------- Public API (Streamlit + FastAPI use) ----------------
def build_report_data(
    supply_path: Optional[Path] = None,
    metadata_path: Optional[Path] = None,
    code_table: Optional[CountryCodeTable] = None,
) -> Dict[str, object]:
    """Run the Loader and Reshaper/Joiner from the two source files."""
    table = code_table if code_table is not None else load_code_table()
    raw = load_supply_raw(supply_path)
    metadata = load_country_metadata(metadata_path)

    deduped = deduplicate_raw(raw)
    supply = reshape_to_long(deduped)
    joined = join_supply_metadata(supply, metadata, table)

    year_cols = list(year_columns(deduped).keys())
    supply_unresolved = unresolved_names(supply, table, name_col="country")
    resolved_supply = set(supply["country"].unique()) - set(supply_unresolved)
    unmatched = sorted(resolved_supply - set(joined["country"].unique()))
    if unmatched:
        logger.warning("Supply countries with no metadata match: %s", unmatched)

    years = sorted(int(y) for y in joined["year"].unique())
    regions = sorted(str(r) for r in joined["region"].unique())

    return {
        "joined": joined,
        "years": years,
        "regions": regions,
        "quality": {
            "raw_rows": int(len(raw)),
            "duplicate_rows_removed": int(len(raw) - len(deduped)),
            "empty_cells_dropped": int(deduped[year_cols].isna().sum().sum()),
            "supply_records": int(len(supply)),
            "metadata_rows": int(len(metadata)),
            "joined_records": int(len(joined)),
            "joined_countries": int(joined["country"].nunique()),
            "unresolved_supply_names": supply_unresolved,
            "unresolved_metadata_names": unresolved_names(metadata, table, name_col="name"),
            "unmatched_supply_countries": unmatched,
        },
    }


def prepare_context(filters: dict | ReportFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    joined: pd.DataFrame = data_ctx.get("joined", pd.DataFrame())
    if isinstance(filters, ReportFilters):
        filt = filters
    else:
        filt = normalize_filters(
            filters or {},
            available_years=data_ctx.get("years", []),
            available_regions=data_ctx.get("regions", []),
        )

    filtered = joined
    if filt.selected_regions and not filtered.empty:
        filtered = filtered[filtered["region"].isin(filt.selected_regions)].reset_index(drop=True)

    return {
        "filters": filt,
        "joined": joined,
        "filtered_joined": filtered,
        "years": data_ctx.get("years", []),
        "regions": data_ctx.get("regions", []),
        "quality": data_ctx.get("quality", {}),
    }


def export_joined_csv(joined: pd.DataFrame) -> bytes:
    return joined.to_csv(index=False).encode("utf-8")
