from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from foodsupply.filters import ReportFilters


def compute_quality_page(filters: ReportFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    joined: pd.DataFrame = ctx.get("joined", pd.DataFrame())
    quality: Dict[str, Any] = dict(ctx.get("quality", {}) or {})
    payload = {
        "filters": asdict(filters),
        "row_counts": {
            "raw_rows": int(quality.get("raw_rows", 0) or 0),
            "supply_records": int(quality.get("supply_records", 0) or 0),
            "metadata_rows": int(quality.get("metadata_rows", 0) or 0),
            "joined_records": int(len(joined)),
        },
        "cleaning_checks": {
            "duplicate_rows_removed": int(quality.get("duplicate_rows_removed", 0) or 0),
            "empty_cells_dropped": int(quality.get("empty_cells_dropped", 0) or 0),
        },
        "unresolved_supply_names": list(quality.get("unresolved_supply_names", [])),
        "unresolved_metadata_names": list(quality.get("unresolved_metadata_names", [])),
        "unmatched_supply_countries": list(quality.get("unmatched_supply_countries", [])),
        "year_coverage": [],
    }

    if not joined.empty:
        coverage = (
            joined.groupby("region")
            .agg(countries=("country", "nunique"), first_year=("year", "min"), last_year=("year", "max"))
            .reset_index()
        )
        payload["year_coverage"] = coverage.to_dict(orient="records")
    return payload
