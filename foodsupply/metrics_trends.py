from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import altair as alt
import pandas as pd
import plotly.express as px

from foodsupply.aggregates import compute_country_year_totals, compute_region_year_totals
from foodsupply.charts import to_plotly_spec, to_vega_spec
from foodsupply.filters import ReportFilters


def build_region_chart(totals: pd.DataFrame) -> alt.Chart:
    hover = alt.selection_point(fields=["region"], on="mouseover", empty="all")
    return (
        alt.Chart(totals)
        .mark_line(point={"filled": True, "size": 30})
        .encode(
            x=alt.X("year:Q", title="Year", axis=alt.Axis(format="d", grid=False)),
            y=alt.Y("total_kcal:Q", title="Total kcal / person / day", axis=alt.Axis(format="~s", gridDash=[4, 4])),
            color=alt.Color("region:N", title="Region"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["region", "year", alt.Tooltip("total_kcal:Q", format=",.0f")],
        )
        .add_params(hover)
        .properties(height=360)
    )


def compute_trends_page(filters: ReportFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    joined: pd.DataFrame = ctx.get("filtered_joined", pd.DataFrame())
    totals = compute_region_year_totals(joined)
    if totals.empty:
        return {"filters": asdict(filters), "totals": [], "charts": {}}

    lo, hi = filters.year_range
    totals = totals[(totals["year"] >= lo) & (totals["year"] <= hi)].reset_index(drop=True)

    return {
        "filters": asdict(filters),
        "year_range": [lo, hi],
        "totals": totals.to_dict(orient="records"),
        "charts": {"region_totals": to_vega_spec(build_region_chart(totals))},
    }


def build_supply_map(totals: pd.DataFrame, year: int):
    return px.choropleth(
        totals,
        locations="iso3_code",
        color="total_kcal",
        hover_name="country",
        color_continuous_scale="Viridis",
        labels={"total_kcal": "kcal / person / day"},
        title=f"Daily caloric supply per person, {year}",
    )


def compute_map_page(filters: ReportFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    joined: pd.DataFrame = ctx.get("filtered_joined", pd.DataFrame())
    totals = compute_country_year_totals(joined)
    year = filters.map_year
    if totals.empty:
        return {"filters": asdict(filters), "year": year, "totals": [], "charts": {}}

    year_totals = totals[totals["year"] == year].reset_index(drop=True)
    charts: Dict[str, Any] = {}
    if not year_totals.empty:
        charts["world_map"] = to_plotly_spec(build_supply_map(year_totals, year))

    return {
        "filters": asdict(filters),
        "year": year,
        "totals": year_totals.to_dict(orient="records"),
        "charts": charts,
    }
