from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import altair as alt
import pandas as pd

from foodsupply.aggregates import compute_change_summary, summary_statistics
from foodsupply.charts import to_vega_spec
from foodsupply.filters import ReportFilters


def build_endpoint_chart(change: pd.DataFrame, year_a: int, year_b: int, top_n: int) -> alt.Chart:
    """Grouped bars of both endpoint values for the top_n countries by end value."""
    top = change.sort_values(["value_at_t1", "country"], ascending=[False, True], kind="mergesort").head(top_n)
    compare = top.melt(
        id_vars=["country"],
        value_vars=["value_at_t0", "value_at_t1"],
        var_name="endpoint",
        value_name="kcal_per_day",
    )
    compare["year"] = compare["endpoint"].map({"value_at_t0": str(year_a), "value_at_t1": str(year_b)})
    return (
        alt.Chart(compare)
        .mark_bar()
        .encode(
            x=alt.X("country:N", title="Country", sort=top["country"].tolist()),
            xOffset="year:N",
            y=alt.Y("kcal_per_day:Q", title="kcal / person / day", axis=alt.Axis(format=",.0f")),
            color=alt.Color("year:N", title="Year"),
            tooltip=["country", "year", alt.Tooltip("kcal_per_day:Q", format=",.0f")],
        )
        .properties(height=320)
    )


def compute_change_page(filters: ReportFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    joined: pd.DataFrame = ctx.get("filtered_joined", pd.DataFrame())
    year_a, year_b = filters.year_a, filters.year_b

    change = compute_change_summary(joined, year_a, year_b)
    stats = summary_statistics(change)
    if change.empty:
        return {"filters": asdict(filters), "years": [year_a, year_b], "statistics": stats, "table": [], "gainers": [], "decliners": [], "charts": {}}

    ranked = change.sort_values(["absolute_change", "country"], ascending=[False, True], kind="mergesort")
    gainers = ranked.head(filters.top_n)
    decliners = ranked.iloc[::-1].head(filters.top_n)
    compare_chart = build_endpoint_chart(change, year_a, year_b, filters.top_n)

    movers = pd.concat([gainers, decliners]).drop_duplicates(subset=["country"])
    movers = movers[["country", "absolute_change"]]
    change_chart = (
        alt.Chart(movers)
        .mark_bar()
        .encode(
            x=alt.X("absolute_change:Q", title=f"Change {year_a}–{year_b} (kcal)", axis=alt.Axis(format="+,.0f")),
            y=alt.Y("country:N", title=None, sort="-x"),
            color=alt.condition(alt.datum.absolute_change >= 0, alt.value("#0f766e"), alt.value("#b91c1c")),
            tooltip=["country", alt.Tooltip("absolute_change:Q", format="+,.0f")],
        )
    )

    return {
        "filters": asdict(filters),
        "years": [year_a, year_b],
        "statistics": stats,
        "table": change.to_dict(orient="records"),
        "gainers": gainers.to_dict(orient="records"),
        "decliners": decliners.to_dict(orient="records"),
        "charts": {"endpoint_comparison": to_vega_spec(compare_chart), "absolute_change": to_vega_spec(change_chart)},
    }
