import logging
from contextlib import contextmanager
from typing import Dict, Optional

import altair as alt
import pandas as pd
import streamlit as st

from foodsupply.aggregates import compute_all_views
from foodsupply.data import build_report_data, export_joined_csv, prepare_context
from foodsupply.errors import InputFileError, SchemaError
from foodsupply.filters import normalize_filters
from foodsupply.metrics_change import build_endpoint_chart
from foodsupply.metrics_quality import compute_quality_page
from foodsupply.metrics_trends import build_region_chart, build_supply_map

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(year_a: int, year_b: int, regions) -> str:
    region_chip = "Regions: All" if not regions else f"Regions: {', '.join(regions)}"
    chips = [f"Years: {year_a} vs {year_b}", region_chip]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def format_stat(stat: Optional[Dict[str, object]], fmt: str) -> str:
    if stat is None:
        return "N/A"
    return f"{stat['country']}: {format(stat['value'], fmt)}"


# ---------- UI setup ----------
st.set_page_config(page_title="Food Supply Dashboard", layout="wide")
inject_base_styles()
st.title("Daily Caloric Supply per Person")
st.caption("Kilocalories available per person per day by country, 1961 onward.")

try:
    data_ctx = build_report_data()
except InputFileError as exc:
    st.error(f"Could not read input data: {exc}")
    st.stop()
except SchemaError as exc:
    st.error(f"Input data does not match the expected layout: {exc}")
    st.stop()

years = data_ctx.get("years", [])
regions = data_ctx.get("regions", [])
if not years:
    st.error("No joined supply records. Check the supply and country metadata files.")
    st.stop()

with st.sidebar:
    st.markdown("### Navigate")
    current_page = st.radio("Navigate", ["Change", "Regional trends", "World map", "Data table", "Data quality"], index=0)

    st.markdown("---")
    st.markdown("### Filters")
    year_a = st.selectbox("Start year", options=years, index=0)
    year_b = st.selectbox("End year", options=years, index=len(years) - 1)
    selected_regions = st.multiselect("Regions", options=regions, default=[])
    with st.expander("Advanced settings", expanded=False):
        top_n = st.slider("Top N countries", min_value=5, max_value=50, value=15, step=5)
        year_range = st.slider("Trend year range", min_value=years[0], max_value=years[-1], value=(years[0], years[-1]))
        map_year = st.select_slider("Map year", options=years, value=years[-1])

filters = normalize_filters(
    {
        "year_a": year_a,
        "year_b": year_b,
        "selected_regions": selected_regions,
        "top_n": top_n,
        "year_range": year_range,
        "map_year": map_year,
    },
    available_years=years,
    available_regions=regions,
)
ctx = prepare_context(filters, data_ctx)
joined: pd.DataFrame = ctx["filtered_joined"]
filter_summary_html = format_filter_summary(filters.year_a, filters.year_b, filters.selected_regions)
views = compute_all_views(joined, filters.year_a, filters.year_b)


def render_change_page():
    change = views["change_summary"]
    stats = views["statistics"]
    render_page_header(f"Change {filters.year_a} vs {filters.year_b}", "Home / Change", filter_summary_html, change, "change_summary.csv")

    cols = st.columns(4)
    cols[0].metric("Largest increase", format_stat(stats["max_absolute"], "+,.0f"))
    cols[1].metric("Largest decrease", format_stat(stats["min_absolute"], "+,.0f"))
    cols[2].metric("Largest relative increase", format_stat(stats["max_relative"], "+.1%"))
    cols[3].metric("Largest relative decrease", format_stat(stats["min_relative"], "+.1%"))

    if change.empty:
        st.info("No country has values for both selected years.")
        return

    undefined = int((~change["relative_change_defined"]).sum())
    if undefined:
        st.caption(f"{undefined} country(ies) had zero supply in {filters.year_a}; relative change is undefined for them.")

    with card(f"Top {filters.top_n} countries by {filters.year_b} supply"):
        chart = build_endpoint_chart(change, filters.year_a, filters.year_b, filters.top_n)
        st.altair_chart(chart, use_container_width=True)

    with card("Change summary"):
        display = change.copy()
        display["relative_change"] = display["relative_change"].map(lambda v: f"{float(v):+.1%}" if pd.notna(v) else "undefined")
        st.dataframe(display, use_container_width=True, hide_index=True)


def render_trends_page():
    totals = views["region_year_totals"]
    lo, hi = filters.year_range
    totals = totals[(totals["year"] >= lo) & (totals["year"] <= hi)]
    render_page_header("Regional trends", "Home / Regional trends", filter_summary_html, totals, "region_year_totals.csv")
    if totals.empty:
        st.info("No regional totals for the selected filters.")
        return
    with card("Total kcal per person per day, summed over countries in each region"):
        st.altair_chart(build_region_chart(totals), use_container_width=True)


def render_map_page():
    totals = views["country_year_totals"]
    year_totals = totals[totals["year"] == filters.map_year]
    render_page_header(f"World map {filters.map_year}", "Home / World map", filter_summary_html, year_totals, f"country_totals_{filters.map_year}.csv")
    if year_totals.empty:
        st.info(f"No country values for {filters.map_year}.")
        return
    st.plotly_chart(build_supply_map(year_totals, filters.map_year), use_container_width=True)


def render_table_page():
    render_page_header("Data table", "Home / Data table", filter_summary_html)
    st.dataframe(joined, use_container_width=True, hide_index=True)
    st.download_button(
        "Download full data (CSV)",
        data=export_joined_csv(ctx["joined"]),
        file_name="food_supply_joined.csv",
        mime="text/csv",
    )


def render_quality_page():
    render_page_header("Data quality", "Home / Data quality", filter_summary_html)
    payload = compute_quality_page(filters, ctx)
    with card("Data Quality"):
        st.markdown("**Row counts**")
        st.write(payload["row_counts"])
        st.markdown("**Cleaning checks**")
        st.write(payload["cleaning_checks"])
        for key, label in [
            ("unresolved_supply_names", "Supply names without an ISO3 code"),
            ("unresolved_metadata_names", "Metadata names without an ISO3 code"),
            ("unmatched_supply_countries", "Supply countries without metadata"),
        ]:
            if payload[key]:
                st.markdown(f"**{label}** ({len(payload[key])})")
                st.write(", ".join(payload[key]))
        if payload["year_coverage"]:
            st.markdown("**Coverage by region**")
            st.dataframe(pd.DataFrame(payload["year_coverage"]), hide_index=True)


if current_page == "Change":
    render_change_page()
elif current_page == "Regional trends":
    render_trends_page()
elif current_page == "World map":
    render_map_page()
elif current_page == "Data table":
    render_table_page()
else:
    render_quality_page()
