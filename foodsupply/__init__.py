"""Core (UI-agnostic) food supply report logic.

This package contains:
- data loading (CSV -> pandas) and wide-to-long reshaping
- country-code resolution and the supply/metadata join
- aggregated views (change summary, region and country totals)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict, Plotly -> figure dict)
"""
