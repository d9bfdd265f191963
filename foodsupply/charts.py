from __future__ import annotations

import json
from typing import Any, Dict

import altair as alt
import plotly.graph_objects as go

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def to_plotly_spec(fig: go.Figure) -> Dict[str, Any]:
    """Convert a Plotly figure into a plain dict (JSON-serializable)."""
    return json.loads(fig.to_json())
