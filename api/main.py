from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import MetaRegionsResponse, MetaYearsResponse, ReportFiltersModel
from foodsupply.data import build_report_data, export_joined_csv, prepare_context
from foodsupply.errors import InputFileError, SchemaError
from foodsupply.filters import ReportFilters, normalize_filters
from foodsupply.metrics_change import compute_change_page
from foodsupply.metrics_quality import compute_quality_page
from foodsupply.metrics_trends import compute_map_page, compute_trends_page


app = FastAPI(title="Food Supply Report API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: ReportFiltersModel, data_ctx: dict) -> ReportFilters:
    return normalize_filters(
        model.model_dump(),
        available_years=data_ctx.get("years", []),
        available_regions=data_ctx.get("regions", []),
    )


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, endpoint: str) -> JSONResponse:
    if isinstance(exc, SchemaError):
        status = 422
    elif isinstance(exc, InputFileError):
        status = 503
    else:
        status = 500
    logger.exception("%s failed", endpoint)
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/years", response_model=MetaYearsResponse)
def meta_years():
    try:
        data_ctx = build_report_data()
        return _json({"years": [int(y) for y in data_ctx.get("years", [])]})
    except Exception as exc:
        return _error(exc, "meta_years")


@app.get("/meta/regions", response_model=MetaRegionsResponse)
def meta_regions():
    try:
        data_ctx = build_report_data()
        return _json({"regions": [str(r) for r in data_ctx.get("regions", [])]})
    except Exception as exc:
        return _error(exc, "meta_regions")


@app.post("/change")
def change(filters: ReportFiltersModel):
    try:
        data_ctx = build_report_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_change_page(f, ctx))
    except Exception as exc:
        return _error(exc, "change")


@app.post("/trends")
def trends(filters: ReportFiltersModel):
    try:
        data_ctx = build_report_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_trends_page(f, ctx))
    except Exception as exc:
        return _error(exc, "trends")


@app.post("/map")
def world_map(filters: ReportFiltersModel):
    try:
        data_ctx = build_report_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_map_page(f, ctx))
    except Exception as exc:
        return _error(exc, "map")


@app.post("/quality")
def quality(filters: ReportFiltersModel):
    try:
        data_ctx = build_report_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_quality_page(f, ctx))
    except Exception as exc:
        return _error(exc, "quality")


@app.get("/export/joined.csv")
def export_joined():
    try:
        data_ctx = build_report_data()
    except Exception as exc:
        return _error(exc, "export_joined")
    csv_bytes = export_joined_csv(data_ctx["joined"])
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=food_supply_joined.csv"},
    )
