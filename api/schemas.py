from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from foodsupply.filters import DEFAULT_TOP_N


class ReportFiltersModel(BaseModel):
    year_a: Optional[int] = None
    year_b: Optional[int] = None
    selected_regions: List[str] = Field(default_factory=list)
    map_year: Optional[int] = None
    year_range: Optional[Tuple[int, int]] = None
    top_n: int = DEFAULT_TOP_N


class MetaYearsResponse(BaseModel):
    years: List[int]


class MetaRegionsResponse(BaseModel):
    regions: List[str]
