from __future__ import annotations

from pydantic import BaseModel, Field


class VisitRecorded(BaseModel):
    recorded: bool


class VisitSummaryParams(BaseModel):
    days: int = Field(default=30, ge=1, le=365)


class PropertyVisitSummary(BaseModel):
    property_id: int
    total_visits: int
    period_visits: int
    unique_visitors: int
    days: int
    daily: dict[str, int]


class PropertyVisitCount(BaseModel):
    property_id: int
    title: str
    visits: int


class TrendingParams(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)
