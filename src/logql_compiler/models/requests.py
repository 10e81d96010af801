"""Pydantic models for API requests."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from logql_compiler.models.filters import Filter, Pattern


class TimeRange(BaseModel):
    """Time range for value lookups."""

    start: datetime = Field(..., description="Start time (ISO 8601 format)")
    end: datetime = Field(..., description="End time (ISO 8601 format)")


class QueryOverrides(BaseModel):
    """Envelope settings a caller may override; unknown keys are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    ref_id: Optional[str] = Field(None, alias="refId")
    query_type: Optional[str] = Field(None, alias="queryType")
    editor_mode: Optional[str] = Field(None, alias="editorMode")
    supporting_query_type: Optional[str] = Field(None, alias="supportingQueryType")


class CompileRequest(BaseModel):
    """Filter state of every variable, compiled into one expression."""

    labels: list[Filter] = Field(default_factory=list, description="Stream label filters")
    metadata: list[Filter] = Field(default_factory=list, description="Structured metadata filters")
    fields: list[Filter] = Field(
        default_factory=list, description="Parsed field filters with {value, parser} envelopes"
    )
    line_filters: list[Filter] = Field(default_factory=list, description="Free-text line filters")
    patterns: list[Pattern] = Field(default_factory=list, description="Applied patterns")
    levels: list[Filter] = Field(default_factory=list, description="Detected level filters")
    query_overrides: QueryOverrides = Field(
        default_factory=QueryOverrides, description="Overrides for the query envelope"
    )


class LabelValuesRequest(BaseModel):
    """Request candidate values for a stream label."""

    filter: Filter = Field(..., description="Filter whose value is being edited")
    filters: list[Filter] = Field(default_factory=list, description="Current label filters")
    datasource_uid: str = Field("default", description="Data source identity for favorites")
    time_range: Optional[TimeRange] = Field(None, description="Optional lookup window")


class DetectedFieldValuesRequest(BaseModel):
    """Request candidate values for a detected field or metadata key."""

    filter: Filter = Field(..., description="Filter whose value is being edited")
    filters: list[Filter] = Field(default_factory=list, description="Current filters of the variable")
    expr: str = Field(..., description="Expression scoping the lookup")
    variable_type: str = Field("fields", description="fields|metadata|levels")
    limit: int = Field(1000, ge=1, le=5000, description="Maximum values to fetch")
    time_range: Optional[TimeRange] = Field(None, description="Optional lookup window")


class FavoriteValuesRequest(BaseModel):
    values: list[str] = Field(..., min_length=1, description="Values to mark as favorite")
