"""Pydantic models for API responses."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from logql_compiler.models.filters import LokiQuery, ValueSuggestion


class QueryFragments(BaseModel):
    """Per-category fragments, in assembly order."""

    labels: str = Field(..., description="Stream selector body")
    metadata: str = Field(..., description="Structured metadata stages")
    levels: str = Field(..., description="Detected level stage")
    fields: str = Field(..., description="Parsed field stages, numeric last")
    line_filters: str = Field(..., description="Line filter stages")
    patterns: str = Field(..., description="Pattern stages")


class CompileResponse(BaseModel):
    """Compiled expression and its query envelope."""

    expr: str = Field(..., description="Full LogQL expression")
    fragments: QueryFragments = Field(..., description="Fragments the expression is built from")
    query: LokiQuery = Field(..., description="Query envelope for execution")


class TagValuesResponse(BaseModel):
    """Autocomplete values; replace tells the picker to drop its own list."""

    replace: bool = Field(True, description="Replace existing options")
    values: List[ValueSuggestion] = Field(default_factory=list, description="Suggested values")


class FavoriteValuesResponse(BaseModel):
    datasource_uid: str
    key: str
    values: List[str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status (healthy|degraded|unhealthy)")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    dependencies: Optional[Dict[str, str]] = Field(None, description="Status of external dependencies")
