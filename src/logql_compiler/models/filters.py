"""Pydantic models for filter state consumed by the compiler."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from logql_compiler.escaping import EMPTY_VARIABLE_VALUE
from logql_compiler.observability.logging import get_logger

logger = get_logger(__name__)

ParserType = Literal["logfmt", "json", "structuredMetadata", "mixed"]


class FilterMeta(BaseModel):
    """Extra filter metadata attached by the key picker."""

    parser: Optional[ParserType] = Field(None, description="Parser that produced the field")


class Filter(BaseModel):
    """A single key/operator/value filter as held by a filter variable."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., description="Label, field or case-sensitivity key")
    operator: str = Field(..., description="Operator symbol, rendered verbatim")
    value: str = Field("", description="Raw value, or a FieldValue envelope for fields")
    value_labels: Optional[list[str]] = Field(
        None, alias="valueLabels", description="Display labels for the value"
    )
    meta: Optional[FilterMeta] = Field(None, description="Optional filter metadata")


class FieldValue(BaseModel):
    """Decoded payload of a structured-field filter value."""

    value: str
    parser: ParserType = "mixed"


class FieldFilter(BaseModel):
    """A structured-field filter with its value already decoded."""

    key: str
    operator: str
    value: FieldValue

    @classmethod
    def from_filter(cls, filter: Filter) -> "FieldFilter":
        return cls(
            key=filter.key,
            operator=filter.operator,
            value=decode_field_value(filter.value),
        )


class Pattern(BaseModel):
    """A detected log line pattern applied as include or exclude."""

    pattern: str = Field(..., description="Pattern template, e.g. 'level=info <_>'")
    type: Literal["include", "exclude"] = Field(..., description="Pattern mode")


class ValueSuggestion(BaseModel):
    """A candidate value offered by autocomplete."""

    text: str
    value: Optional[str] = None


class LokiQuery(BaseModel):
    """Query envelope handed to the query-execution collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field("A", alias="refId")
    query_type: str = Field("range", alias="queryType")
    editor_mode: str = Field("code", alias="editorMode")
    supporting_query_type: str = Field(
        "grafana-lokiexplore-app", alias="supportingQueryType"
    )
    expr: str
    resource: Optional[str] = None
    primary_label: Optional[str] = Field(None, alias="primaryLabel")
    datasource: Optional[dict[str, str]] = None


def decode_field_value(raw: str) -> FieldValue:
    """Decode the ``{value, parser}`` envelope of a field filter.

    The empty marker and values that are not an envelope (hand-typed custom
    values) fall back to the raw string with the ``mixed`` parser.
    """
    if raw == EMPTY_VARIABLE_VALUE:
        return FieldValue(value=raw, parser="mixed")
    try:
        return FieldValue.model_validate_json(raw)
    except ValidationError:
        logger.warning(
            "Field filter value is not an envelope, using raw value",
            extra={"extra_fields": {"value": raw}},
        )
        return FieldValue(value=raw, parser="mixed")


def encode_field_value(field_value: FieldValue) -> str:
    return field_value.model_dump_json()


def on_add_custom_value(
    value: Optional[str], label: Optional[str], filter: Optional[Filter]
) -> dict:
    """Turn a user-typed custom value into an enveloped filter value."""
    parser = filter.meta.parser if filter and filter.meta and filter.meta.parser else "mixed"
    field = FieldValue(value=value or "", parser=parser)
    return {
        "value": encode_field_value(field),
        "value_labels": [label or field.value],
    }
