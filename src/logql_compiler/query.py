"""Render filter state into LogQL fragments.

Each renderer takes a flat filter list and returns one fragment string.
Empty input always renders as an empty string. Renderers never raise on
unknown operators; the symbol is copied into the output as-is.

Callers assemble the fragments in a fixed order, see ``build_expression``.
"""

import re
from typing import Iterable, Optional, Union

from logql_compiler.escaping import (
    EMPTY_VARIABLE_VALUE,
    escape_exact_selector,
    escape_regex_selector,
)
from logql_compiler.grouping import group_by_key, group_by_key_and_inclusion
from logql_compiler.models.filters import FieldFilter, Filter, LokiQuery, Pattern
from logql_compiler.operators import (
    FilterOp,
    LineFilterCaseSensitive,
    LineFilterOp,
    is_operator_exclusive,
    is_operator_numeric,
)

# Default line limit; each data source can define its own
LINE_LIMIT = 1000

LEVEL_VARIABLE_VALUE = "detected_level"
MATCH_ALL_SELECTOR = '{job=~".+"}'
VAR_DATASOURCE_EXPR = "${ds}"

LINE_FILTER_CASE_ORDER = {
    LineFilterCaseSensitive.caseSensitive.value: 0,
    LineFilterCaseSensitive.caseInsensitive.value: 1,
}
LINE_FILTER_OPERATOR_ORDER = {
    LineFilterOp.match.value: 0,
    LineFilterOp.negativeMatch.value: 1,
    LineFilterOp.regex.value: 2,
    LineFilterOp.negativeRegex.value: 3,
}


def render_matcher(key: str, operator: str, value: str) -> str:
    """Render ``key<op>"value"``, leaving the empty marker unquoted."""
    if value == EMPTY_VARIABLE_VALUE:
        return f"{key}{operator}{value}"
    return f'{key}{operator}"{escape_exact_selector(value)}"'


def render_filter(filter: Filter) -> str:
    return render_matcher(filter.key, filter.operator, filter.value)


def render_regex_label_filter(key: str, values: list[str], operator: str) -> str:
    # no regex escaping: values may already be alternation patterns
    joined = "|".join(escape_exact_selector(v) for v in values)
    return f'{key}{operator}"{joined}"'


# ---------------------------------------------------------------------------
# Label filters (stream selector)
# ---------------------------------------------------------------------------


def render_label_filters(filters: Iterable[Filter]) -> str:
    """Render label filters as the comma separated body of a stream selector.

    Multiple inclusive filters on one key collapse into a single ``=~``
    alternation. Exclusive filters are rendered one by one.

    Example:
        level="info", level="error" -> level=~"info|error"
    """
    groups = group_by_key_and_inclusion(filters)

    positive_filters = []
    for key, group in groups.positive_groups.items():
        if len(group) == 1:
            positive_filters.append(render_filter(group[0]))
        else:
            positive_filters.append(
                render_regex_label_filter(
                    key, [f.value for f in group], FilterOp.RegexEqual.value
                )
            )

    negative_filters = [
        render_filter(f) for group in groups.negative_groups.values() for f in group
    ]

    joined = f"{', '.join(positive_filters)}, {', '.join(negative_filters)}"
    return joined.strip(" ,")


# ---------------------------------------------------------------------------
# Metadata and field filters (pipeline stages)
# ---------------------------------------------------------------------------


def _render_pipeline_groups(positive: dict, negative: list, render) -> list[str]:
    blocks = []
    positive_block = " ".join(
        "| " + " or ".join(render(f) for f in group) for group in positive.values()
    )
    if positive_block:
        blocks.append(positive_block)
    negative_block = " ".join(f"| {render(f)}" for f in negative)
    if negative_block:
        blocks.append(negative_block)
    return blocks


def render_metadata_filters(filters: Iterable[Filter]) -> str:
    """Render structured metadata filters as ``| k="v1" or k="v2" | k!="v3"``."""
    groups = group_by_key_and_inclusion(filters)
    negative = [f for group in groups.negative_groups.values() for f in group]
    return " ".join(
        _render_pipeline_groups(groups.positive_groups, negative, render_filter)
    )


def _field_filter_to_query_string(filter: FieldFilter) -> str:
    return render_matcher(filter.key, filter.operator, filter.value.value)


def _field_numeric_filter_to_query_string(filter: FieldFilter) -> str:
    return f"{filter.key}{filter.operator}{filter.value.value}"


def render_field_filters(filters: Iterable[Union[FieldFilter, Filter]]) -> str:
    """Render parsed-field filters.

    Values are decoded from their ``{value, parser}`` envelope first. Output is
    the grouped inclusive block, then exclusive filters, then numeric
    comparisons (never grouped, never quoted).
    """
    decoded = [
        f if isinstance(f, FieldFilter) else FieldFilter.from_filter(f) for f in filters
    ]
    numeric = [f for f in decoded if is_operator_numeric(f.operator)]
    rest = [f for f in decoded if not is_operator_numeric(f.operator)]

    positive = group_by_key(f for f in rest if not is_operator_exclusive(f.operator))
    negative = [f for f in rest if is_operator_exclusive(f.operator)]

    blocks = _render_pipeline_groups(positive, negative, _field_filter_to_query_string)
    numeric_block = " ".join(
        f"| {_field_numeric_filter_to_query_string(f)}" for f in numeric
    )
    if numeric_block:
        blocks.append(numeric_block)
    return " ".join(blocks)


def render_levels_filter(filters: Iterable[Filter]) -> str:
    filters = list(filters)
    if filters:
        values = "|".join(f.value for f in filters)
        return f"| {LEVEL_VARIABLE_VALUE}=~`{values}`"
    return ""


# ---------------------------------------------------------------------------
# Line filters
# ---------------------------------------------------------------------------


def sort_line_filters(filters: Iterable[Filter]) -> list[Filter]:
    """Stable sort: case-sensitive before case-insensitive, then by operator."""
    return sorted(
        filters,
        key=lambda f: (
            LINE_FILTER_CASE_ORDER.get(f.key, len(LINE_FILTER_CASE_ORDER)),
            LINE_FILTER_OPERATOR_ORDER.get(f.operator, len(LINE_FILTER_OPERATOR_ORDER)),
        ),
    )


def escape_double_quoted_line_filter(filter: Filter) -> str:
    # literal matches made case-insensitive go through the regex operator
    if filter.operator in (LineFilterOp.match.value, LineFilterOp.negativeMatch.value):
        if filter.key == LineFilterCaseSensitive.caseInsensitive.value:
            return escape_regex_selector(filter.value)
    return escape_exact_selector(filter.value)


def _build_line_filter(filter: Filter, value: str) -> str:
    if filter.key == LineFilterCaseSensitive.caseInsensitive.value:
        if filter.operator in (
            LineFilterOp.negativeRegex.value,
            LineFilterOp.negativeMatch.value,
        ):
            return f'{LineFilterOp.negativeRegex.value} "(?i){value}"'
        return f'{LineFilterOp.regex.value} "(?i){value}"'
    return f'{filter.operator} "{value}"'


def render_line_filters(filters: Iterable[Filter]) -> str:
    """Render free-text line filters, e.g. ``|= "foo" |~ "(?i)bar"``.

    Filters with an empty value are placeholders and render nothing.
    """
    rendered = []
    for filter in sort_line_filters(filters):
        if filter.value == "":
            continue
        value = escape_double_quoted_line_filter(filter)
        rendered.append(_build_line_filter(filter, value))
    return " ".join(rendered)


# ---------------------------------------------------------------------------
# Pattern filters
# ---------------------------------------------------------------------------


def render_pattern_filters(patterns: Iterable[Pattern]) -> str:
    """Render exclude patterns as ``!> "p"`` and include patterns as one ``|>``."""
    patterns = list(patterns)
    exclude_line = " ".join(
        f'!> "{escape_exact_selector(p.pattern)}"'
        for p in patterns
        if p.type == "exclude"
    )

    include_patterns = [p for p in patterns if p.type == "include"]
    include_line = ""
    if include_patterns:
        include_line = "|> " + " or ".join(
            f'"{escape_exact_selector(p.pattern)}"' for p in include_patterns
        )

    return f"{exclude_line} {include_line}".strip()


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def sanitize_stream_selector(expression: str) -> str:
    """Drop a dangling comma before the closing brace of a caller-supplied selector.

    Not quote-aware; selectors built by ``build_expression`` never need it.
    """
    return re.sub(r"\s*,\s*}", "}", expression, count=1)


def build_expression(
    labels: Iterable[Filter] = (),
    metadata: Iterable[Filter] = (),
    fields: Iterable[Union[FieldFilter, Filter]] = (),
    line_filters: Iterable[Filter] = (),
    patterns: Iterable[Pattern] = (),
    levels: Iterable[Filter] = (),
) -> str:
    """Assemble a full LogQL expression from every filter category."""
    label_fragment = render_label_filters(labels)
    selector = f"{{{label_fragment}}}" if label_fragment else MATCH_ALL_SELECTOR

    fragments = [
        selector,
        render_metadata_filters(metadata),
        render_levels_filter(levels),
        render_field_filters(fields),
        render_line_filters(line_filters),
        render_pattern_filters(patterns),
    ]
    return " ".join(fragment for fragment in fragments if fragment)


def build_data_query(expr: str, **overrides) -> LokiQuery:
    """Build a range query envelope for an expression."""
    return LokiQuery(**{**overrides, "expr": expr})


def build_resource_query(
    expr: str,
    resource: str,
    primary_label: Optional[str] = None,
    **overrides,
) -> LokiQuery:
    """Build a query envelope for a resource endpoint (volume, patterns, ...)."""
    params = {"ref_id": resource, "resource": resource, **overrides}
    params.update(
        expr=expr,
        primary_label=primary_label,
        datasource={"uid": VAR_DATASOURCE_EXPR},
    )
    return LokiQuery(**params)
