"""Filter joining and value deduplication for autocomplete requests."""

from typing import Iterable, Optional, Protocol

from logql_compiler.grouping import group_by_key_and_inclusion
from logql_compiler.models.filters import (
    FieldValue,
    Filter,
    ValueSuggestion,
    decode_field_value,
    encode_field_value,
)
from logql_compiler.operators import (
    FilterOp,
    is_operator_inclusive,
    is_operator_regex,
)

VAR_LEVELS = "levels"
VAR_FIELDS = "fields"


class FavoriteValuesStore(Protocol):
    """Favorite label values keyed by data source and filter key."""

    def get(self, datasource_uid: str, key: str) -> set[str]: ...


class InMemoryFavoriteValuesStore:
    def __init__(self, favorites: Optional[dict[tuple[str, str], set[str]]] = None):
        self._favorites = favorites or {}

    def get(self, datasource_uid: str, key: str) -> set[str]:
        return set(self._favorites.get((datasource_uid, key), set()))

    def add(self, datasource_uid: str, key: str, values: Iterable[str]) -> set[str]:
        favorites = self._favorites.setdefault((datasource_uid, key), set())
        favorites.update(values)
        return set(favorites)


def _join_group(key: str, group: list[Filter], operator: str) -> Filter:
    if len(group) == 1:
        return Filter(key=key, operator=group[0].operator, value=group[0].value)
    return Filter(key=key, operator=operator, value="|".join(f.value for f in group))


def join_tag_filters(filters: Iterable[Filter]) -> list[Filter]:
    """Collapse same-key filters into one alternation filter per key.

    Example:
        service_name="a", service_name="b", other_key="c"
        -> service_name=~"a|b", other_key="c"
    """
    groups = group_by_key_and_inclusion(filters)
    joined = [
        _join_group(key, group, FilterOp.RegexEqual.value)
        for key, group in groups.positive_groups.items()
    ]
    joined.extend(
        _join_group(key, group, FilterOp.RegexNotEqual.value)
        for key, group in groups.negative_groups.items()
    )
    return joined


def filter_tag_value_filters(filters: Iterable[Filter], filter: Filter) -> list[Filter]:
    """Prepare the upstream filter set used to fetch values for ``filter``.

    An exact ``=`` filter on the edited key is removed so other values for
    that key can be offered. If the key is then left without inclusive
    filters, its exclusive filters are dropped as well: Loki rejects a
    selector with only negative matchers on the key. For the same reason
    an empty list is returned when no inclusive filter is left on any key.
    """
    remaining = [
        f
        for f in filters
        if not (
            is_operator_inclusive(filter.operator)
            and f.key == filter.key
            and f.operator == FilterOp.Equal.value
        )
    ]

    if not any(
        f.key == filter.key and is_operator_inclusive(f.operator) for f in remaining
    ):
        remaining = [f for f in remaining if f.key != filter.key]
    if not any(is_operator_inclusive(f.operator) for f in remaining):
        return []
    return remaining


def _is_value_selected(f: Filter, value: str) -> bool:
    if is_operator_regex(f.operator):
        return value in f.value.split("|")
    return f.operator == FilterOp.Equal.value and f.value == value


def sort_by_favorites(values: list[str], favorites: set[str]) -> list[str]:
    # sorted() is stable, so non-favorites keep their relative order
    if not favorites:
        return list(values)
    return sorted(values, key=lambda v: v not in favorites)


def filter_label_values(
    values: Iterable[str],
    filters: Iterable[Filter],
    key: str,
    favorites: Optional[set[str]] = None,
) -> list[str]:
    """Drop values already selected for ``key`` and put favorites first."""
    same_key = [f for f in filters if f.key == key]
    remaining = [
        value
        for value in values
        if not any(_is_value_selected(f, value) for f in same_key)
    ]
    return sort_by_favorites(remaining, favorites or set())


def filter_detected_field_values(
    values: Iterable[str],
    filters: Iterable[Filter],
    filter: Filter,
    variable_type: str = VAR_FIELDS,
) -> list[ValueSuggestion]:
    """Build value suggestions for a detected field or metadata filter.

    Level values are returned untouched. Otherwise any value used by a
    current filter is removed and the rest are wrapped in a field envelope
    carrying the parser of the edited filter.
    """
    values = list(values)
    if variable_type == VAR_LEVELS:
        return [ValueSuggestion(text=v) for v in values]

    values_to_remove: set[str] = set()
    for f in filters:
        value = f.value_labels[0] if f.value_labels else f.value
        if is_operator_regex(f.operator):
            values_to_remove.update(value.split("|"))
        else:
            values_to_remove.add(value)
    remaining = [v for v in values if v not in values_to_remove]

    meta_parser = filter.meta.parser if filter.meta else None
    if meta_parser == "structuredMetadata":
        return [ValueSuggestion(text=v) for v in remaining]

    if filter.value:
        parser = decode_field_value(filter.value).parser
    else:
        # work in progress filter: the key picker stored the parser in meta
        parser = meta_parser or "mixed"

    return [
        ValueSuggestion(text=v, value=encode_field_value(FieldValue(value=v, parser=parser)))
        for v in remaining
    ]
