"""Grouping of filters by key within an inclusion class."""

from typing import Iterable, NamedTuple, TypeVar

from logql_compiler.operators import is_operator_exclusive, is_operator_inclusive

F = TypeVar("F")


class FilterGroups(NamedTuple):
    """Filters split by inclusion class, then grouped by key.

    Dicts keep first-seen key order; members keep input order.
    """

    positive_groups: dict[str, list]
    negative_groups: dict[str, list]


def group_by_key(filters: Iterable[F]) -> dict[str, list[F]]:
    groups: dict[str, list[F]] = {}
    for f in filters:
        groups.setdefault(f.key, []).append(f)
    return groups


def group_by_key_and_inclusion(filters: Iterable[F]) -> FilterGroups:
    """Split filters into inclusive and exclusive, then group each by key.

    Several same-class filters on one key are an OR; different keys are AND.
    """
    filters = list(filters)
    positive = [f for f in filters if is_operator_inclusive(f.operator)]
    negative = [f for f in filters if is_operator_exclusive(f.operator)]
    return FilterGroups(
        positive_groups=group_by_key(positive),
        negative_groups=group_by_key(negative),
    )
