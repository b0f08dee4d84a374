"""Transformation sets and the precedence algebra used to merge them."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from sql_column_lineage.errors import UnsupportedTransformationError
from sql_column_lineage.models import (
    Transformation,
    TransformationSubtype,
    TransformationType,
)

DIRECT_IDENTITY = Transformation(
    type=TransformationType.DIRECT, subtype=TransformationSubtype.IDENTITY
)
DIRECT_TRANSFORMATION = Transformation(
    type=TransformationType.DIRECT, subtype=TransformationSubtype.TRANSFORMATION
)
DIRECT_AGGREGATION = Transformation(
    type=TransformationType.DIRECT, subtype=TransformationSubtype.AGGREGATION
)


class TransformationSet:
    """Insertion-ordered set of transformations deduplicated by their key."""

    def __init__(self, values: Optional[Iterable[Transformation]] = None) -> None:
        self._items: Dict[str, Transformation] = {}
        if values is not None:
            self.update(values)

    def add(self, value: Transformation) -> "TransformationSet":
        """Insert ``value``, replacing any element with the same key."""

        self._items[value.key] = value
        return self

    def update(self, values: Iterable[Transformation]) -> "TransformationSet":
        """Add every transformation from ``values``."""

        for value in values:
            self.add(value)
        return self

    def intersection(self, other: "TransformationSet") -> "TransformationSet":
        """Return the elements of this set whose key is also in ``other``."""

        return TransformationSet(
            value for key, value in self._items.items() if key in other._items
        )

    def to_list(self) -> List[Transformation]:
        return list(self._items.values())

    def __iter__(self) -> Iterator[Transformation]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, Transformation) and value.key in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransformationSet):
            return NotImplemented
        return list(self._items) == list(other._items)

    def __repr__(self) -> str:
        return f"TransformationSet({self.to_list()!r})"


def _leading(parent: Transformation, child: Transformation) -> Transformation:
    """Pick the transformation whose subtype dominates."""

    if parent.subtype == TransformationSubtype.AGGREGATION:
        return parent
    if child.subtype == TransformationSubtype.AGGREGATION:
        return child
    if parent.subtype == TransformationSubtype.TRANSFORMATION:
        return parent
    return child


def merge_transformations(
    parent: Optional[Transformation], child: Transformation
) -> Transformation:
    """Combine an enclosing transformation with a nested one.

    Subtype precedence is AGGREGATION > TRANSFORMATION > IDENTITY and the
    masking flags are OR-ed. Only DIRECT transformations can be combined.
    """

    if parent is None:
        return child
    if (
        parent.type != TransformationType.DIRECT
        or child.type != TransformationType.DIRECT
    ):
        raise UnsupportedTransformationError(
            f"Cannot merge {parent.key} with {child.key}: "
            "only DIRECT transformations are supported"
        )
    leading = _leading(parent, child)
    return Transformation(
        type=leading.type,
        subtype=leading.subtype,
        masking=parent.masking or child.masking,
    )


def combine_sets(
    context: TransformationSet, local: TransformationSet
) -> TransformationSet:
    """Merge every transformation of ``context`` with every one of ``local``."""

    combined = TransformationSet()
    for outer in context:
        for inner in local:
            combined.add(merge_transformations(outer, inner))
    return combined
