from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class PrioritizedMapping(Generic[K, V]):
    """
    One package list's contribution to an index, tagged with its pin
    priority (higher wins).
    """

    priority: int
    mapping: dict[K, V] = field(default_factory=dict)


def merge(mappings: Sequence[PrioritizedMapping[K, V]]) -> tuple[dict[K, V], list[K]]:
    """
    Merges per-list mappings into one, picking for each key the value from
    the highest-priority mapping that defines it. Among equal priorities the
    mapping that comes first in `mappings` wins.

    Returns the merged mapping and its keys in sorted order.
    """
    keys: set[K] = set()
    for prioritized in mappings:
        keys.update(prioritized.mapping)

    merged: dict[K, V] = {}
    for key in keys:
        candidates = [
            (prioritized.priority, prioritized.mapping[key])
            for prioritized in mappings
            if key in prioritized.mapping
        ]
        if not candidates:
            continue
        # sort() is stable, so ties keep enumeration order
        candidates.sort(key=lambda candidate: candidate[0], reverse=True)
        merged[key] = candidates[0][1]

    return merged, sorted(merged)
