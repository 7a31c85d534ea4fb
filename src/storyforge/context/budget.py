"""Split a combined element limit across the four element kinds.

Allocation is proportional to pool size (largest remainder method):

  quota(k) = size(k) * max_elements / total
  alloc(k) = floor(quota(k)), then the leftover slots go one each to the
             kinds with the largest fractional part, ties in kind order.

Each kind then keeps the prefix of its ranked list, so truncation only ever
removes from the tail.
"""

from __future__ import annotations

import math
from typing import Mapping

from storyforge.context.models import ElementKind

KIND_ORDER: tuple[ElementKind, ...] = (
    ElementKind.CHARACTER,
    ElementKind.SETTING,
    ElementKind.PLOT_POINT,
    ElementKind.CHAPTER,
)


def allocate_budget(
    pool_sizes: Mapping[ElementKind, int],
    max_elements: int | None,
) -> dict[ElementKind, int]:
    """Number of elements each kind may keep.

    Args:
        pool_sizes: Ranked candidate count per kind.
        max_elements: Ceiling on the combined total, or None for no limit.

    Returns:
        A per-kind allocation that never exceeds the pool size of any kind
        and whose sum never exceeds `max_elements`.
    """
    sizes = {kind: max(0, pool_sizes.get(kind, 0)) for kind in KIND_ORDER}
    total = sum(sizes.values())

    if max_elements is None or total <= max_elements:
        return sizes
    if max_elements <= 0:
        return {kind: 0 for kind in KIND_ORDER}

    quotas = {kind: sizes[kind] * max_elements / total for kind in KIND_ORDER}
    alloc = {kind: math.floor(q) for kind, q in quotas.items()}

    leftover = max_elements - sum(alloc.values())
    by_remainder = sorted(
        KIND_ORDER,
        key=lambda k: (-(quotas[k] - alloc[k]), KIND_ORDER.index(k)),
    )
    for kind in by_remainder:
        if leftover <= 0:
            break
        if alloc[kind] < sizes[kind]:
            alloc[kind] += 1
            leftover -= 1

    return alloc
