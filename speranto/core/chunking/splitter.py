"""
Size splitting of oversized translation units.

A group with more members than ``max_size`` is cut into subgroups that are
dispatched as separate requests. The first attempt follows structure: members
are bucketed by the second segment of their identity (``pricing.plans.free``
goes to ``pricing.plans``), while members with no deeper nesting share one
bucket named after the unit. If that yields at least two buckets they are
kept, and any bucket still too large is sliced into ``(i/N)`` pieces.
Otherwise the whole unit is sliced numerically.
"""

import math
from typing import Dict, List, Sequence

from speranto.core.units import SplitUnit, TranslationUnit, UnitContext, UnitMember


def _slice(unit: TranslationUnit, key: str, members: Sequence[UnitMember], max_size: int) -> List[TranslationUnit]:
    total = math.ceil(len(members) / max_size)
    if total <= 1:
        return [unit.subset(key, members)]
    return [
        unit.subset(f"{key} ({i + 1}/{total})", members[i * max_size:(i + 1) * max_size])
        for i in range(total)
    ]


def _structural_buckets(unit: TranslationUnit) -> Dict[str, List[UnitMember]]:
    buckets: Dict[str, List[UnitMember]] = {}
    for member in unit.members:
        segments = member.identity.split(".")
        if len(segments) > 2:
            name = f"{unit.key}.{segments[1]}"
        else:
            name = unit.key
        buckets.setdefault(name, []).append(member)
    return buckets


def split_unit(unit: TranslationUnit, max_size: int) -> SplitUnit:
    if unit.size <= max_size or unit.context not in (UnitContext.GROUP, UnitContext.ROW):
        return SplitUnit(unit)

    buckets = _structural_buckets(unit)
    if len(buckets) < 2:
        return SplitUnit(unit, _slice(unit, unit.key, unit.members, max_size))

    subgroups: List[TranslationUnit] = []
    for name, members in buckets.items():
        subgroups.extend(_slice(unit, name, members, max_size))
    return SplitUnit(unit, subgroups)


def split(units: Sequence[TranslationUnit], max_size: int) -> List[SplitUnit]:
    """
    Split oversized units.

    Args:
        units: Units in document order
        max_size: Maximum number of members per dispatched subgroup

    Returns:
        One SplitUnit per input unit, same order. Subgroup members are a
        partition of the unit's members, order preserved.

    Raises:
        ValueError: if max_size < 1
    """
    if max_size < 1:
        raise ValueError(f"max_size must be at least 1, got {max_size}")
    return [split_unit(unit, max_size) for unit in units]
