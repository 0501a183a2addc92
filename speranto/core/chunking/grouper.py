"""
Grouping of key-value leaves (JSON, JS/TS) into translation units.

Leaves nested under a first-level key form a unit keyed by that key. Leaves
sitting directly at the top level are held back, then grouped by the part
of their own key before the first dot ("pricing.title" -> "pricing"), which
merges them into the nested group of the same name when there is one. Keys
without a dot land in a catch-all group.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from speranto.core.units import TranslationUnit, UnitContext, UnitMember, render_members


@dataclass(frozen=True)
class Leaf:
    """A translatable value with the key chain used for grouping."""
    member: UnitMember
    segments: Tuple[Any, ...]


def group_name_for(segments: Sequence[Any], catch_all: str) -> str:
    if len(segments) > 1:
        return str(segments[0])
    if not segments:
        return catch_all
    key = str(segments[0])
    if "." in key:
        prefix = key.split(".", 1)[0]
        if prefix:
            return prefix
    return catch_all


def group_leaves(leaves: Sequence[Leaf], catch_all: str) -> List[TranslationUnit]:
    """
    Build one unit per group.

    Args:
        leaves: Leaves in document order
        catch_all: Group name for top-level keys without a dot
            ("_ungrouped" for JSON, "_root" for JS/TS)

    Returns:
        Units ordered by first appearance; nested groups come before the
        groups formed from pending top-level keys
    """
    groups: Dict[str, List[UnitMember]] = {}
    pending: List[Leaf] = []

    for leaf in leaves:
        if len(leaf.segments) > 1:
            groups.setdefault(str(leaf.segments[0]), []).append(leaf.member)
        else:
            pending.append(leaf)

    for leaf in pending:
        groups.setdefault(group_name_for(leaf.segments, catch_all), []).append(leaf.member)

    return [
        TranslationUnit(
            key=name,
            members=members,
            rendered_text=render_members(members),
            context=UnitContext.GROUP,
        )
        for name, members in groups.items()
    ]
