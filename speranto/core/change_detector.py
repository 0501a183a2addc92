"""
Change detection between source units and a previous translation.

Units are matched by key. A source unit is unchanged when the existing
translation has a unit with the same key, the same number of members, and
every source member identity present among the existing unit's identities.
Only structure is compared: editing the value of an existing member does not
mark its unit as changed, and the earlier translation is reused. Existing
units with no source counterpart are reported as removed; the document still
needs rewriting even when every remaining unit is unchanged.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from speranto.core.units import TranslationUnit


@dataclass
class ChangeClassification:
    changed: List[TranslationUnit] = field(default_factory=list)
    unchanged: List[TranslationUnit] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed or self.removed)


def is_unchanged(source: TranslationUnit, existing: Optional[TranslationUnit]) -> bool:
    if existing is None or existing.key != source.key:
        return False
    if existing.size != source.size:
        return False
    known = set(existing.identities())
    return all(identity in known for identity in source.identities())


def classify(
    source_units: Sequence[TranslationUnit],
    existing_units: Optional[Sequence[TranslationUnit]],
    retranslate: bool = False
) -> ChangeClassification:
    """
    Partition source units into changed and unchanged.

    Args:
        source_units: Units extracted from the source document (before splitting)
        existing_units: Units extracted from the existing translation, or None
            when there is no usable translation yet
        retranslate: Treat every unit as changed

    Returns:
        ChangeClassification; changed and unchanged keep source order,
        removed holds existing keys in existing order
    """
    result = ChangeClassification()
    if retranslate or not existing_units:
        result.changed.extend(source_units)
        return result

    by_key = {unit.key: unit for unit in existing_units}
    for unit in source_units:
        if is_unchanged(unit, by_key.get(unit.key)):
            result.unchanged.append(unit)
        else:
            result.changed.append(unit)
    source_keys = {unit.key for unit in source_units}
    result.removed.extend(u.key for u in existing_units if u.key not in source_keys)
    return result
