"""
Translation unit abstraction.

A TranslationUnit is a batch of related translatable values sent to the LLM
in a single request. Formats define units differently:
- Markdown: a contiguous chunk of top-level blocks (one member, the chunk text)
- JSON / JS / TS: a group of string leaves sharing a top-level key
- Database: one row, with one member per translatable column
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple


class UnitContext(Enum):
    """Why a unit was formed; drives prompt instructions and isolation rules."""
    TEXT = "text"
    SECTION = "section"
    LIST = "list"
    LIST_WITH_CONTEXT = "list-with-context"
    BLOCKQUOTE = "blockquote"
    CODE = "code"
    FRONTMATTER = "frontmatter"
    GROUP = "group"
    ROW = "row"


# Contexts whose rendered text is a flat {identity: value} JSON object
STRUCTURED_CONTEXTS = frozenset({UnitContext.GROUP, UnitContext.ROW})


@dataclass(frozen=True)
class UnitMember:
    """
    One addressable leaf value covered by a unit.

    Attributes:
        path: Address of the value inside its content tree
        value: Source value
        identity: Key used to correlate the member across runs and inside
            LLM responses (e.g. "nav.home" for a JSON leaf)
    """
    path: Tuple[Any, ...]
    value: str
    identity: str

    @property
    def is_blank(self) -> bool:
        return not self.value or not self.value.strip()


@dataclass
class TranslationUnit:
    """
    Represents a single unit of translation work.

    Attributes:
        key: Stable identifier used to match the unit across runs
        members: Leaf values covered by this unit, in document order
        rendered_text: Text sent to the LLM for this unit
        context: Unit context (see UnitContext)
    """
    key: str
    members: List[UnitMember]
    rendered_text: str
    context: UnitContext = UnitContext.TEXT

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_passthrough(self) -> bool:
        """Code chunks are copied verbatim and never reach the LLM."""
        return self.context == UnitContext.CODE

    @property
    def is_structured(self) -> bool:
        return self.context in STRUCTURED_CONTEXTS

    def sendable_members(self) -> List[UnitMember]:
        """Members worth a gateway call (empty/whitespace values pass through)."""
        return [m for m in self.members if not m.is_blank]

    def identities(self) -> List[str]:
        return [m.identity for m in self.members]

    def subset(self, key: str, members: Sequence[UnitMember]) -> 'TranslationUnit':
        """Build a unit over a subset of this unit's members, re-rendered."""
        members = list(members)
        if self.is_structured:
            rendered = render_members(members)
        else:
            rendered = "\n\n".join(m.value for m in members)
        return TranslationUnit(key=key, members=members, rendered_text=rendered, context=self.context)

    def __repr__(self) -> str:
        preview = self.rendered_text[:50] + "..." if len(self.rendered_text) > 50 else self.rendered_text
        return f"TranslationUnit(key={self.key}, members={len(self.members)}, text='{preview}')"


@dataclass
class SplitUnit:
    """
    Splitter output: a unit plus the subgroups actually dispatched.

    ``subgroups`` is empty when the unit fits within the size limit; the
    change detector always looks at ``unit`` so that classification stays
    stable regardless of how a unit was split.
    """
    unit: TranslationUnit
    subgroups: List[TranslationUnit] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.unit.key

    @property
    def was_split(self) -> bool:
        return bool(self.subgroups)

    def dispatch_units(self) -> List[TranslationUnit]:
        return list(self.subgroups) if self.subgroups else [self.unit]


def render_members(members: Sequence[UnitMember]) -> str:
    """Render members as the flat JSON object sent to the LLM."""
    payload: Dict[str, str] = {}
    for member in members:
        if member.is_blank:
            continue
        payload[member.identity] = member.value
    return json.dumps(payload, ensure_ascii=False, indent=2)


def unique_identity(identity: str, seen: Dict[str, int]) -> str:
    """Return identity, suffixed with #n if it was already used in this tree."""
    count = seen.get(identity, 0) + 1
    seen[identity] = count
    if count == 1:
        return identity
    return f"{identity}#{count}"


# Merged translations: address path -> translated value
TranslationResult = Dict[Tuple[Any, ...], str]
