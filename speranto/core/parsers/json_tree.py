"""
JSON key-value tree parser.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterator, List, Tuple

from speranto.core.chunking.grouper import Leaf, group_leaves
from speranto.core.exceptions import ParseError, ReconstructionError
from speranto.core.parsers.base import FormatParser
from speranto.core.units import TranslationUnit, UnitMember, TranslationResult, unique_identity

CATCH_ALL_GROUP = "_ungrouped"


@dataclass(frozen=True)
class JsonDocument:
    data: Any


def iter_string_leaves(node: Any, path: Tuple[Any, ...] = ()) -> Iterator[Tuple[Tuple[Any, ...], str]]:
    """Yield (path, value) for every string leaf; lists are addressed by index."""
    if isinstance(node, str):
        yield path, node
    elif isinstance(node, dict):
        for key, value in node.items():
            yield from iter_string_leaves(value, path + (key,))
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield from iter_string_leaves(value, path + (index,))


def set_in(node: Any, path: Tuple[Any, ...], value: Any) -> Any:
    """Copy-on-write assignment: only containers along ``path`` are copied."""
    if not path:
        return value
    head, rest = path[0], path[1:]
    try:
        child = node[head]
    except (KeyError, IndexError, TypeError) as e:
        raise ReconstructionError(f"Path does not exist in tree: {path}") from e
    if isinstance(node, list):
        copy = list(node)
    else:
        copy = dict(node)
    copy[head] = set_in(child, rest, value)
    return copy


class JsonParser(FormatParser):
    """Parser for JSON translation catalogs."""

    name = "json"
    extensions = (".json",)

    def parse(self, content: str) -> JsonDocument:
        try:
            return JsonDocument(json.loads(content))
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}", format_name=self.name) from e

    def serialize(self, tree: JsonDocument) -> str:
        return json.dumps(tree.data, indent=2, ensure_ascii=False) + "\n"

    def extract_units(self, tree: JsonDocument) -> List[TranslationUnit]:
        seen = {}
        leaves = []
        for path, value in iter_string_leaves(tree.data):
            identity = unique_identity(".".join(str(p) for p in path), seen)
            leaves.append(Leaf(UnitMember(path=path, value=value, identity=identity), path))
        return group_leaves(leaves, CATCH_ALL_GROUP)

    def reconstruct(self, tree: JsonDocument, result: TranslationResult) -> JsonDocument:
        data = tree.data
        for path, value in result.items():
            data = set_in(data, tuple(path), value)
        return JsonDocument(data)
