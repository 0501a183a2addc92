"""
JavaScript / TypeScript object-literal parser.

Translation catalogs written as code (``export default { nav: { home: "Home" } }``)
are parsed with tree-sitter (JavaScript or TypeScript grammar). A literal is
translatable when it is the complete value of an object property:

    - ``key: "text"`` and ``key: `text``` (templates without ``${...}``)
    - properties of objects nested in arrays (the array index joins the path)

Everything else is left alone: expressions (``a: "x" + y``), array
elements, call arguments, variable initializers and type-level members
(interfaces, type literals), which the TypeScript grammar keeps out of
object ``pair`` nodes.

The document keeps the source text; reconstruction splices re-escaped
literals into it by byte offset so formatting and comments survive.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from speranto.core.chunking.grouper import Leaf, group_leaves
from speranto.core.exceptions import ParseError
from speranto.core.parsers.base import FormatParser
from speranto.core.units import TranslationUnit, UnitMember, TranslationResult, unique_identity

CATCH_ALL_GROUP = "_root"

JS_LANGUAGE = Language(tree_sitter_javascript.language())
TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0",
}


@dataclass(frozen=True)
class JsLiteral:
    """
    A translatable literal located in the source.

    Attributes:
        synthetic: Stable path name, ``string_N`` or ``template_N``
        object_path: Key chain from the outermost object (array indices included)
        value: Decoded value
        quote: Quote character (``'``, ``"`` or backtick)
        start: Byte offset of the opening quote in the UTF-8 source
        end: Byte offset just past the closing quote
    """
    synthetic: str
    object_path: Tuple[Any, ...]
    value: str
    quote: str
    start: int
    end: int

    @property
    def is_template(self) -> bool:
        return self.quote == "`"

    @property
    def identity(self) -> str:
        if self.object_path:
            return ".".join(str(p) for p in self.object_path)
        return self.synthetic


@dataclass(frozen=True)
class JsDocument:
    source: str
    literals: Tuple[JsLiteral, ...]

    def literal(self, synthetic: str) -> Optional[JsLiteral]:
        for lit in self.literals:
            if lit.synthetic == synthetic:
                return lit
        return None


def decode_escape(src: str, i: int) -> Tuple[str, int]:
    """Decode the escape sequence starting at the backslash ``src[i]``."""
    nxt = src[i + 1] if i + 1 < len(src) else ""
    try:
        if nxt in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[nxt], i + 2
        if nxt == "x":
            return chr(int(src[i + 2:i + 4], 16)), i + 4
        if nxt == "u":
            if src[i + 2:i + 3] == "{":
                close = src.index("}", i + 3)
                return chr(int(src[i + 3:close], 16)), close + 1
            code = int(src[i + 2:i + 6], 16)
            j = i + 6
            if 0xD800 <= code <= 0xDBFF and src.startswith("\\u", j):
                low = int(src[j + 2:j + 6], 16)
                if 0xDC00 <= low <= 0xDFFF:
                    code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
                    j += 6
            return chr(code), j
    except ValueError as e:
        raise ParseError(f"Invalid escape sequence at offset {i}", context={"offset": i}) from e
    if nxt == "\r" and src[i + 2:i + 3] == "\n":
        return "", i + 3
    if nxt in ("\n", "\r", "\u2028", "\u2029"):
        return "", i + 2
    return nxt, i + 2


def decode_literal_body(body: str) -> str:
    """Decode the text between the quotes of a string or template literal."""
    chars = []
    i = 0
    while i < len(body):
        if body[i] == "\\":
            decoded, i = decode_escape(body, i)
            chars.append(decoded)
        else:
            chars.append(body[i])
            i += 1
    return "".join(chars)


def escape_string(value: str, quote: str) -> str:
    out = []
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == quote:
            out.append("\\" + quote)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\u2028":
            out.append("\\u2028")
        elif ch == "\u2029":
            out.append("\\u2029")
        else:
            out.append(ch)
    return quote + "".join(out) + quote


def escape_template(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
    return "`" + escaped + "`"


def _text(node: Node) -> str:
    return node.text.decode("utf-8")


def _first_error(root: Node) -> Optional[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def _property_key(pair: Node) -> str:
    key = pair.child_by_field_name("key")
    if key.type == "string":
        return decode_literal_body(_text(key)[1:-1])
    return _text(key)


def _is_property_value(node: Node) -> bool:
    parent = node.parent
    if parent is None or parent.type != "pair":
        return False
    value = parent.child_by_field_name("value")
    return value is not None and value.id == node.id


def _object_path(node: Node) -> Tuple[Any, ...]:
    """Key chain of ``node``: property keys and array indices, outermost first."""
    path = []
    child, parent = node, node.parent
    while parent is not None:
        if parent.type == "pair":
            path.append(_property_key(parent))
        elif parent.type == "array":
            elements = [c for c in parent.named_children if c.type != "comment"]
            path.append(next(i for i, c in enumerate(elements) if c.id == child.id))
        child, parent = parent, parent.parent
    return tuple(reversed(path))


def _collect_literals(root: Node) -> List[JsLiteral]:
    literals: List[JsLiteral] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in ("string", "template_string") and _is_property_value(node):
            is_template = node.type == "template_string"
            if is_template and any(c.type == "template_substitution" for c in node.children):
                stack.extend(reversed(node.children))
                continue
            raw = _text(node)
            kind = "template" if is_template else "string"
            literals.append(JsLiteral(
                synthetic=f"{kind}_{len(literals)}",
                object_path=_object_path(node),
                value=decode_literal_body(raw[1:-1]),
                quote=raw[0],
                start=node.start_byte,
                end=node.end_byte,
            ))
            continue
        stack.extend(reversed(node.children))
    return literals


class JsObjectParser(FormatParser):
    """Parser for JS/TS modules holding translation objects."""

    def __init__(self, typescript: bool = False):
        self.typescript = typescript
        self.name = "typescript" if typescript else "javascript"
        self.extensions = (".ts", ".mts", ".cts") if typescript else (".js", ".mjs", ".cjs")
        self._parser = Parser(TS_LANGUAGE if typescript else JS_LANGUAGE)

    def parse(self, content: str) -> JsDocument:
        source = content.replace("\r\n", "\n")
        tree = self._parser.parse(source.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            error = _first_error(root) or root
            what = f"missing '{error.type}'" if error.is_missing else "syntax error"
            raise ParseError(
                f"Invalid {self.name} source: {what}",
                format_name=self.name,
                context={"line": error.start_point[0] + 1},
            )
        try:
            literals = _collect_literals(root)
        except ParseError as e:
            raise ParseError(e.message, format_name=self.name, context=e.context) from e
        return JsDocument(source=source, literals=tuple(literals))

    def serialize(self, tree: JsDocument) -> str:
        return tree.source

    def extract_units(self, tree: JsDocument) -> List[TranslationUnit]:
        seen = {}
        leaves = []
        for lit in tree.literals:
            member = UnitMember(
                path=(lit.synthetic,),
                value=lit.value,
                identity=unique_identity(lit.identity, seen),
            )
            leaves.append(Leaf(member, lit.object_path))
        return group_leaves(leaves, CATCH_ALL_GROUP)

    def reconstruct(self, tree: JsDocument, result: TranslationResult) -> JsDocument:
        by_synthetic = {lit.synthetic: lit for lit in tree.literals}
        replacements = []
        for path, value in result.items():
            lit = by_synthetic.get(path[0]) if path else None
            if lit is None or value == lit.value:
                continue
            text = escape_template(value) if lit.is_template else escape_string(value, lit.quote)
            replacements.append((lit.start, lit.end, text.encode("utf-8")))

        if not replacements:
            return tree

        data = tree.source.encode("utf-8")
        for start, end, text in sorted(replacements, reverse=True):
            data = data[:start] + text + data[end:]
        return self.parse(data.decode("utf-8"))
