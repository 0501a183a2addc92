"""
Markdown parser.

The document is kept as a flat sequence of top-level blocks, each holding
its verbatim source text, so that untouched blocks are reproduced exactly
and only translated chunks change. Block boundaries come from markdown-it
tokens (level 0, with source line maps); lines no token claims, such as
link reference definitions, become ``raw`` blocks so nothing is lost.
"""

import hashlib
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from markdown_it import MarkdownIt

from speranto.core.chunking.markdown_chunker import chunk_blocks
from speranto.core.exceptions import ParseError
from speranto.core.parsers.base import FormatParser
from speranto.core.units import TranslationUnit, UnitMember, TranslationResult, unique_identity

_FRONTMATTER_RE = re.compile(r'\A---[ \t]*\n(?:.*?\n)?---[ \t]*(?:\n|\Z)', re.DOTALL)

_TOKEN_BLOCK_TYPES = {
    "paragraph_open": "paragraph",
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "blockquote_open": "blockquote",
    "fence": "code",
    "code_block": "code",
    "html_block": "html",
    "hr": "hr",
    "table_open": "table",
}


@dataclass(frozen=True)
class Block:
    """A top-level Markdown block."""
    type: str
    text: str
    depth: int = 0

    @property
    def signature(self) -> str:
        if self.type == "heading":
            return f"heading:{self.depth}"
        return self.type


@dataclass(frozen=True)
class MarkdownDocument:
    blocks: Tuple[Block, ...]

    def types(self) -> List[str]:
        return [b.type for b in self.blocks]


def chunk_fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]


def _trim_blank_lines(lines: List[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


class MarkdownParser(FormatParser):
    """Block-level Markdown parser and chunker."""

    name = "markdown"
    extensions = (".md", ".markdown")

    def __init__(self):
        self._md = MarkdownIt("commonmark").enable("table")

    def parse(self, content: str) -> MarkdownDocument:
        if not isinstance(content, str):
            raise ParseError("Markdown content must be text", format_name=self.name)

        text = content.replace("\r\n", "\n")
        lines = text.split("\n")
        blocks: List[Block] = []

        offset = 0
        frontmatter = _FRONTMATTER_RE.match(text)
        if frontmatter:
            fm_text = frontmatter.group(0).rstrip("\n")
            blocks.append(Block("frontmatter", fm_text))
            offset = fm_text.count("\n") + 1

        body = lines[offset:]
        spans = []
        for token in self._md.parse("\n".join(body)):
            if token.level != 0 or token.nesting == -1 or not token.map:
                continue
            start, end = token.map
            if token.type == "heading_open":
                spans.append((start, end, "heading", int(token.tag[1:])))
            else:
                spans.append((start, end, _TOKEN_BLOCK_TYPES.get(token.type, "raw"), 0))
        spans.sort()

        position = 0
        for start, end, block_type, depth in spans:
            blocks.extend(self._raw_blocks(body, position, start))
            block_text = _trim_blank_lines(body[start:end])
            if block_text:
                blocks.append(Block(block_type, block_text, depth))
            position = max(position, end)
        blocks.extend(self._raw_blocks(body, position, len(body)))

        return MarkdownDocument(tuple(blocks))

    @staticmethod
    def _raw_blocks(lines: List[str], start: int, end: int) -> List[Block]:
        """Group unclaimed non-blank lines into raw blocks."""
        raw: List[Block] = []
        run: List[str] = []
        for line in lines[start:end]:
            if line.strip():
                run.append(line)
            elif run:
                raw.append(Block("raw", "\n".join(run)))
                run = []
        if run:
            raw.append(Block("raw", "\n".join(run)))
        return raw

    def serialize(self, tree: MarkdownDocument) -> str:
        if not tree.blocks:
            return ""
        return "\n\n".join(block.text for block in tree.blocks) + "\n"

    def extract_units(self, tree: MarkdownDocument) -> List[TranslationUnit]:
        """
        One unit per chunk, keyed by a fingerprint of the chunk's source text.

        Keys do not depend on position, so inserting or removing a section
        leaves the keys of every other chunk untouched. Identical chunks get
        ``#n`` suffixes in document order.
        """
        units = []
        seen = {}
        for chunk in chunk_blocks(tree.blocks):
            members = [tree.blocks[i] for i in chunk.indices]
            text = "\n\n".join(block.text for block in members)
            signature = ",".join(block.signature for block in members)
            member = UnitMember(path=(chunk.start, chunk.end), value=text, identity=signature)
            units.append(TranslationUnit(
                key=unique_identity(f"chunk_{chunk_fingerprint(text)}", seen),
                members=[member],
                rendered_text=text,
                context=chunk.context,
            ))
        return units

    @staticmethod
    def restore_keys(units: Sequence[TranslationUnit],
                     keys: Sequence[str]) -> Optional[List[TranslationUnit]]:
        """
        Give the chunks of a translated document the keys of their sources.

        A translation's own text fingerprints to different keys, so the
        source keys are recorded in the output trailer and put back here in
        order. Returns None when the recorded keys do not line up with the
        chunks (no record, or the translation was edited into a different
        chunk layout).
        """
        if len(keys) != len(units):
            return None
        return [replace(unit, key=key) for unit, key in zip(units, keys)]

    def reconstruct(self, tree: MarkdownDocument, result: TranslationResult) -> MarkdownDocument:
        spans = {path[0]: (path[1], value) for path, value in result.items()}
        blocks: List[Block] = []
        index = 0
        while index < len(tree.blocks):
            if index in spans:
                end, value = spans[index]
                original = "\n\n".join(b.text for b in tree.blocks[index:end + 1])
                if value == original:
                    blocks.extend(tree.blocks[index:end + 1])
                else:
                    blocks.append(Block("chunk", value.strip("\n")))
                index = end + 1
            else:
                blocks.append(tree.blocks[index])
                index += 1
        return MarkdownDocument(tuple(blocks))
