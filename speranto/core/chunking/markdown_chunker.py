"""
Context-aware chunking of Markdown block sequences.

Blocks are grouped into contiguous chunks so that the LLM sees related
content together (a list with its lead-in paragraph, a section under its
heading) while code blocks stay isolated:

1. A leading frontmatter block is its own chunk (frontmatter).
2. A heading of depth <= 2 closes the open chunk (section) and starts a new one.
3. A list pulls in the preceding unconsumed paragraph and the following
   paragraph/blockquote (list-with-context); otherwise it closes alone (list).
4. A blockquote outside an open chunk pulls in the preceding unconsumed
   paragraph and closes as its own chunk (blockquote); inside an open chunk
   it simply joins that chunk.
5. A code block flushes the open chunk (text) and becomes its own chunk (code).
6. Any other block accumulates; four paragraph/heading/list blocks flush (text).
7. Whatever remains flushes as a final text chunk.

Every block belongs to exactly one chunk.
"""

from dataclasses import dataclass
from typing import List, Sequence, Set

from speranto.core.units import UnitContext

CONTENT_BLOCK_TYPES = frozenset({"paragraph", "heading", "list"})
MAX_CONTENT_BLOCKS = 4
SECTION_HEADING_DEPTH = 2


@dataclass(frozen=True)
class Chunk:
    """Inclusive block index span plus the context that closed it."""
    start: int
    end: int
    context: UnitContext

    @property
    def indices(self) -> range:
        return range(self.start, self.end + 1)


class _ChunkBuilder:

    def __init__(self, blocks: Sequence):
        self.blocks = blocks
        self.chunks: List[Chunk] = []
        self.current: List[int] = []
        self.consumed: Set[int] = set()

    def flush(self, context: UnitContext) -> None:
        if not self.current:
            return
        self.chunks.append(Chunk(self.current[0], self.current[-1], context))
        self.consumed.update(self.current)
        self.current = []

    def emit_alone(self, index: int, context: UnitContext) -> None:
        self.chunks.append(Chunk(index, index, context))
        self.consumed.add(index)

    def pull_preceding_paragraph(self, index: int) -> None:
        prev = index - 1
        if (not self.current and prev >= 0 and prev not in self.consumed
                and self.blocks[prev].type == "paragraph"):
            self.current.append(prev)

    def content_count(self) -> int:
        return sum(1 for i in self.current if self.blocks[i].type in CONTENT_BLOCK_TYPES)


def chunk_blocks(blocks: Sequence) -> List[Chunk]:
    """
    Group blocks into chunks.

    Args:
        blocks: Objects exposing ``type`` and ``depth`` (heading level)

    Returns:
        Chunks in document order, covering every block exactly once
    """
    builder = _ChunkBuilder(blocks)
    start = 0

    if blocks and blocks[0].type == "frontmatter":
        builder.emit_alone(0, UnitContext.FRONTMATTER)
        start = 1

    for index in range(start, len(blocks)):
        if index in builder.consumed:
            continue
        block = blocks[index]

        if block.type == "heading":
            if block.depth <= SECTION_HEADING_DEPTH and builder.current:
                builder.flush(UnitContext.SECTION)
            builder.current.append(index)

        elif block.type == "list":
            builder.pull_preceding_paragraph(index)
            builder.current.append(index)
            following = index + 1
            if following < len(blocks) and blocks[following].type in ("paragraph", "blockquote"):
                builder.current.append(following)
                builder.flush(UnitContext.LIST_WITH_CONTEXT)
            else:
                builder.flush(UnitContext.LIST)

        elif block.type == "blockquote":
            if builder.current:
                builder.current.append(index)
                continue
            builder.pull_preceding_paragraph(index)
            builder.current.append(index)
            builder.flush(UnitContext.BLOCKQUOTE)

        elif block.type == "code":
            builder.flush(UnitContext.TEXT)
            builder.emit_alone(index, UnitContext.CODE)

        else:
            builder.current.append(index)
            if builder.content_count() >= MAX_CONTENT_BLOCKS:
                builder.flush(UnitContext.TEXT)

    builder.flush(UnitContext.TEXT)
    return builder.chunks
