"""
Abstract base class for structural parsers.

Each supported format (Markdown, JSON, JS/TS) implements this interface to
turn raw content into an addressable tree, derive translation units from it
and write translated values back, while the pipeline stays format-agnostic.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Tuple

from speranto.core.units import TranslationUnit, TranslationResult


class FormatParser(ABC):
    """
    Abstract interface for a translatable content format.

    Each parser is responsible for:
    1. Parsing raw content into a content tree (parse)
    2. Serializing a tree back to text (serialize)
    3. Grouping translatable leaves into translation units (extract_units)
    4. Writing translated values back into a copy of the tree (reconstruct)

    Invariants:
        - parse(serialize(tree)) is structurally equivalent to tree
        - serialize(reconstruct(tree, {})) == serialize(tree)
        - reconstruct never mutates the tree it is given
    """

    #: Short format name used in logs and errors
    name: str = ""
    #: File extensions handled by this parser (lowercase, with dot)
    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def parse(self, content: str) -> Any:
        """
        Parse raw content.

        Raises:
            ParseError: if the content is malformed
        """
        pass

    @abstractmethod
    def serialize(self, tree: Any) -> str:
        pass

    @abstractmethod
    def extract_units(self, tree: Any) -> List[TranslationUnit]:
        """
        Derive translation units from a parsed tree.

        Returns:
            Units in document order; no leaf belongs to two units
        """
        pass

    @abstractmethod
    def reconstruct(self, tree: Any, result: TranslationResult) -> Any:
        """
        Return a new tree with translated values written at their paths.

        Paths absent from ``result`` keep their source value.
        """
        pass

    def handles(self, path: str) -> bool:
        return path.lower().endswith(self.extensions)
