"""
Structural parsers, selected by file extension.
"""

import os
from typing import Optional

from speranto.core.exceptions import ConfigurationError
from speranto.core.parsers.base import FormatParser
from speranto.core.parsers.js_object import JsObjectParser
from speranto.core.parsers.json_tree import JsonParser
from speranto.core.parsers.markdown import MarkdownParser

_PARSERS = (
    MarkdownParser(),
    JsonParser(),
    JsObjectParser(typescript=False),
    JsObjectParser(typescript=True),
)

SUPPORTED_EXTENSIONS = tuple(ext for parser in _PARSERS for ext in parser.extensions)


def find_parser(path: str) -> Optional[FormatParser]:
    """Return the parser handling ``path``, or None for unsupported files."""
    for parser in _PARSERS:
        if parser.handles(path):
            return parser
    return None


def get_parser_for_path(path: str) -> FormatParser:
    parser = find_parser(path)
    if parser is None:
        ext = os.path.splitext(path)[1] or path
        raise ConfigurationError(
            f"Unsupported file type: {ext}",
            context={'supported': ", ".join(SUPPORTED_EXTENSIONS)}
        )
    return parser


__all__ = [
    'FormatParser',
    'MarkdownParser',
    'JsonParser',
    'JsObjectParser',
    'SUPPORTED_EXTENSIONS',
    'find_parser',
    'get_parser_for_path',
]
