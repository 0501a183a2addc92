"""
File utilities for translation operations
"""
import os
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import aiofiles

from speranto.config import MARKDOWN_TRAILER
from speranto.core.parsers import SUPPORTED_EXTENSIONS

LANG_PLACEHOLDER = "[lang]"

# Directories never searched for sources
IGNORED_DIRECTORIES = frozenset({"node_modules", "__pycache__"})

_TRAILER_RE = re.compile(
    r'\n*---\n\n_This page was automatically translated from [^\n]* by [^\n]*\._\n?'
    r'(?:<!-- speranto:chunks(?P<keys>[^\n]*?) -->\n?)?\n*\Z'
)
CHUNK_KEYS_COMMENT = "<!-- speranto:chunks {keys} -->\n"


def resolve_target_dir(target_dir: str, lang: str) -> Path:
    """Substitute the language code into the target directory pattern."""
    return Path(target_dir.replace(LANG_PLACEHOLDER, lang))


def _is_within(path: Path, directory: Path) -> bool:
    try:
        path.resolve().relative_to(directory.resolve())
        return True
    except ValueError:
        return False


def discover_source_files(source_dir: str, target_dir: str, target_langs: Sequence[str],
                          use_lang_code_as_filename: bool = False) -> List[Path]:
    """
    Find translatable files under source_dir.

    Files inside any target-language output directory are excluded (for the
    default layout ``./content`` -> ``./content/[lang]`` the outputs live
    under the source tree). With use_lang_code_as_filename, files named
    after a target language (``es.json``) are outputs as well.

    Returns:
        Sorted list of paths
    """
    root = Path(source_dir)
    if not root.is_dir():
        return []

    source_root = root.resolve()
    output_roots = []
    for lang in target_langs:
        target_root = resolve_target_dir(target_dir, lang)
        if target_root.resolve() != source_root:
            output_roots.append(target_root)
    lang_stems = {lang.lower() for lang in target_langs}

    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith('.') and d not in IGNORED_DIRECTORIES)
        for filename in filenames:
            path = Path(dirpath) / filename
            if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
                continue
            if any(_is_within(path, out) for out in output_roots):
                continue
            if use_lang_code_as_filename and path.stem.lower() in lang_stems:
                continue
            found.append(path)
    return sorted(found)


def get_output_path(source_file: Path, source_dir: str, target_dir: str, lang: str,
                    use_lang_code_as_filename: bool = False) -> Path:
    """
    Compute where the translation of source_file goes.

    Examples:
        content/docs/intro.md, target ./out/[lang]  -> out/es/docs/intro.md
        i18n/en.json, target ./i18n, lang-code names -> i18n/es.json
    """
    relative = Path(source_file).relative_to(Path(source_dir))
    output = resolve_target_dir(target_dir, lang) / relative
    if use_lang_code_as_filename:
        output = output.with_name(f"{lang}{relative.suffix}")
    return output


async def read_text_file(path: Path) -> str:
    async with aiofiles.open(path, 'r', encoding='utf-8') as f:
        return await f.read()


async def read_optional_text_file(path: Path) -> Optional[str]:
    """Read a file, or None when it does not exist."""
    if not Path(path).is_file():
        return None
    return await read_text_file(path)


async def write_text_file(path: Path, content: str) -> None:
    """Write a file, creating missing parent directories."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, 'w', encoding='utf-8') as f:
        await f.write(content)


def append_trailer(content: str, source_lang: str, model: str,
                   chunk_keys: Optional[Sequence[str]] = None) -> str:
    """
    Append the attribution trailer to a translated Markdown document.

    chunk_keys, the source chunk keys in document order, are recorded in an
    HTML comment under the attribution line so the next run can match the
    translated chunks back to their sources.
    """
    trailer = MARKDOWN_TRAILER.format(source_lang=source_lang, model=model)
    if chunk_keys:
        trailer += CHUNK_KEYS_COMMENT.format(keys=" ".join(chunk_keys))
    body = content.rstrip("\n")
    return body + "\n\n" + trailer if body else trailer


def split_trailer(content: str) -> Tuple[str, List[str]]:
    """
    Separate a translated Markdown document from its trailer.

    Returns:
        (body, recorded chunk keys); no keys without a trailer or a record
    """
    match = _TRAILER_RE.search(content)
    if match is None:
        return content, []
    body = content[:match.start()]
    keys = match.group("keys")
    return (body + "\n" if body else body), (keys.split() if keys else [])

