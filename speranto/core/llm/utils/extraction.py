"""
Response cleanup for LLM output.

Models wrap answers in reasoning blocks or Markdown code fences more often
than they are asked to. These helpers strip that wrapping so the translator
gets the bare translation (Markdown) or the bare JSON object (groups, rows).
"""

import json
import re
from typing import Any, Dict

from speranto.core.llm.exceptions import LLMResponseError

_THINK_RE = re.compile(r'<think>.*?</think>', re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r'^\s*(`{3,}|~{3,})[\w+-]*[ \t]*\n(.*?)\n[ \t]*\1\s*$', re.DOTALL)


def remove_think_blocks(text: str) -> str:
    """Remove <think>...</think> reasoning blocks, including an unclosed leading one."""
    cleaned = _THINK_RE.sub('', text)
    if '</think>' in cleaned.lower():
        # Opening tag swallowed by the chat template
        cleaned = re.split(r'</think>', cleaned, flags=re.IGNORECASE)[-1]
    return cleaned.strip()


def strip_code_fence(text: str) -> str:
    """Unwrap a response that is entirely one fenced block."""
    match = _FENCE_RE.match(text)
    if match:
        return match.group(2)
    return text


def clean_text_response(response: str, source: str) -> str:
    """
    Clean a free-text (Markdown) translation.

    A wrapping code fence is removed unless the source itself was a
    single fenced block.

    >>> clean_text_response("```markdown\\n# Hola\\n```", "# Hello")
    '# Hola'
    """
    text = remove_think_blocks(response or '')
    if not _FENCE_RE.match(source.strip()):
        text = strip_code_fence(text)
    return text.strip()


def extract_json_object(response: str) -> Dict[str, Any]:
    """
    Extract the JSON object from a structured translation response.

    Raises:
        LLMResponseError: when no JSON object can be decoded
    """
    text = strip_code_fence(remove_think_blocks(response or '')).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Tolerate chatter around the object
        start, end = text.find('{'), text.rfind('}')
        if start == -1 or end <= start:
            raise LLMResponseError("Response contains no JSON object", {'response': text[:200]})
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Response JSON is malformed: {e}", {'response': text[:200]}) from e

    if not isinstance(data, dict):
        raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
