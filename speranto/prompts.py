from typing import NamedTuple

from speranto.core.units import TranslationUnit, UnitContext


class PromptPair(NamedTuple):
    """A pair of system and user prompts for LLM translation."""
    system: str
    user: str


LANGUAGE_NAMES = {
    "ar": "Arabic", "cs": "Czech", "da": "Danish", "de": "German", "el": "Greek",
    "en": "English", "es": "Spanish", "fi": "Finnish", "fr": "French", "he": "Hebrew",
    "hi": "Hindi", "hu": "Hungarian", "id": "Indonesian", "it": "Italian", "ja": "Japanese",
    "ko": "Korean", "nl": "Dutch", "no": "Norwegian", "pl": "Polish", "pt": "Portuguese",
    "pt-br": "Brazilian Portuguese", "ro": "Romanian", "ru": "Russian", "sv": "Swedish",
    "th": "Thai", "tr": "Turkish", "uk": "Ukrainian", "vi": "Vietnamese",
    "zh": "Chinese", "zh-cn": "Simplified Chinese", "zh-tw": "Traditional Chinese",
}


def language_name(code: str) -> str:
    """Human-readable language name for a code, falling back to the code itself."""
    return LANGUAGE_NAMES.get(code.lower(), code)


# ============================================================================
# SHARED PROMPT SECTIONS
# ============================================================================

# Extra guidance per Markdown chunk context
CONTEXT_NOTES = {
    UnitContext.SECTION: "The text is a complete section starting with its heading.",
    UnitContext.LIST: "The text is a list. Keep every item and the list markers.",
    UnitContext.LIST_WITH_CONTEXT: (
        "The text is a list together with the sentences that introduce or follow it. "
        "Keep every item and the list markers."
    ),
    UnitContext.BLOCKQUOTE: "The text contains a blockquote. Keep the '>' markers at the start of each line.",
    UnitContext.TEXT: "",
}


def _get_preservation_section() -> str:
    return """# PRESERVATION RULES

**Never translate or modify:**
- Code spans and code blocks (`like this`)
- URLs, link targets, image paths and HTML attributes
- Placeholders and variables such as {name}, {{count}}, %s, :id, $t(...)
- Markdown syntax: heading markers, list markers, emphasis, tables, link brackets"""


def _get_instructions_section(instructions: str) -> str:
    if not instructions or not instructions.strip():
        return ""
    return f"""
# PROJECT INSTRUCTIONS

Follow these instructions from the project maintainers:

{instructions.strip()}
"""


def _get_system_prompt(source_language: str, target_language: str, instructions: str = "") -> str:
    source_name = language_name(source_language)
    target_name = language_name(target_language)
    return f"""You are a professional {target_name} translator working on software documentation and user interface text.

# TRANSLATION PRINCIPLES

Translate {source_name} to {target_name}. Output only the translation.

**PRIORITY ORDER:**
1. Preserve exact names, product names and technical terms
2. Match original tone and formality
3. Use natural {target_name} phrasing - never word-for-word
4. Keep the exact text layout, spacing and line breaks

{_get_preservation_section()}
{_get_instructions_section(instructions)}
**WRITE YOUR TRANSLATION IN {target_name.upper()} - THIS IS MANDATORY**""".strip()


# ============================================================================
# TRANSLATION PROMPT FUNCTIONS
# ============================================================================

def generate_chunk_prompt(
    text: str,
    context: UnitContext,
    source_language: str,
    target_language: str,
    instructions: str = ""
) -> PromptPair:
    """
    Prompt for a Markdown chunk.

    Args:
        text: Markdown source of the chunk
        context: Chunk context, adds a short note about its shape
        source_language: Source language code
        target_language: Target language code
        instructions: Optional per-language project instructions

    Returns:
        PromptPair: A named tuple with 'system' and 'user' prompts
    """
    note = CONTEXT_NOTES.get(context, "")
    note_text = f"{note}\n\n" if note else ""
    user_prompt = f"""{note_text}# MARKDOWN TO TRANSLATE

{text}

Respond with the translated Markdown only. No explanations, no code fences around the answer."""
    return PromptPair(
        system=_get_system_prompt(source_language, target_language, instructions),
        user=user_prompt.strip(),
    )


def generate_frontmatter_prompt(
    text: str,
    source_language: str,
    target_language: str,
    instructions: str = ""
) -> PromptPair:
    """Prompt for a YAML front matter block: values are translated, keys never."""
    user_prompt = f"""# YAML FRONT MATTER TO TRANSLATE

The block below is YAML front matter delimited by '---' lines.
Translate only human-readable string values (titles, descriptions, summaries).
Keep every key, the '---' delimiters, dates, slugs, paths, booleans and numbers unchanged.

{text}

Respond with the complete front matter block only, including both '---' lines."""
    return PromptPair(
        system=_get_system_prompt(source_language, target_language, instructions),
        user=user_prompt.strip(),
    )


def generate_group_prompt(
    payload: str,
    group_key: str,
    source_language: str,
    target_language: str,
    instructions: str = ""
) -> PromptPair:
    """
    Prompt for a batch of key/value strings (JSON/JS groups, database rows).

    Args:
        payload: Flat JSON object {key: source text}
        group_key: Name of the group, given as context
        source_language: Source language code
        target_language: Target language code
        instructions: Optional per-language project instructions

    Returns:
        PromptPair: A named tuple with 'system' and 'user' prompts
    """
    user_prompt = f"""# STRINGS TO TRANSLATE

The JSON object below holds user interface strings from the "{group_key}" group.
Translate every value. Keep every key exactly as it is.

{payload}

**OUTPUT FORMAT:**
Respond with a single JSON object with exactly the same keys and the translated values.
Nothing before or after the JSON object."""
    return PromptPair(
        system=_get_system_prompt(source_language, target_language, instructions),
        user=user_prompt.strip(),
    )


def generate_unit_prompt(
    unit: TranslationUnit,
    source_language: str,
    target_language: str,
    instructions: str = ""
) -> PromptPair:
    """Select the prompt matching the unit's context."""
    if unit.is_structured:
        return generate_group_prompt(unit.rendered_text, unit.key, source_language, target_language, instructions)
    if unit.context == UnitContext.FRONTMATTER:
        return generate_frontmatter_prompt(unit.rendered_text, source_language, target_language, instructions)
    return generate_chunk_prompt(unit.rendered_text, unit.context, source_language, target_language, instructions)
