"""
Translator: the boundary between translation units and the LLM gateway.

One Translator exists per target language. It owns the prompts for that
language (including optional per-language project instructions), checks
once that the model can serve requests, and maps LLM replies back onto the
members of the unit that was sent.
"""

import asyncio
import json
import os
import time
from typing import Dict, Optional

import aiofiles

from speranto.config import DEFAULT_TEMPERATURE
from speranto.core.exceptions import ConnectivityError
from speranto.core.llm.base import GenerateOptions, LLMProvider
from speranto.core.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMResponseError,
    ModelUnavailableError,
)
from speranto.core.llm.utils.extraction import clean_text_response, extract_json_object
from speranto.core.units import TranslationUnit
from speranto.prompts import PromptPair, generate_group_prompt, generate_unit_prompt
from speranto.utils.unified_logger import LogType, debug, info, warning


# Readiness failures that make every later request pointless
FATAL_READINESS_ERRORS = (LLMAuthenticationError, LLMConnectionError, ModelUnavailableError)


async def load_instructions(instructions_dir: Optional[str], lang: str) -> str:
    """Read ``{instructions_dir}/{lang}.md``; missing directory or file means no instructions."""
    if not instructions_dir:
        return ""
    path = os.path.join(instructions_dir, f"{lang}.md")
    if not os.path.isfile(path):
        return ""
    async with aiofiles.open(path, 'r', encoding='utf-8') as f:
        content = await f.read()
    info(f"Loaded {lang} instructions from {path}")
    return content.strip()


class Translator:
    """Translates units into one target language."""

    def __init__(self, provider: LLMProvider, source_lang: str, target_lang: str,
                 temperature: float = DEFAULT_TEMPERATURE,
                 instructions_dir: Optional[str] = None,
                 instructions: Optional[str] = None):
        self.provider = provider
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.temperature = temperature
        self.instructions_dir = instructions_dir
        self.instructions = instructions or ""
        self._ready = False
        self._ready_error: Optional[ConnectivityError] = None
        self._ready_lock = asyncio.Lock()

    @property
    def model(self) -> str:
        return self.provider.model

    async def ensure_ready(self) -> None:
        """
        Check model availability and load instructions, once per translator.

        Raises:
            ConnectivityError: the backend cannot be reached, rejects the
                credentials, or cannot provide the model
        """
        async with self._ready_lock:
            if self._ready_error is not None:
                raise self._ready_error
            if self._ready:
                return
            try:
                await self.provider.is_model_loaded()
            except FATAL_READINESS_ERRORS as e:
                self._ready_error = ConnectivityError(
                    f"LLM backend '{self.provider.kind}' is not usable: {e.message}",
                    remediation=_remediation_for(self.provider, e),
                    context={'model': self.model},
                )
                raise self._ready_error from e
            if not self.instructions:
                self.instructions = await load_instructions(self.instructions_dir, self.target_lang)
            self._ready = True

    async def _generate(self, prompt: PromptPair, label: str) -> str:
        debug("LLM request", LogType.LLM_REQUEST, {
            'unit': label,
            'target_lang': self.target_lang,
            'model': self.model,
            'system_prompt': prompt.system,
            'prompt': prompt.user,
        })
        start_time = time.time()
        response = await self.provider.generate(
            prompt.user,
            GenerateOptions(temperature=self.temperature),
            system_prompt=prompt.system,
        )
        debug("LLM response", LogType.LLM_RESPONSE, {
            'unit': label,
            'execution_time': time.time() - start_time,
            'response': response.content,
        })
        return response.content

    async def translate_unit(self, unit: TranslationUnit) -> Dict[str, str]:
        """
        Translate one unit in a single request.

        Returns:
            Translated values keyed by member identity. Blank members are not
            sent and are absent from the result; so are keys the model left
            out of a structured reply (a warning is logged).

        Raises:
            LLMError: request failed or the reply could not be used
        """
        await self.ensure_ready()
        members = unit.sendable_members()
        if not members:
            return {}

        prompt = generate_unit_prompt(unit, self.source_lang, self.target_lang, self.instructions)
        content = await self._generate(prompt, unit.key)

        if unit.is_structured:
            data = extract_json_object(content)
            translations = {}
            for member in members:
                value = data.get(member.identity)
                if isinstance(value, str):
                    translations[member.identity] = value
                else:
                    warning(f"Key '{member.identity}' missing from {unit.key} reply, keeping source text")
            return translations

        text = clean_text_response(content, unit.rendered_text)
        if not text:
            raise LLMResponseError("Empty translation", {'unit': unit.key})
        return {members[0].identity: text}

    async def translate_fields(self, fields: Dict[str, str], label: str = "fields") -> Dict[str, str]:
        """
        Translate named strings in one request (a database row).

        Empty values are carried over as they are. Every non-empty field must
        come back translated, otherwise LLMResponseError is raised.
        """
        sendable = {k: v for k, v in fields.items() if v and v.strip()}
        if not sendable:
            return dict(fields)
        await self.ensure_ready()

        payload = json.dumps(sendable, ensure_ascii=False, indent=2)
        prompt = generate_group_prompt(payload, label, self.source_lang, self.target_lang, self.instructions)
        data = extract_json_object(await self._generate(prompt, label))

        result = dict(fields)
        for key in sendable:
            value = data.get(key)
            if not isinstance(value, str):
                raise LLMResponseError(f"Field '{key}' missing from reply", {'unit': label})
            result[key] = value
        return result


def _remediation_for(provider: LLMProvider, error: Exception) -> str:
    if isinstance(error, LLMAuthenticationError):
        return f"Check the API key for '{provider.kind}' (--api-key, LLM_API_KEY or the provider variable in .env)."
    if isinstance(error, ModelUnavailableError):
        return f"Check that model '{provider.model}' exists for '{provider.kind}'."
    endpoint = getattr(provider, 'api_endpoint', '')
    return f"Check that the '{provider.kind}' endpoint {endpoint} is reachable."
