"""
Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and provides common fixtures
and configuration for all test modules: a scriptable in-memory LLM provider
and helpers to build file and database configurations in temp directories.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from speranto.config import Config, FileConfig
from speranto.core.llm.base import GenerateOptions, LLMProvider, LLMResponse
from speranto.core.llm.exceptions import LLMResponseError

_STRUCTURED_MARKER = "# STRINGS TO TRANSLATE"
_TEXT_SECTIONS = (
    ("# MARKDOWN TO TRANSLATE\n\n", "\n\nRespond with the translated Markdown only."),
    ("booleans and numbers unchanged.\n\n", "\n\nRespond with the complete front matter block only"),
)


def extract_payload(prompt: str):
    """Return the content a prompt asks to translate (dict for string groups, str otherwise)."""
    if _STRUCTURED_MARKER in prompt:
        body = prompt.split("**OUTPUT FORMAT:**")[0]
        return json.loads(body[body.index("{"):body.rindex("}") + 1])
    for head, tail in _TEXT_SECTIONS:
        if head in prompt:
            return prompt.split(head, 1)[1].rsplit(tail, 1)[0]
    raise AssertionError(f"Unrecognized prompt: {prompt[:80]}")


def shout(text: str) -> str:
    """Default fake translation: upper-case, which keeps Markdown structure intact."""
    return text.upper()


class MockProvider(LLMProvider):
    """
    In-memory provider that "translates" by applying a function.

    Args:
        model: Model name reported to the translators
        translate: Applied to every string value (groups) or to the whole text (Markdown)
        fail_on: Requests whose prompt contains this substring raise LLMResponseError
        ready_error: Raised from is_model_loaded()
        delay: Seconds each request takes, to observe concurrency
        reply: Replaces the reply entirely, receives the extracted payload
    """

    kind = "mock"

    def __init__(self, model: str = "mock-model", translate: Callable[[str], str] = shout,
                 fail_on: Optional[str] = None, ready_error: Optional[Exception] = None,
                 delay: float = 0.0, reply: Optional[Callable] = None, **kwargs):
        super().__init__(model)
        self.translate = translate
        self.fail_on = fail_on
        self.ready_error = ready_error
        self.delay = delay
        self.reply = reply
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []
        self.readiness_checks = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None,
                       system_prompt: Optional[str] = None) -> LLMResponse:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_on is not None and self.fail_on in prompt:
                raise LLMResponseError("mock failure")
            payload = extract_payload(prompt)
            if self.reply is not None:
                content = self.reply(payload)
            elif isinstance(payload, dict):
                content = json.dumps({k: self.translate(v) for k, v in payload.items()}, ensure_ascii=False)
            else:
                content = self.translate(payload)
        finally:
            self.in_flight -= 1
        return LLMResponse(content=content, model=self.model)

    async def is_model_loaded(self) -> bool:
        self.readiness_checks += 1
        if self.ready_error is not None:
            raise self.ready_error
        return True

    async def close(self):
        self.closed = True


class MockProviderFactory:
    """Stands in for create_llm_provider; keeps every provider it builds."""

    def __init__(self, **provider_kwargs):
        self.provider_kwargs = provider_kwargs
        self.providers: List[MockProvider] = []

    def __call__(self, provider_type: str, model: str = "mock-model",
                 api_key: Optional[str] = None, api_endpoint: Optional[str] = None) -> MockProvider:
        provider = MockProvider(model=model, **self.provider_kwargs)
        self.providers.append(provider)
        return provider

    @property
    def provider(self) -> MockProvider:
        return self.providers[-1]

    @property
    def calls(self) -> int:
        return sum(p.calls for p in self.providers)


@pytest.fixture
def mock_provider():
    """A provider translating by upper-casing."""
    return MockProvider()


@pytest.fixture
def make_provider():
    """Build a MockProvider with custom behaviour."""
    return MockProvider


@pytest.fixture
def provider_factory():
    return MockProviderFactory()


@pytest.fixture
def make_factory():
    """Build a provider factory whose providers share custom behaviour."""
    return MockProviderFactory


@pytest.fixture
def content_dirs(tmp_path):
    """Source and target directories for a file run."""
    source = tmp_path / "content"
    source.mkdir()
    return source, tmp_path / "out" / "[lang]"


@pytest.fixture
def make_config(content_dirs):
    """Build a file-run Config over the temp directories."""
    source, target = content_dirs

    def _make(**overrides) -> Config:
        files = FileConfig(
            source_dir=str(source),
            target_dir=str(target),
            use_lang_code_as_filename=overrides.pop('use_lang_code_as_filename', False),
            max_strings_per_group=overrides.pop('max_strings_per_group', 50),
        )
        values = dict(
            model="mock-model",
            source_lang="en",
            target_langs=["es"],
            provider="mock",
            concurrency=4,
            files=files,
        )
        values.update(overrides)
        return Config(**values)

    return _make
