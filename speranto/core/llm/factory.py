"""
Provider registry and factory.

Providers are looked up by kind ("mistral", "openai", "ollama"); new backends
register themselves with register_provider() and become available to the
CLI and the pipelines without touching the orchestration code.
"""

from typing import Dict, List, Optional, Type

from speranto.config import DEFAULT_MODEL
from speranto.core.exceptions import ConfigurationError
from speranto.core.llm.base import LLMProvider
from speranto.core.llm.providers.mistral import MistralProvider
from speranto.core.llm.providers.ollama import OllamaProvider
from speranto.core.llm.providers.openai import OpenAICompatibleProvider

_PROVIDERS: Dict[str, Type[LLMProvider]] = {}


def register_provider(kind: str, provider_cls: Type[LLMProvider]) -> None:
    _PROVIDERS[kind.lower()] = provider_cls


def available_providers() -> List[str]:
    return sorted(_PROVIDERS)


def create_llm_provider(provider_type: str = "mistral", model: str = DEFAULT_MODEL,
                        api_key: Optional[str] = None, api_endpoint: Optional[str] = None,
                        **kwargs) -> LLMProvider:
    """Factory function to create LLM providers"""
    provider_cls = _PROVIDERS.get((provider_type or "").lower())
    if provider_cls is None:
        raise ConfigurationError(
            f"Unknown provider type: {provider_type}",
            {'available': ", ".join(available_providers())},
        )
    return provider_cls(model=model, api_key=api_key, api_endpoint=api_endpoint, **kwargs)


register_provider("openai", OpenAICompatibleProvider)
register_provider("mistral", MistralProvider)
register_provider("ollama", OllamaProvider)
