"""
OpenAI-compatible provider implementation.

This module provides the OpenAICompatibleProvider class for interacting with
the OpenAI API and compatible endpoints (Mistral, llama.cpp, LM Studio, vLLM, etc.).
"""

from typing import Optional
import httpx

from ..base import LLMProvider, LLMResponse, GenerateOptions
from ..exceptions import LLMAuthenticationError, LLMError, LLMResponseError

from speranto.config import OPENAI_API_ENDPOINT, OPENAI_API_KEY, LLM_API_KEY
from speranto.core.exceptions import ConfigurationError
from speranto.utils.unified_logger import warning


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible chat completions API provider"""

    kind = "openai"
    default_endpoint = OPENAI_API_ENDPOINT

    def __init__(self, model: str, api_key: Optional[str] = None,
                 api_endpoint: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(model, transport=transport)
        self.api_endpoint = (api_endpoint or self.default_endpoint).rstrip('/')
        self.api_key = api_key or LLM_API_KEY or self._provider_api_key()
        if not self.api_key:
            raise ConfigurationError(
                f"{self.kind} API key is required. Set LLM_API_KEY or pass --api-key.",
                {'provider': self.kind},
            )

    def _provider_api_key(self) -> str:
        return OPENAI_API_KEY

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _build_payload(self, prompt: str, options: GenerateOptions,
                       system_prompt: Optional[str] = None) -> dict:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        return payload

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None,
                       system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate text using an OpenAI compatible API.

        Args:
            prompt: The user prompt (content to translate)
            options: Sampling options
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info
        """
        options = options or GenerateOptions()
        response = await self._request(
            "POST",
            f"{self.api_endpoint}/chat/completions",
            json=self._build_payload(prompt, options, system_prompt),
            headers=self._headers(),
        )
        data = self._json(response)

        choices = data.get("choices") or []
        if not choices:
            raise LLMResponseError("Response has no choices", {'model': self.model})
        choice = choices[0]
        content = (choice.get("message") or {}).get("content") or ""

        usage = data.get("usage") or {}
        return LLMResponse(
            content=content,
            model=data.get("model", self.model),
            finish_reason=choice.get("finish_reason"),
            usage={
                'prompt_tokens': usage.get("prompt_tokens", 0),
                'completion_tokens': usage.get("completion_tokens", 0),
                'total_tokens': usage.get("total_tokens", 0),
            },
        )

    async def is_model_available(self) -> bool:
        """Check the model list; authentication failures propagate."""
        try:
            response = await self._request("GET", f"{self.api_endpoint}/models", headers=self._headers())
        except LLMAuthenticationError:
            raise
        except LLMError as e:
            warning(f"Could not list {self.kind} models: {e}")
            return False
        models = self._json(response).get("data") or []
        return any(m.get("id") == self.model for m in models)

    async def is_model_loaded(self) -> bool:
        available = await self.is_model_available()
        if not available:
            warning(f"Model {self.model} may not be available or you don't have access to it. Proceeding anyway...")
        return available
