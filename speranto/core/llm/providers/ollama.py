"""
Ollama provider implementation.

This module provides the OllamaProvider class for interacting with local
Ollama servers, including pulling a model that is not installed yet.
"""

from typing import Optional
import json
import httpx

from ..base import LLMProvider, LLMResponse, GenerateOptions
from ..exceptions import LLMConnectionError, ModelUnavailableError

from speranto.config import OLLAMA_API_ENDPOINT, REQUEST_TIMEOUT
from speranto.utils.unified_logger import info


class OllamaProvider(LLMProvider):
    """Ollama API provider - uses /api/generate"""

    kind = "ollama"

    def __init__(self, model: str, api_endpoint: Optional[str] = None,
                 api_key: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(model, transport=transport)
        endpoint = (api_endpoint or OLLAMA_API_ENDPOINT).rstrip('/')
        # Accept a full /api/generate URL as well as the server root
        for suffix in ('/api/generate', '/api/chat'):
            if endpoint.endswith(suffix):
                endpoint = endpoint[:-len(suffix)]
        self.api_endpoint = endpoint

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None,
                       system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate text using the Ollama generate API (non-streaming).

        Args:
            prompt: The user prompt (content to translate)
            options: Sampling options
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info
        """
        options = options or GenerateOptions()
        model_options = {
            "temperature": options.temperature,
            "num_predict": options.max_tokens,
            "top_p": options.top_p,
            "top_k": options.top_k,
        }
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {k: v for k, v in model_options.items() if v is not None},
        }
        if system_prompt:
            payload["system"] = system_prompt

        response = await self._request("POST", f"{self.api_endpoint}/api/generate", json=payload)
        data = self._json(response)

        prompt_tokens = data.get("prompt_eval_count", 0) or 0
        completion_tokens = data.get("eval_count", 0) or 0
        return LLMResponse(
            content=(data.get("response") or "").strip(),
            model=data.get("model", self.model),
            finish_reason="stop" if data.get("done") else None,
            usage={
                'prompt_tokens': prompt_tokens,
                'completion_tokens': completion_tokens,
                'total_tokens': prompt_tokens + completion_tokens,
            } if completion_tokens else {},
        )

    async def is_model_available(self) -> bool:
        response = await self._request("GET", f"{self.api_endpoint}/api/tags")
        models = self._json(response).get("models") or []
        return any(self.model in (m.get("name") or "") for m in models)

    async def pull_model(self) -> None:
        """Pull the model, logging streamed progress."""
        info(f"Model {self.model} not found locally. Pulling from Ollama...")
        client = await self._get_client()
        last_status = None
        try:
            async with client.stream(
                "POST",
                f"{self.api_endpoint}/api/pull",
                json={"model": self.model, "stream": True},
                timeout=REQUEST_TIMEOUT,
            ) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_status(response)
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        progress = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if progress.get("error"):
                        raise ModelUnavailableError(
                            f"Failed to pull model {self.model}: {progress['error']}",
                            {'model': self.model},
                        )
                    status = progress.get("status", "")
                    total = progress.get("total") or 0
                    if total:
                        percentage = round(progress.get("completed", 0) / total * 100)
                        info(f"Pulling {self.model}: {status} - {percentage}%")
                    elif status != last_status:
                        info(f"Pulling {self.model}: {status}")
                    last_status = status
        except httpx.RequestError as e:
            raise LLMConnectionError(f"Cannot reach ollama at {self.api_endpoint}: {e}") from e
        info(f"Model {self.model} pulled successfully")

    async def is_model_loaded(self) -> bool:
        if await self.is_model_available():
            return True
        await self.pull_model()
        return True
