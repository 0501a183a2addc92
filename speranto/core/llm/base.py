"""
Base classes and data structures for LLM providers.

This module defines the abstract base class that all LLM providers must implement,
as well as the request options and response data structures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import httpx

from speranto.config import REQUEST_TIMEOUT
from speranto.core.llm.exceptions import (
    LLMError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMResponseError,
)


@dataclass
class GenerateOptions:
    """Sampling options forwarded to the provider"""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None


@dataclass
class LLMResponse:
    """Response from LLM with token usage information"""
    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens


class LLMProvider(ABC):
    """Abstract base class for LLM providers"""

    # Registry name, set by subclasses
    kind: str = ""

    def __init__(self, model: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the LLM provider.

        Args:
            model: Model name/identifier
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.model = model
        self._transport = transport
        self._client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create a persistent HTTP client with connection pooling"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                timeout=httpx.Timeout(REQUEST_TIMEOUT),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request and map transport and HTTP failures to LLM errors."""
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise LLMConnectionError(f"{self.kind} request timed out: {e}", {'url': url}) from e
        except httpx.RequestError as e:
            raise LLMConnectionError(f"Cannot reach {self.kind} at {url}: {e}", {'url': url}) from e
        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        status = response.status_code
        body = response.text[:500]
        context = {'status': status, 'model': self.model}
        if status in (401, 403):
            raise LLMAuthenticationError(f"{self.kind} rejected the API key: {body}", context)
        if status == 429:
            retry_after = response.headers.get('retry-after')
            raise LLMRateLimitError(
                f"{self.kind} rate limit exceeded: {body}",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                context=context,
            )
        raise LLMError(f"{self.kind} HTTP {status}: {body}", context)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise LLMResponseError(f"Response is not valid JSON: {response.text[:200]}") from e

    @abstractmethod
    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None,
                       system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate text from prompt.

        Args:
            prompt: The user prompt
            options: Sampling options
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info

        Raises:
            LLMError: on any failure; no retries happen here
        """
        pass

    @abstractmethod
    async def is_model_loaded(self) -> bool:
        """
        Check that the model can serve requests.

        May have side effects (Ollama pulls a missing model). Awaited once per
        translator before the first generate() call.
        """
        pass
