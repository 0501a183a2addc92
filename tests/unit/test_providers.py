"""
Unit tests for the HTTP LLM providers, using httpx.MockTransport.
"""
import json

import httpx
import pytest

from speranto.core.exceptions import ConfigurationError
from speranto.core.llm.base import GenerateOptions
from speranto.core.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    ModelUnavailableError,
)
from speranto.core.llm.factory import available_providers, create_llm_provider, register_provider
from speranto.core.llm.providers.mistral import MistralProvider
from speranto.core.llm.providers.ollama import OllamaProvider
from speranto.core.llm.providers.openai import OpenAICompatibleProvider


def chat_reply(content, model="gpt-test"):
    return httpx.Response(200, json={
        "model": model,
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    })


class TestFactory:

    def test_builtin_providers(self):
        assert {"openai", "mistral", "ollama"} <= set(available_providers())

    def test_create(self):
        provider = create_llm_provider("mistral", model="mistral-small", api_key="k")
        assert isinstance(provider, MistralProvider)
        assert provider.api_endpoint == "https://api.mistral.ai/v1"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            create_llm_provider("nope", model="m")

    def test_register_provider(self):
        class EchoProvider(OllamaProvider):
            kind = "echo"

        register_provider("echo", EchoProvider)
        assert "echo" in available_providers()
        assert isinstance(create_llm_provider("ECHO", model="m"), EchoProvider)


class TestOpenAICompatibleProvider:

    @pytest.mark.asyncio
    async def test_generate(self):
        seen = {}

        def handler(request):
            seen['url'] = str(request.url)
            seen['auth'] = request.headers['authorization']
            seen['body'] = json.loads(request.content)
            return chat_reply("Hola")

        provider = OpenAICompatibleProvider(
            "gpt-test", api_key="sk-test", api_endpoint="http://llm.local/v1/",
            transport=httpx.MockTransport(handler),
        )
        response = await provider.generate("Hello", GenerateOptions(temperature=0.2), system_prompt="Be brief")
        await provider.close()

        assert response.content == "Hola"
        assert response.usage['total_tokens'] == 15
        assert seen['url'] == "http://llm.local/v1/chat/completions"
        assert seen['auth'] == "Bearer sk-test"
        assert seen['body']['messages'] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]
        assert seen['body']['temperature'] == 0.2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, LLMAuthenticationError),
        (403, LLMAuthenticationError),
        (429, LLMRateLimitError),
        (500, LLMError),
    ])
    async def test_http_errors(self, status, error):
        transport = httpx.MockTransport(lambda request: httpx.Response(status, text="nope"))
        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=transport)
        with pytest.raises(error):
            await provider.generate("Hello")
        await provider.close()

    @pytest.mark.asyncio
    async def test_retry_after_is_reported(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(429, headers={"retry-after": "7"}, text="slow down")
        )
        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=transport)
        with pytest.raises(LLMRateLimitError) as exc_info:
            await provider.generate("Hello")
        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(LLMConnectionError):
            await provider.generate("Hello")

    @pytest.mark.asyncio
    async def test_model_listing(self):
        def handler(request):
            assert request.url.path.endswith("/models")
            return httpx.Response(200, json={"data": [{"id": "gpt-test"}, {"id": "other"}]})

        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=httpx.MockTransport(handler))
        assert await provider.is_model_loaded() is True

    @pytest.mark.asyncio
    async def test_model_listing_auth_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=transport)
        with pytest.raises(LLMAuthenticationError):
            await provider.is_model_loaded()

    @pytest.mark.asyncio
    async def test_model_listing_unsupported(self):
        """Endpoints without /models only produce a warning."""
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="not found"))
        provider = OpenAICompatibleProvider("gpt-test", api_key="k", transport=transport)
        assert await provider.is_model_loaded() is False

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr("speranto.core.llm.providers.openai.LLM_API_KEY", "")
        monkeypatch.setattr("speranto.core.llm.providers.openai.OPENAI_API_KEY", "")
        with pytest.raises(ConfigurationError):
            OpenAICompatibleProvider("gpt-test")


class TestOllamaProvider:

    @pytest.mark.asyncio
    async def test_generate(self):
        seen = {}

        def handler(request):
            seen['url'] = str(request.url)
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={
                "model": "llama3", "response": " Hola \n", "done": True,
                "prompt_eval_count": 12, "eval_count": 3,
            })

        provider = OllamaProvider("llama3", api_endpoint="http://ollama:11434/api/generate",
                                  transport=httpx.MockTransport(handler))
        response = await provider.generate("Hello", GenerateOptions(temperature=0.0), system_prompt="sys")

        assert response.content == "Hola"
        assert response.usage['total_tokens'] == 15
        assert seen['url'] == "http://ollama:11434/api/generate"
        assert seen['body']['system'] == "sys"
        assert seen['body']['options'] == {"temperature": 0.0}
        assert seen['body']['stream'] is False

    @pytest.mark.asyncio
    async def test_installed_model(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"models": [{"name": "llama3:latest"}]})
        )
        provider = OllamaProvider("llama3", transport=transport)
        assert await provider.is_model_loaded() is True

    @pytest.mark.asyncio
    async def test_missing_model_is_pulled(self):
        requests = []

        def handler(request):
            requests.append(request.url.path)
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            lines = [
                {"status": "pulling manifest"},
                {"status": "downloading", "total": 100, "completed": 50},
                {"status": "success"},
            ]
            return httpx.Response(200, text="\n".join(json.dumps(line) for line in lines))

        provider = OllamaProvider("llama3", transport=httpx.MockTransport(handler))
        assert await provider.is_model_loaded() is True
        assert requests == ["/api/tags", "/api/pull"]

    @pytest.mark.asyncio
    async def test_pull_failure(self):
        def handler(request):
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            return httpx.Response(200, text=json.dumps({"error": "pull model manifest: file does not exist"}))

        provider = OllamaProvider("nope", transport=httpx.MockTransport(handler))
        with pytest.raises(ModelUnavailableError):
            await provider.is_model_loaded()

    @pytest.mark.asyncio
    async def test_server_down(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = OllamaProvider("llama3", transport=httpx.MockTransport(handler))
        with pytest.raises(LLMConnectionError):
            await provider.is_model_loaded()
