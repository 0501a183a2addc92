"""
Mistral provider implementation.

Mistral's platform API speaks the OpenAI chat completions dialect, so the
provider only changes the endpoint and the API key lookup.
"""

from speranto.config import MISTRAL_API_ENDPOINT, MISTRAL_API_KEY

from .openai import OpenAICompatibleProvider


class MistralProvider(OpenAICompatibleProvider):
    """
    Provider for the Mistral API.

    Configuration:
        endpoint: https://api.mistral.ai/v1
        model: Model identifier (e.g., "mistral-large-latest")
        api_key: LLM_API_KEY or MISTRAL_API_KEY
    """

    kind = "mistral"
    default_endpoint = MISTRAL_API_ENDPOINT

    def _provider_api_key(self) -> str:
        return MISTRAL_API_KEY
