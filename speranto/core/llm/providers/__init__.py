"""
LLM Provider Implementations

Providers:
    - mistral: Mistral platform API
    - openai: OpenAI-compatible APIs
    - ollama: Local Ollama server
"""

__all__ = []
