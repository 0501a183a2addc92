"""
LLM gateway: provider base class, concrete providers and the provider factory.
"""

from .base import LLMProvider, LLMResponse, GenerateOptions
from .factory import create_llm_provider, register_provider, available_providers

__all__ = [
    'LLMProvider',
    'LLMResponse',
    'GenerateOptions',
    'create_llm_provider',
    'register_provider',
    'available_providers',
]
