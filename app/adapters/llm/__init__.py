"""LLM adapter layer - abstracts over generative AI providers."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.demo_client import DemoLLMClient
from app.adapters.llm.factory import create_llm_client
from app.adapters.llm.gemini_client import GeminiClient
from app.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "DemoLLMClient",
    "GeminiClient",
    "OpenAIClient",
    "create_llm_client",
]
