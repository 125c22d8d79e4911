"""Factory pattern for creating LLM client instances."""

import logging

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.demo_client import DemoLLMClient
from app.adapters.llm.gemini_client import GeminiClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import Settings, settings as default_settings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def create_llm_client(settings: Settings | None = None) -> AbstractLLMClient:
    """Instantiate the AI client named by LLM_PROVIDER.

    A cloud provider without an API key degrades to the demo client, except
    in production where the missing key is a configuration error. The
    ``gemini`` provider reads GEMINI_API_KEY first, then LLM_API_KEY.

    Args:
        settings: Settings to read; defaults to the global settings.

    Returns:
        AbstractLLMClient: Configured client instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = settings or default_settings
    provider = cfg.llm.provider.lower()

    if provider == "demo":
        return DemoLLMClient()

    if provider == "openai":
        if not cfg.llm.api_key:
            if cfg.app.is_production:
                raise ValidationAppError(
                    code="llm_missing_api_key",
                    message="OpenAI provider requires LLM_API_KEY in production",
                )
            logger.warning("llm.demo_fallback", extra={"provider": provider})
            return DemoLLMClient()
        return OpenAIClient(
            api_key=cfg.llm.api_key,
            model=cfg.llm.model,
            base_url=cfg.llm.base_url,
            timeout_seconds=cfg.llm.timeout_seconds,
            temperature=cfg.llm.temperature,
            max_tokens=cfg.llm.max_tokens,
        )

    if provider == "gemini":
        api_key = cfg.llm.gemini_api_key or cfg.llm.api_key
        if not api_key:
            if cfg.app.is_production:
                raise ValidationAppError(
                    code="llm_missing_api_key",
                    message="Gemini provider requires GEMINI_API_KEY in production",
                )
            logger.warning("llm.demo_fallback", extra={"provider": provider})
            return DemoLLMClient()
        return GeminiClient(
            api_key=api_key,
            model=cfg.llm.gemini_model,
            timeout_seconds=cfg.llm.timeout_seconds,
            temperature=cfg.llm.temperature,
            max_tokens=cfg.llm.max_tokens,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=(
            f"Unknown LLM provider: '{provider}'. Supported providers: demo, openai, gemini"
        ),
    )
