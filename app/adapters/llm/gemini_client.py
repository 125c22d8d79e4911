"""Google Gemini LLM client adapter."""

from google import genai
from google.genai import types

from app.adapters.llm.base import SYSTEM_PROMPT, AbstractLLMClient
from app.core.errors import LLMAppError


class GeminiClient(AbstractLLMClient):
    """Client for Gemini models through the google-genai SDK."""

    provider_name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key.
            model: Model name (e.g., "gemini-1.5-flash").
            timeout_seconds: Timeout for requests in seconds.
            temperature: Sampling temperature.
            max_tokens: Maximum output tokens.
        """
        # HttpOptions.timeout is in milliseconds
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_text(self, prompt: str) -> str:
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message="AI service unavailable. Please try again later.",
                details={"provider": self.provider_name, "hint": str(exc)},
            ) from exc

        # .text is None when the candidate was blocked or carries no text part
        content = response.text
        if not content or not content.strip():
            raise LLMAppError(
                code="llm_empty_response",
                message="AI service returned an empty response.",
                details={"provider": self.provider_name},
            )
        return content.strip()
