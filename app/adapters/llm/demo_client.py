"""Offline demo client used when no provider key is configured."""

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError

DEMO_RESPONSE = "Test response: the chatbot is working correctly. (Demo mode)"


class DemoLLMClient(AbstractLLMClient):
    """Returns a canned reply without calling any external service."""

    provider_name = "demo"

    def __init__(self, response: str = DEMO_RESPONSE, available: bool = True) -> None:
        self.response = response
        self.available = available

    async def generate_text(self, prompt: str) -> str:
        if not self.available:
            raise LLMAppError(
                code="llm_unavailable",
                message="AI service unavailable. Please try again later.",
                details={"provider": self.provider_name},
            )
        return self.response

    def is_available(self) -> bool:
        return self.available
