"""Chat orchestration: validate, build the prompt, call the AI provider."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import ValidationAppError
from app.schemas.chat import ChatResponse
from app.services.knowledge_base import KnowledgeBaseService

logger = logging.getLogger(__name__)

FORBIDDEN_WORDS: tuple[str, ...] = ("spam", "hack", "exploit")


class ChatService:
    """Answers chat messages using the knowledge base and an AI client."""

    def __init__(
        self,
        llm: AbstractLLMClient,
        knowledge: KnowledgeBaseService,
        *,
        max_message_chars: int = 1000,
    ) -> None:
        self.llm = llm
        self.knowledge = knowledge
        self.max_message_chars = max_message_chars

    def validate_message(self, message: str) -> str:
        """Check a user message and return it stripped.

        Raises:
            ValidationAppError: With every failed rule listed in details.errors.
        """
        errors: list[str] = []
        text = message.strip()

        if not text:
            errors.append("Message cannot be empty")
        if len(message) > self.max_message_chars:
            errors.append(f"Message too long (maximum {self.max_message_chars} characters)")

        lowered = text.lower()
        if any(word in lowered for word in FORBIDDEN_WORDS):
            errors.append("Disallowed content detected")

        if errors:
            logger.warning(
                "chat.validation_failed",
                extra={"errors": errors, "message_length": len(message)},
            )
            raise ValidationAppError(
                code="invalid_message",
                message="Invalid message",
                details={
                    "errors": errors,
                    "max_length": self.max_message_chars,
                    "actual_length": len(message),
                },
            )
        return text

    async def process_message(
        self,
        message: str,
        conversation_id: str | None = None,
    ) -> ChatResponse:
        """Validate the message, query the AI provider and wrap its reply.

        Raises:
            ValidationAppError: Invalid message.
            KnowledgeBaseAppError: Knowledge base cannot be loaded.
            LLMAppError: AI provider failure.
        """
        start = time.perf_counter()
        text = self.validate_message(message)

        knowledge = self.knowledge.get_knowledge()
        prompt = self.knowledge.build_prompt(knowledge, text, conversation_id)

        reply = await self.llm.generate_text(prompt)

        logger.info(
            "chat.processed",
            extra={
                "provider": self.llm.provider_name,
                "message_length": len(text),
                "prompt_length": len(prompt),
                "response_length": len(reply),
                "processing_time_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return ChatResponse(
            success=True,
            response=reply,
            timestamp=datetime.now(timezone.utc).isoformat(),
            mode="demo" if self.llm.provider_name == "demo" else "production",
        )
