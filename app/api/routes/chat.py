from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
@router.post(
    "/api/v1/chat",
    response_model=ChatResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def chat(
    payload: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Answer a chat message.

    The message is checked against the per-IP rate limit, validated, prefixed
    with the knowledge base and sent to the configured AI provider.

    Args:
        payload: Message and optional conversation id.
        chat_service: Service owned by the running app.

    Returns:
        ChatResponse: Generated reply. Rate limit info is returned in the
            X-RateLimit-* headers.

    Raises:
        ValidationAppError: 400 for invalid messages.
        RateLimitExceededError: 429 when the client is over quota.
        LLMAppError: 502 when the AI provider fails.
    """
    return await chat_service.process_message(
        payload.message,
        conversation_id=payload.conversation_id,
    )
