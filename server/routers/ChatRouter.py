from fastapi import APIRouter, Query, Request

from server.models.requests import ChatRequest
from server.models.responses import ChatResponse, DeleteResponse
from shared.models.conversation import Conversation, ConversationsListResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
async def chat(request: Request, body: ChatRequest) -> ChatResponse:
    """Answer a question from the stored documents and record the turn.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): The message and optional conversation id.

    Returns:
        ChatResponse: Reply text, conversation id, cited sources, soft warnings.
    """
    chat_service = request.app.state.chat_service
    reply, conversation_id = await chat_service.do_chat(body.message, body.conversation_id)
    return ChatResponse(
        response=reply.response,
        conversation_id=conversation_id,
        sources=reply.sources,
        warnings=reply.warnings,
    )


@router.get("/conversations")
async def list_conversations(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ConversationsListResponse:
    return await request.app.state.conversation_store.do_list(page=page, page_size=limit)


@router.get("/conversations/{conversation_id}")
async def get_conversation(request: Request, conversation_id: str) -> Conversation:
    return await request.app.state.conversation_store.do_get(conversation_id)


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(request: Request, conversation_id: str) -> DeleteResponse:
    await request.app.state.conversation_accumulator.delete_conversation(conversation_id)
    return DeleteResponse(id=conversation_id)
