from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_user_id, verify_api_key
from server.models.requests import MessageRequest, RenameRequest
from server.models.responses import ChatResponse, DeleteResponse

router = APIRouter(prefix="/chats", tags=["chats"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_chats(request: Request, user_id: str = Depends(get_user_id)) -> list[dict]:
    """List the user's conversations, most recently updated first."""
    conversation_service = request.app.state.conversation_service
    summaries = await conversation_service.do_list(user_id)
    return [summary.to_response() for summary in summaries]


@router.post("", status_code=201)
async def create_chat(request: Request, user_id: str = Depends(get_user_id)) -> dict:
    conversation_service = request.app.state.conversation_service
    conversation = await conversation_service.do_create(user_id)
    return conversation.to_response()


@router.post("/message")
async def send_message(
    request: Request,
    body: MessageRequest,
    user_id: str = Depends(get_user_id),
) -> ChatResponse:
    """Answer the last turn of the conversation history.

    Args:
        request (Request): FastAPI request (provides the services on app.state).
        body (MessageRequest): chatId plus the full history, ending with the new user turn.
        user_id (str): Acting user, must own the conversation.

    Returns:
        ChatResponse: The updated conversation.
    """
    await request.app.state.conversation_service.do_get_owned(body.chat_id, user_id)
    history = [turn.to_chat_turn() for turn in body.conversation_history]
    conversation = await request.app.state.chat_service.do_handle_message(body.chat_id, history)
    return ChatResponse(updated_chat=conversation.to_response())


@router.get("/{chat_id}")
async def get_chat(request: Request, chat_id: str, user_id: str = Depends(get_user_id)) -> dict:
    conversation = await request.app.state.conversation_service.do_get_owned(chat_id, user_id)
    return conversation.to_response()


@router.put("/{chat_id}/title")
async def rename_chat(
    request: Request,
    chat_id: str,
    body: RenameRequest,
    user_id: str = Depends(get_user_id),
) -> dict:
    conversation = await request.app.state.conversation_service.do_rename(chat_id, user_id, body.title)
    return conversation.to_response()


@router.delete("/{chat_id}")
async def delete_chat(request: Request, chat_id: str, user_id: str = Depends(get_user_id)) -> DeleteResponse:
    await request.app.state.conversation_service.do_delete(chat_id, user_id)
    return DeleteResponse(message="Chat deleted.")
