from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from server.dependencies.auth import get_user_id, verify_api_key
from server.models.responses import UploadResponse
from shared.models.conversation import DEFAULT_CONTEXT
from shared.models.ingestion import UploadedFile

router = APIRouter(prefix="/chats", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.post("/documents")
async def upload_documents(
    request: Request,
    chat_id: str = Form(..., alias="chatId"),
    context_name: str = Form(DEFAULT_CONTEXT, alias="contextName"),
    files: list[UploadFile] = File(...),
    user_id: str = Depends(get_user_id),
) -> UploadResponse:
    """Ingest uploaded files into a conversation.

    Files that fail are reported in the response; the others are still ingested.

    Args:
        request (Request): FastAPI request (provides the services on app.state).
        chat_id (str): Target conversation.
        context_name (str): Context bucket receiving the documents.
        files (list[UploadFile]): The uploaded files.
        user_id (str): Acting user, must own the conversation.

    Returns:
        UploadResponse: The updated conversation and one result per file.
    """
    await request.app.state.conversation_service.do_get_owned(chat_id, user_id)
    uploads = [
        UploadedFile(
            filename=upload.filename or "",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        )
        for upload in files
    ]
    result = await request.app.state.ingestion_service.do_ingest(
        conversation_id=chat_id,
        user_id=user_id,
        bucket=context_name,
        files=uploads,
    )
    return UploadResponse(updated_chat=result.conversation.to_response(), files=result.files)
