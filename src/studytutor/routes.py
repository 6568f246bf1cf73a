"""
HTTP endpoints of the study tutor.

- Conversations: create, list (demo user or a given user), list messages
- Messages: store the user's turn, generate and store the tutor's reply
- Uploads: accept one problem image/PDF and serve stored files back
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse

from .database.base import Storage
from .database.models import Conversation, Message
from .errors import GenerationError, UploadError
from .schemas import (
    CreateConversationRequest,
    SendMessageRequest,
    SendMessageResponse,
    UploadResponse,
)
from .services.llm.base import BaseCompletionService
from .uploads import UploadStore

logger = logging.getLogger(__name__)

GENERATION_ERROR_REPLY = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again later."
)

router = APIRouter(prefix="/api")


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_llm(request: Request) -> BaseCompletionService:
    return request.app.state.llm


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads


@router.post("/conversations", response_model=Conversation)
async def create_conversation(
    data: CreateConversationRequest, storage: Storage = Depends(get_storage)
):
    return storage.create_conversation(data.user_id, data.title)


@router.get("/conversations", response_model=List[Conversation])
async def list_demo_conversations(
    request: Request, storage: Storage = Depends(get_storage)
):
    # No accounts yet: the web client always talks as the demo user
    return storage.list_conversations_by_user(request.app.state.settings.demo_user_id)


@router.get("/conversations/{user_id}", response_model=List[Conversation])
async def list_user_conversations(user_id: str, storage: Storage = Depends(get_storage)):
    return storage.list_conversations_by_user(user_id)


@router.get(
    "/conversations/{conversation_id}/messages", response_model=List[Message]
)
async def list_messages(conversation_id: str, storage: Storage = Depends(get_storage)):
    return storage.list_messages_by_conversation(conversation_id)


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(
    data: SendMessageRequest,
    storage: Storage = Depends(get_storage),
    llm: BaseCompletionService = Depends(get_llm),
):
    """
    Store the user's message, ask the tutor for a reply and store that too.

    The two writes are not atomic. A failed generation still produces an
    assistant message carrying an apology, so every user turn gets a reply.
    """
    user_message = storage.create_message(
        data.conversation_id, data.content, data.is_user, data.image_url
    )

    try:
        ai_content = await llm.generate_response(data.content, data.image_url)
    except GenerationError as e:
        logger.warning(
            f"Generation failed for conversation {data.conversation_id}: {e.message}"
        )
        ai_content = GENERATION_ERROR_REPLY

    ai_message = storage.create_message(
        data.conversation_id, ai_content, is_user=False, image_url=None
    )
    return SendMessageResponse(user_message=user_message, ai_message=ai_message)


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    uploads: UploadStore = Depends(get_upload_store),
):
    if image is None:
        raise UploadError("No file uploaded")

    # one byte past the limit is enough to know it is too large
    data = await image.read(uploads.max_bytes + 1)
    filename = uploads.save(image.filename, image.content_type, data)
    return UploadResponse(image_url=uploads.url_for(filename))


@router.get("/uploads/{filename}")
async def get_upload(filename: str, uploads: UploadStore = Depends(get_upload_store)):
    return FileResponse(uploads.resolve(filename))
