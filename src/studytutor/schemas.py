from typing import Optional
from pydantic import Field, model_validator

from .database.models import CamelModel, Message


class CreateConversationRequest(CamelModel):
    user_id: str = Field(min_length=1)
    title: str = "Untitled"


class SendMessageRequest(CamelModel):
    conversation_id: str = Field(min_length=1)
    content: str = ""
    is_user: bool = True
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def require_text_or_image(self):
        if not self.content.strip() and not self.image_url:
            raise ValueError("Message must include text or an image")
        return self


class SendMessageResponse(CamelModel):
    user_message: Message
    ai_message: Message


class UploadResponse(CamelModel):
    image_url: str
