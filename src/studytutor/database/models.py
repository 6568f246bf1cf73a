from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes field names the way the web client expects them (camelCase)"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    @field_validator("*")
    @classmethod
    def assume_utc(cls, value):
        # SQLite hands timestamps back without their offset; they are stored as UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class User(CamelModel):
    id: str
    username: str
    password: str

    @classmethod
    def from_db(cls, db_model) -> "User":
        return cls(
            id=db_model.id,
            username=db_model.username,
            password=db_model.password,
        )


class Conversation(CamelModel):
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db(cls, db_model) -> "Conversation":
        return cls(
            id=db_model.id,
            user_id=db_model.user_id,
            title=db_model.title,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )


class Message(CamelModel):
    id: str
    conversation_id: str
    content: str
    is_user: bool
    image_url: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_db(cls, db_model) -> "Message":
        return cls(
            id=db_model.id,
            conversation_id=db_model.conversation_id,
            content=db_model.content,
            is_user=db_model.is_user,
            image_url=db_model.image_url,
            created_at=db_model.created_at,
        )
