import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.pool import StaticPool

from ..errors import NotFoundError, ValidationError
from .base import Storage
from .models import Conversation, Message, User

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)


class ConversationModel(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    # Not a foreign key: the demo listing uses a user id that is never registered
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class MessageModel(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    conversation_id = Column(
        String, ForeignKey("conversations.id"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    is_user = Column(Boolean, nullable=False)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class SQLStorage(Storage):
    """Storage backed by SQLAlchemy.

    The default URL is an in-memory SQLite database shared by every session
    through a StaticPool, so nothing outlives the process. All writes go
    through one lock, which also hands out strictly increasing timestamps:
    two messages never share a created_at, and a conversation's updated_at
    always moves forward.
    """

    def __init__(self, db_url: str = "sqlite://"):
        engine_args = {}
        if db_url.startswith("sqlite"):
            engine_args = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        self.engine = create_engine(db_url, **engine_args)
        Base.metadata.create_all(self.engine)
        self._lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def _now(self) -> datetime:
        # caller must hold self._lock
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def create_user(self, username: str, password: str) -> User:
        with self._lock, self._session() as session:
            if session.query(UserModel).filter_by(username=username).first():
                raise ValidationError(f"Username {username} already exists")

            db_user = UserModel(
                id=str(uuid.uuid4()), username=username, password=password
            )
            session.add(db_user)
            session.commit()
            logger.debug(f"Created user {db_user.id} ({username})")
            return User.from_db(db_user)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as session:
            db_user = session.get(UserModel, user_id)
            return User.from_db(db_user) if db_user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            db_user = session.query(UserModel).filter_by(username=username).first()
            return User.from_db(db_user) if db_user else None

    def create_conversation(self, user_id: str, title: str) -> Conversation:
        with self._lock, self._session() as session:
            now = self._now()
            db_conversation = ConversationModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                title=title,
                created_at=now,
                updated_at=now,
            )
            session.add(db_conversation)
            session.commit()
            logger.debug(f"Created conversation {db_conversation.id} for {user_id}")
            return Conversation.from_db(db_conversation)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._session() as session:
            db_conversation = session.get(ConversationModel, conversation_id)
            return Conversation.from_db(db_conversation) if db_conversation else None

    def list_conversations_by_user(self, user_id: str) -> List[Conversation]:
        with self._session() as session:
            conversations = (
                session.query(ConversationModel)
                .filter_by(user_id=user_id)
                .order_by(ConversationModel.updated_at.desc())
                .all()
            )
            return [Conversation.from_db(c) for c in conversations]

    def create_message(
        self,
        conversation_id: str,
        content: str,
        is_user: bool,
        image_url: Optional[str] = None,
    ) -> Message:
        with self._lock, self._session() as session:
            db_conversation = session.get(ConversationModel, conversation_id)
            if not db_conversation:
                raise NotFoundError(f"Conversation {conversation_id} not found")

            now = self._now()
            db_message = MessageModel(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                content=content,
                is_user=is_user,
                image_url=image_url,
                created_at=now,
            )
            session.add(db_message)
            db_conversation.updated_at = now
            session.commit()
            logger.debug(
                f"Stored {'user' if is_user else 'assistant'} message "
                f"{db_message.id} in conversation {conversation_id}"
            )
            return Message.from_db(db_message)

    def list_messages_by_conversation(self, conversation_id: str) -> List[Message]:
        with self._session() as session:
            messages = (
                session.query(MessageModel)
                .filter_by(conversation_id=conversation_id)
                .order_by(MessageModel.created_at.asc())
                .all()
            )
            return [Message.from_db(m) for m in messages]
