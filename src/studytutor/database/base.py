from abc import ABC, abstractmethod
from typing import List, Optional

from .models import User, Conversation, Message


class Storage(ABC):
    """Record keeper for users, conversations and messages"""

    # Users

    @abstractmethod
    def create_user(self, username: str, password: str) -> User:
        """Create a user. Raises ValidationError if the username is taken."""
        pass

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    # Conversations

    @abstractmethod
    def create_conversation(self, user_id: str, title: str) -> Conversation:
        pass

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        pass

    @abstractmethod
    def list_conversations_by_user(self, user_id: str) -> List[Conversation]:
        """Conversations owned by the user, most recently active first."""
        pass

    # Messages

    @abstractmethod
    def create_message(
        self,
        conversation_id: str,
        content: str,
        is_user: bool,
        image_url: Optional[str] = None,
    ) -> Message:
        """Append a message and bump the conversation's updated_at.

        Raises NotFoundError if the conversation does not exist.
        """
        pass

    @abstractmethod
    def list_messages_by_conversation(self, conversation_id: str) -> List[Message]:
        """Messages of a conversation in the order they were created."""
        pass
