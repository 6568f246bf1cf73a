from abc import ABC, abstractmethod
from typing import Optional

EMPTY_RESPONSE_FALLBACK = (
    "I apologize, but I could not generate a response. Please try again."
)


class BaseCompletionService(ABC):
    @abstractmethod
    async def generate_response(
        self, content: str, image_url: Optional[str] = None
    ) -> str:
        """Get a tutoring reply for one user turn.

        Raises GenerationError when the provider cannot be reached or fails.
        """
        pass
