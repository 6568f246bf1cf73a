import base64
import logging
import mimetypes
from typing import Any, Dict, List, Optional

import openai

from ...config import DEFAULT_SYSTEM_PROMPT
from ...errors import GenerationError, NotFoundError
from ...uploads import UploadStore
from .base import BaseCompletionService, EMPTY_RESPONSE_FALLBACK

logger = logging.getLogger(__name__)

IMAGE_ONLY_PROMPT = "Please solve this problem from the image:"


class GroqCompletionService(BaseCompletionService):
    """Completion service for Groq, spoken to through its OpenAI-compatible API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "meta-llama/llama-4-scout-17b-16e-instruct",
        temperature: float = 0.7,
        max_tokens: int = 2048,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        timeout: Optional[float] = None,
        upload_store: Optional[UploadStore] = None,
        client: Any = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.upload_store = upload_store

        # Without a key every call fails with GenerationError instead of at startup
        if client is None and api_key:
            client_args = {"api_key": api_key, "base_url": base_url}
            if timeout is not None:
                client_args["timeout"] = timeout
            client = openai.AsyncOpenAI(**client_args)
        self.client = client

    @classmethod
    def from_settings(cls, settings, upload_store: Optional[UploadStore] = None):
        return cls(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            system_prompt=settings.system_prompt,
            timeout=settings.llm_timeout,
            upload_store=upload_store,
        )

    def _inline_image(self, image_url: str) -> str:
        """Turn a link to one of our uploads into a data URL the provider can read"""
        if self.upload_store is None:
            return image_url
        try:
            path = self.upload_store.resolve_url(image_url)
            if path is None:
                return image_url
            data = path.read_bytes()
        except (NotFoundError, OSError) as e:
            raise GenerationError(f"Could not read image {image_url}") from e

        mime, _ = mimetypes.guess_type(path.name)
        b64 = base64.b64encode(data).decode("utf-8")
        return f"data:{mime or 'application/octet-stream'};base64,{b64}"

    def build_messages(
        self, content: str, image_url: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt}
        ]

        if image_url:
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": content or IMAGE_ONLY_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": self._inline_image(image_url)},
                        },
                    ],
                }
            )
        else:
            messages.append({"role": "user", "content": content})

        return messages

    async def generate_response(
        self, content: str, image_url: Optional[str] = None
    ) -> str:
        if self.client is None:
            raise GenerationError("Groq API key is not configured")

        messages = self.build_messages(content, image_url)

        try:
            completion = await self.client.chat.completions.create(
                messages=messages,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.exception("Groq API error")
            raise GenerationError("Failed to generate AI response") from e

        if not completion.choices:
            return EMPTY_RESPONSE_FALLBACK
        return completion.choices[0].message.content or EMPTY_RESPONSE_FALLBACK
