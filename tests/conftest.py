from typing import Optional

import pytest
from fastapi.testclient import TestClient

from studytutor.config import Settings
from studytutor.database.db import SQLStorage
from studytutor.main import create_app
from studytutor.services.llm.base import BaseCompletionService


class StubCompletionService(BaseCompletionService):
    """Answers every turn with a canned reply, or raises a preset error"""

    def __init__(self, reply: str = "Step 1: Subtract 3 from both sides.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate_response(self, content: str, image_url: Optional[str] = None) -> str:
        self.calls.append((content, image_url))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings(tmp_path):
    return Settings(
        groq_api_key="",
        database_url="sqlite://",
        upload_dir=str(tmp_path / "uploads"),
        _env_file=None,
    )


@pytest.fixture
def storage():
    return SQLStorage("sqlite://")


@pytest.fixture
def llm():
    return StubCompletionService()


@pytest.fixture
def app(settings, storage, llm):
    return create_app(settings=settings, storage=storage, llm=llm)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
