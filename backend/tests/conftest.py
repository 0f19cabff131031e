import os
import tempfile

# must be set before anything under mathmentor is imported
_TMP = tempfile.mkdtemp(prefix="mathmentor-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["AI_API_KEY"] = "test-key"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"

import pytest
from sqlalchemy import delete

from mathmentor.services.errors import AIServiceError


class FakeGateway:
    """Stands in for AIGateway: returns queued replies and records every request."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def chat(self, messages, timeout=None):
        self.calls.append({"messages": messages, "timeout": timeout})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, AIServiceError):
            raise reply
        return reply

    @property
    def last_messages(self):
        return self.calls[-1]["messages"]


class FakeStore:
    def __init__(self):
        self.grades = {}
        self.questions = {}
        self.statuses = {}

    def save_grade(self, answer_id, result):
        self.grades[answer_id] = result
        return True

    def add_questions(self, document_id, drafts):
        self.questions[document_id] = list(drafts)
        return self.questions[document_id]

    def set_document_status(self, document_id, status):
        self.statuses[document_id] = status


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def client(gateway):
    from fastapi.testclient import TestClient
    from mathmentor.api.deps import get_gateway
    from mathmentor.main import app
    from mathmentor.models.answer import Answer
    from mathmentor.models.document import Document
    from mathmentor.models.question import Question
    from mathmentor.services.db import get_session

    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app, headers={"X-User-Id": "alice"}) as c:
        yield c
    app.dependency_overrides.clear()

    with get_session() as s:
        for model in (Answer, Question, Document):
            s.execute(delete(model))
        s.commit()
