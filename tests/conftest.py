import pytest
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add the project root to the Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment from .env for all tests (does not override existing env)
load_dotenv(project_root / ".env")

from bot.transport import MessageHandle  # noqa: E402


class FakeTransport:
    """In-memory ChatTransport recording every send and edit."""

    def __init__(self):
        self.sent = []
        self.edits = []
        self._counter = 0

    def _next(self, chat_id):
        self._counter += 1
        return MessageHandle(chat_id, f"msg-{self._counter}")

    async def send_text(self, chat_id, text):
        handle = self._next(chat_id)
        self.sent.append({"kind": "text", "chat_id": chat_id, "text": text, "handle": handle})
        return handle

    async def edit_text(self, handle, text):
        self.edits.append({"handle": handle, "text": text})

    async def send_image(self, chat_id, image, caption=""):
        handle = self._next(chat_id)
        self.sent.append({"kind": "image", "chat_id": chat_id, "image": image, "caption": caption, "handle": handle})
        return handle

    async def send_document(self, chat_id, data, *, filename, caption="", mimetype="application/pdf"):
        handle = self._next(chat_id)
        self.sent.append({
            "kind": "document", "chat_id": chat_id, "data": data, "filename": filename,
            "caption": caption, "mimetype": mimetype, "handle": handle,
        })
        return handle

    def of_kind(self, kind):
        return [m for m in self.sent if m["kind"] == kind]

    def edit_texts(self):
        return [e["text"] for e in self.edits]


# Common test fixtures and configuration
@pytest.fixture(scope="session")
def test_project_root():
    """Provide a test project root path."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def mock_environment(monkeypatch, request):
    """Mock environment variables for unit tests only."""
    if request.node.get_closest_marker("integration") is not None:
        return
    monkeypatch.setenv("GEMINI_KEY", "test_gemini_key")
    monkeypatch.setenv("PORT", "3999")


@pytest.fixture
def transport():
    return FakeTransport()
