import pytest

from app.intake import EncodedDocument
from app.llm import PageClient
from app.session import SessionController

from .helpers import FakeOpenAI


@pytest.fixture
def document() -> EncodedDocument:
    return EncodedDocument(filename="book.pdf", media_type="application/pdf", data="JVBERi0xLjQK", size=9)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def page_client(fake_openai: FakeOpenAI) -> PageClient:
    return PageClient(fake_openai, model="test-model")


@pytest.fixture
def controller(page_client: PageClient) -> SessionController:
    return SessionController(page_client, max_upload_bytes=1024)
