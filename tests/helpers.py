import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Union

from app.models import ProcessingResult


class FakeUpload:
    def __init__(self, data: bytes, content_type: Optional[str] = "application/pdf", filename: str = "book.pdf"):
        self.data = data
        self.content_type = content_type
        self.filename = filename
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        self.reads += 1
        return self.data if size < 0 else self.data[:size]


class FakeCompletions:
    """
    Stands in for AsyncOpenAI().chat.completions. Each queued reply is either the
    text to return as message content or an exception to raise.
    """

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.chat.completions.calls


def page_reply(page: int, pairs: List[Dict[str, str]], has_more: bool, **extra: Any) -> str:
    return json.dumps({"content": pairs, "currentPage": page, "hasMore": has_more, **extra}, ensure_ascii=False)


def make_result(page: int, arabic: List[str], has_more: bool = True, **extra: Any) -> ProcessingResult:
    return ProcessingResult.model_validate(
        {
            "content": [{"arabic": a, "english": f"en-{a}"} for a in arabic],
            "currentPage": page,
            "hasMore": has_more,
            **extra,
        }
    )
