import json
import logging
import time
from typing import Any, Dict, List

import httpx
from openai import APIError, AsyncOpenAI
from pydantic import ValidationError

from .config import Settings
from .errors import RequestError, ResponseParseError
from .intake import EncodedDocument
from .models import ProcessingResult


logger = logging.getLogger(__name__)

SCHEMA_NAME = "arabic_page_translation"

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "author": {"type": "string"},
        "content": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "arabic": {"type": "string"},
                    "english": {"type": "string"},
                    "numberPronunciation": {"type": "string"},
                },
                "required": ["arabic", "english"],
            },
        },
        "currentPage": {"type": "integer"},
        "hasMore": {"type": "boolean"},
    },
    "required": ["content", "currentPage", "hasMore"],
}


def page_prompt(page_number: int) -> str:
    return (
        "You are an expert Arabic linguist and translator.\n"
        "Analyze the attached Arabic PDF book.\n\n"
        "TASK:\n"
        f"1. Focus ONLY on page {page_number} of the PDF.\n"
        "2. Transcribe the text from this page accurately.\n"
        "3. Ensure the Arabic text has COMPLETE TASHKEEL (vocalization/diacritics).\n"
        "4. Translate each sentence into clear English.\n"
        "5. If a sentence contains numbers (dates, quantities, etc.), provide the Arabic WORD pronunciation "
        "for those numbers with full tashkeel in a 'numberPronunciation' field.\n"
        f"6. Determine if there is a next page (page {page_number + 1}) in the document.\n\n"
        "OUTPUT FORMAT:\n"
        "Provide the output as a JSON object:\n"
        "{\n"
        '  "title": "Book Title",\n'
        '  "author": "Author Name",\n'
        '  "content": [{"arabic": "...", "english": "...", "numberPronunciation": "optional string if numbers exist"}],\n'
        f'  "currentPage": {page_number},\n'
        '  "hasMore": true/false\n'
        "}"
    )


def page_messages(document: EncodedDocument, page_number: int) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": "You output strict JSON only."},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": page_prompt(page_number)},
                {
                    "type": "file",
                    "file": {"filename": document.filename, "file_data": document.to_data_url()},
                },
            ],
        },
    ]


def response_format() -> Dict[str, Any]:
    # Not "strict": title, author and numberPronunciation are optional.
    return {
        "type": "json_schema",
        "json_schema": {"name": SCHEMA_NAME, "schema": RESPONSE_SCHEMA},
    }


def _parse_json_object(text: str) -> Dict[str, Any]:
    s = (text or "").strip()
    if not s:
        raise ValueError("empty response")
    candidates = [s]
    # Some providers wrap the object in prose or a code fence.
    start, end = s.find("{"), s.rfind("}")
    if start >= 0 and end > start:
        candidates.append(s[start : end + 1])
    for candidate in candidates:
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    raise ValueError("could not parse JSON object")


def parse_page_reply(text: str, page_number: int) -> ProcessingResult:
    """
    Validate a reply against the declared shape without type coercion.
    A well-typed currentPage that names a different page is replaced by the requested one.
    """
    try:
        obj = _parse_json_object(text)
    except ValueError as e:
        raise ResponseParseError(f"page {page_number}: {e}") from e

    reported = obj.get("currentPage")
    if isinstance(reported, int) and not isinstance(reported, bool) and reported != page_number:
        logger.warning("Model reported page %s for requested page %s", reported, page_number)
        obj["currentPage"] = page_number

    try:
        # strict JSON mode: no "1" -> 1 or "yes" -> True, arrays still fill tuples
        return ProcessingResult.model_validate_json(json.dumps(obj), strict=True)
    except ValidationError as e:
        raise ResponseParseError(f"page {page_number}: reply does not match schema: {e}") from e


def openrouter_client(settings: Settings) -> AsyncOpenAI:
    # The SDK retries connection errors, timeouts, 408/409/429 and 5xx with backoff and jitter.
    return AsyncOpenAI(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=httpx.Timeout(settings.request_timeout_s),
        max_retries=settings.max_retries,
    )


class PageClient:
    def __init__(self, client: Any, *, model: str) -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "PageClient":
        return cls(openrouter_client(settings), model=settings.model)

    async def fetch_page(self, document: EncodedDocument, page_number: int) -> ProcessingResult:
        if not document.data:
            raise ValueError("document is empty")
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")

        started = time.monotonic()
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=page_messages(document, page_number),
                response_format=response_format(),
                stream=False,
            )
        except (APIError, httpx.HTTPError) as e:
            raise RequestError(f"page {page_number}: {e}") from e
        if not resp.choices:
            raise ResponseParseError(f"page {page_number}: reply has no choices")

        logger.info("Page %d reply received in %.1fs", page_number, time.monotonic() - started)
        return parse_page_reply(resp.choices[0].message.content or "", page_number)
