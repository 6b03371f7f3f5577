"""
Per-browser reading session and the actions that drive it.

A session holds the uploaded PDF (base64), the pages merged so far and the pending flags.
Only one page request is in flight per session; the controller sets the pending flag
before its first await, so a second request is rejected rather than interleaved.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .accumulator import merge_page
from .errors import TurjumanError, UnsupportedTypeError
from .intake import EncodedDocument, accept_upload, ensure_pdf
from .llm import PageClient
from .models import ProcessingResult


logger = logging.getLogger(__name__)

NEXT_PAGE_FAILED = "Failed to load the next page."


class ViewState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SHOWING = "showing"
    LOADING_NEXT = "loading_next"
    END = "end"


class SessionBusyError(Exception):
    """Raised when an action is not available in the session's current state."""


@dataclass
class Session:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    document: Optional[EncodedDocument] = None
    result: Optional[ProcessingResult] = None
    uploading: bool = False
    loading_next: bool = False
    last_error: Optional[str] = None
    # Bumped on every upload; a reply for an older upload is dropped.
    generation: int = 0
    touched: float = field(default_factory=time.time)

    @property
    def state(self) -> ViewState:
        if self.uploading:
            return ViewState.UPLOADING
        if self.loading_next:
            return ViewState.LOADING_NEXT
        if self.result is None:
            return ViewState.IDLE
        if not self.result.has_more:
            return ViewState.END
        return ViewState.SHOWING

    @property
    def can_load_next(self) -> bool:
        return (
            self.document is not None
            and self.result is not None
            and self.result.has_more
            and not self.uploading
            and not self.loading_next
        )

    def reset(self) -> None:
        self.document = None
        self.result = None
        self.uploading = False
        self.loading_next = False
        self.last_error = None
        self.generation += 1

    def view(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "filename": self.document.filename if self.document else None,
            "result": self.result.to_wire() if self.result else None,
            "uploading": self.uploading,
            "loadingNext": self.loading_next,
            "canLoadNext": self.can_load_next,
            "error": self.last_error,
        }


class SessionStore:
    def __init__(self, ttl_s: float) -> None:
        self._ttl_s = ttl_s
        self._sessions: Dict[str, Session] = {}

    def _cleanup(self) -> None:
        now = time.time()
        dead: List[str] = []
        for sid, s in self._sessions.items():
            # Never expire a session with a request in flight.
            if now - s.touched > self._ttl_s and not (s.uploading or s.loading_next):
                dead.append(sid)
        for sid in dead:
            self._sessions.pop(sid, None)
        if dead:
            logger.info("Expired %d idle session(s)", len(dead))

    def get_or_create(self, session_id: Optional[str]) -> Session:
        self._cleanup()
        s = self._sessions.get(session_id or "")
        if s is None:
            s = Session()
            self._sessions[s.id] = s
        s.touched = time.time()
        return s


class SessionController:
    def __init__(self, client: PageClient, *, max_upload_bytes: int, metadata_policy: str = "replace") -> None:
        self._client = client
        self._max_upload_bytes = max_upload_bytes
        self._metadata_policy = metadata_policy

    async def upload(self, session: Session, file: Any) -> None:
        """
        Replace the session's document with `file` and fetch page 1.
        Errors are stored on the session and re-raised for the HTTP layer to pick a status.
        A non-PDF is rejected before anything is reset, so the current book stays on screen.
        """
        try:
            ensure_pdf(file)
        except UnsupportedTypeError as e:
            session.last_error = e.user_message
            logger.info("Session %s: rejected upload: %s", session.id, e)
            raise

        session.reset()
        generation = session.generation
        session.uploading = True
        try:
            document = await accept_upload(file, max_bytes=self._max_upload_bytes)
            if session.generation != generation:
                return
            session.document = document
            first = await self._client.fetch_page(document, 1)
            if session.generation != generation:
                logger.info("Session %s: dropping page 1 of a replaced upload", session.id)
                return
            session.result = merge_page(None, first, metadata_policy=self._metadata_policy)
        except TurjumanError as e:
            if session.generation == generation:
                session.last_error = e.user_message
            logger.warning("Session %s: upload failed: %s", session.id, e)
            raise
        finally:
            if session.generation == generation:
                session.uploading = False

    async def next_page(self, session: Session) -> None:
        if session.document is None or session.result is None:
            raise SessionBusyError("No document has been uploaded.")
        if session.uploading or session.loading_next:
            raise SessionBusyError("A page is already being loaded.")
        if not session.result.has_more:
            raise SessionBusyError("The document has no more pages.")

        generation = session.generation
        page_number = session.result.current_page + 1
        session.loading_next = True
        session.last_error = None
        try:
            page = await self._client.fetch_page(session.document, page_number)
            if session.generation != generation:
                logger.info("Session %s: dropping page %d of a replaced upload", session.id, page_number)
                return
            session.result = merge_page(session.result, page, metadata_policy=self._metadata_policy)
        except TurjumanError as e:
            if session.generation == generation:
                session.last_error = NEXT_PAGE_FAILED
            logger.warning("Session %s: page %d failed: %s", session.id, page_number, e)
            raise
        finally:
            if session.generation == generation:
                session.loading_next = False
