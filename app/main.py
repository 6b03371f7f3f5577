import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.responses import Response

from .config import Settings, load_settings
from .errors import (
    FileTooLargeError,
    ReadError,
    RequestError,
    ResponseParseError,
    TurjumanError,
    UnsupportedTypeError,
)
from .export import EXPORT_FORMATS, to_json, to_markdown
from .llm import PageClient
from .session import Session, SessionBusyError, SessionController, SessionStore


FASTAPI_APP_TITLE = "Turjuman"
SESSION_COOKIE = "turjuman_session"

settings: Settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

app = FastAPI(title=FASTAPI_APP_TITLE)

BASE_DIR = Path(__file__).resolve().parent
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

templates_env = Environment(
    loader=FileSystemLoader(str(BASE_DIR / "templates")),
    autoescape=select_autoescape(["html", "xml"]),
)

# Status codes for errors raised by upload / next page.
_ERROR_STATUS = (
    (UnsupportedTypeError, 415),
    (FileTooLargeError, 413),
    (ReadError, 400),
    (RequestError, 502),
    (ResponseParseError, 502),
)


@lru_cache(maxsize=1)
def get_store() -> SessionStore:
    return SessionStore(ttl_s=settings.session_ttl_s)


@lru_cache(maxsize=1)
def get_controller() -> SessionController:
    return SessionController(
        PageClient.from_settings(settings),
        max_upload_bytes=settings.max_upload_bytes,
        metadata_policy=settings.metadata_policy,
    )


def get_session(request: Request, store: SessionStore = Depends(get_store)) -> Session:
    return store.get_or_create(request.cookies.get(SESSION_COOKIE))


def _status_for(err: TurjumanError) -> int:
    for kind, status in _ERROR_STATUS:
        if isinstance(err, kind):
            return status
    return 500


def _view_response(session: Session, status_code: int = 200, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    body = session.view()
    if extra:
        body.update(extra)
    resp = JSONResponse(body, status_code=status_code)
    resp.set_cookie(SESSION_COOKIE, session.id, httponly=True, samesite="lax")
    return resp


@app.get("/", response_class=HTMLResponse)
async def index(session: Session = Depends(get_session)) -> HTMLResponse:
    template = templates_env.get_template("index.html")
    html = template.render(title=FASTAPI_APP_TITLE)
    resp = HTMLResponse(html)
    resp.set_cookie(SESSION_COOKIE, session.id, httponly=True, samesite="lax")
    return resp


@app.get("/health")
async def health_check() -> dict:
    return {"status": "ok"}


@app.get("/api/session")
async def get_session_view(session: Session = Depends(get_session)) -> JSONResponse:
    return _view_response(session)


@app.post("/api/upload")
async def upload(
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    controller: SessionController = Depends(get_controller),
) -> JSONResponse:
    try:
        await controller.upload(session, file)
    except TurjumanError as e:
        return _view_response(session, _status_for(e))
    finally:
        await file.close()
    return _view_response(session)


@app.post("/api/next")
async def next_page(
    session: Session = Depends(get_session),
    controller: SessionController = Depends(get_controller),
) -> JSONResponse:
    try:
        await controller.next_page(session)
    except SessionBusyError as e:
        return _view_response(session, 409, {"detail": str(e)})
    except TurjumanError as e:
        return _view_response(session, _status_for(e))
    return _view_response(session)


@app.get("/api/export")
async def export(
    format: str = Query("markdown"),
    session: Session = Depends(get_session),
) -> Response:
    if format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"format must be one of {EXPORT_FORMATS}")
    if session.result is None:
        raise HTTPException(status_code=404, detail="Nothing to export yet")

    stem = Path(session.document.filename).stem if session.document else ""
    # Header values must be latin-1.
    if not stem or not stem.isascii() or '"' in stem:
        stem = "turjuman"
    if format == "json":
        body, media_type, ext = to_json(session.result), "application/json", "json"
    else:
        filename = session.document.filename if session.document else None
        body, media_type, ext = to_markdown(session.result, filename=filename), "text/markdown", "md"
    return Response(
        content=body.encode("utf-8"),
        media_type=f"{media_type}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{stem}.{ext}"'},
    )
