import base64
import logging
from dataclasses import dataclass
from typing import Any

from .errors import FileTooLargeError, ReadError, UnsupportedTypeError


logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class EncodedDocument:
    filename: str
    media_type: str
    data: str  # base64, no data: prefix
    size: int

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


def _declared_media_type(file: Any) -> str:
    return (getattr(file, "content_type", None) or "").split(";")[0].strip().lower()


def ensure_pdf(file: Any) -> None:
    # Only the declared media type is checked; the bytes are not sniffed.
    media_type = _declared_media_type(file)
    if media_type != PDF_MEDIA_TYPE:
        raise UnsupportedTypeError(f"unsupported media type: {media_type or 'unknown'}")


async def accept_upload(file: Any, *, max_bytes: int) -> EncodedDocument:
    """
    file: anything with .filename, .content_type and an async .read(size), e.g. FastAPI's UploadFile.
    """
    ensure_pdf(file)

    filename = getattr(file, "filename", None) or "document.pdf"
    try:
        raw = await file.read(max_bytes + 1)
    except Exception as e:
        raise ReadError(f"could not read {filename}: {e}") from e

    if len(raw) > max_bytes:
        raise FileTooLargeError(f"{filename} exceeds {max_bytes} bytes")
    if not raw:
        raise ReadError(f"{filename} is empty")

    data = base64.b64encode(raw).decode("ascii")
    logger.info("Accepted upload %s (%d bytes)", filename, len(raw))
    return EncodedDocument(filename=filename, media_type=PDF_MEDIA_TYPE, data=data, size=len(raw))
