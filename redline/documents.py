# documents.py
import base64
import binascii
import mimetypes
import zipfile
from io import BytesIO
from pathlib import PurePath
from typing import Any, Dict, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from .session import UploadSession

DEFAULT_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MEDIA_TYPE = "text/plain"

_GENERIC_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

# the file picker accepts these; browsers often send them as octet-stream
_KNOWN_EXTENSIONS = {
    ".pdf": DEFAULT_MEDIA_TYPE,
    ".txt": TEXT_MEDIA_TYPE,
    ".docx": DOCX_MEDIA_TYPE,
    ".doc": "application/msword",
}


def _guess_media_type(filename: str, content_type: Optional[str]) -> str:
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct not in _GENERIC_TYPES:
        return ct
    ext = PurePath(filename).suffix.lower()
    if ext in _KNOWN_EXTENSIONS:
        return _KNOWN_EXTENSIONS[ext]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_MEDIA_TYPE


def encode_upload(filename: str, content_type: Optional[str], raw: bytes) -> UploadSession:
    """Build an upload session from the raw bytes of a selected file."""
    if not raw:
        raise ValueError("Uploaded file is empty")
    return UploadSession(
        filename=filename or "lease",
        size=len(raw),
        media_type=_guess_media_type(filename or "", content_type),
        data=base64.b64encode(raw).decode("ascii"),
    )


def _decode(data: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Document payload is not valid base64: {e}")


def _docx_to_text(raw: bytes) -> str:
    try:
        doc = Document(BytesIO(raw))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
        raise ValueError(f"Could not read Word document: {e}")
    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            lines.append(" | ".join(cell.text.strip() for cell in row.cells))
    return "\n".join(lines).strip()


def document_block(data: str, media_type: Optional[str] = None) -> Dict[str, Any]:
    """Content block carrying the lease to the model.

    The Messages API reads PDFs natively and plain text as a text source;
    Word files are flattened to text first. Anything else is forwarded as a
    base64 document and the model decides whether it can read it.
    """
    media_type = media_type or DEFAULT_MEDIA_TYPE
    if media_type == TEXT_MEDIA_TYPE:
        text = _decode(data).decode("utf-8", errors="ignore")
        source = {"type": "text", "media_type": TEXT_MEDIA_TYPE, "data": text}
    elif media_type == DOCX_MEDIA_TYPE:
        source = {"type": "text", "media_type": TEXT_MEDIA_TYPE, "data": _docx_to_text(_decode(data))}
    else:
        source = {"type": "base64", "media_type": media_type, "data": data}
    return {"type": "document", "source": source}
