import base64
from io import BytesIO

import pytest
from docx import Document

from redline.documents import DOCX_MEDIA_TYPE, document_block, encode_upload


def test_encode_upload():
    upload = encode_upload("lease.pdf", "application/pdf", b"%PDF-1.7")

    assert upload.filename == "lease.pdf"
    assert upload.size == 8
    assert upload.media_type == "application/pdf"
    assert base64.b64decode(upload.data) == b"%PDF-1.7"


def test_media_type_guessed_from_name():
    assert encode_upload("lease.txt", "application/octet-stream", b"x").media_type == "text/plain"
    assert encode_upload("lease.docx", None, b"x").media_type == DOCX_MEDIA_TYPE


def test_unknown_type_defaults_to_pdf():
    assert encode_upload("lease", "", b"x").media_type == "application/pdf"


def test_empty_upload_rejected():
    with pytest.raises(ValueError):
        encode_upload("lease.pdf", "application/pdf", b"")


def test_docx_flattened_to_text():
    doc = Document()
    doc.add_paragraph("COMMERCIAL LEASE")
    doc.add_paragraph("Base rent is $1,000 per month.")
    buf = BytesIO()
    doc.save(buf)
    data = base64.b64encode(buf.getvalue()).decode("ascii")

    block = document_block(data, DOCX_MEDIA_TYPE)

    assert block["source"]["type"] == "text"
    assert "Base rent is $1,000 per month." in block["source"]["data"]


def test_broken_docx_raises_value_error():
    data = base64.b64encode(b"not a zip").decode("ascii")
    with pytest.raises(ValueError):
        document_block(data, DOCX_MEDIA_TYPE)
