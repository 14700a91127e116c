import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from pypdf import PdfReader

from file_converter import webapi

from .conftest import make_docx, make_image


@pytest.fixture
def client() -> TestClient:
    return TestClient(webapi.app)


def _post(client, name, data, output_format):
    return client.post(
        "/convert",
        files={"file": (name, data, "application/octet-stream")},
        data={"outputFormat": output_format},
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_formats(client):
    body = client.get("/formats").json()
    assert set(body) == {"document", "presentation", "image", "other"}
    assert "webp" in body["image"]


def test_outputs_for_format(client):
    resp = client.get("/formats/DOCX/outputs")
    assert resp.status_code == 200
    assert resp.json() == {"input": "docx", "outputs": ["pdf", "doc", "txt", "rtf"]}


def test_outputs_for_unknown_format(client):
    resp = client.get("/formats/exe/outputs")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "not_found"


def test_convert_txt_to_pdf(client):
    resp = _post(client, "notes.txt", b"line1\n\nline3", "pdf")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="notes.pdf"' in resp.headers["content-disposition"]
    assert len(PdfReader(io.BytesIO(resp.content)).pages) == 1


def test_convert_image_to_webp(client):
    resp = _post(client, "photo.gif", make_image("GIF", size=(33, 21)), "webp")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/webp"
    assert Image.open(io.BytesIO(resp.content)).size == (33, 21)


def test_convert_docx_to_txt_keeps_multi_dot_stem(client):
    resp = _post(client, "my.report.v2.docx", make_docx("Hello there"), "txt")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert 'filename="my.report.v2.txt"' in resp.headers["content-disposition"]
    assert resp.text == "Hello there"


def test_unsupported_pair_is_400(client):
    resp = _post(client, "deck.pptx", b"x", "pdf")
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "unsupported_conversion"
    assert "PPTX" in detail["message"] and "PDF" in detail["message"]


def test_missing_output_format_is_400(client):
    resp = client.post("/convert", files={"file": ("a.png", b"x", "image/png")})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "missing_fields"


def test_missing_file_is_400(client):
    resp = client.post("/convert", data={"outputFormat": "pdf"})
    assert resp.status_code == 400


def test_corrupt_input_is_500(client):
    resp = _post(client, "broken.png", b"not an image", "pdf")
    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail["code"] == "conversion_failed"
    assert detail["message"].startswith("Conversion failed:")


def test_upload_limit(client, monkeypatch):
    monkeypatch.setattr(webapi, "MAX_UPLOAD_MB", 0)
    resp = _post(client, "notes.txt", b"hello", "pdf")
    assert resp.status_code == 413
    assert resp.json()["detail"]["code"] == "payload_too_large"


def test_content_disposition_fallback():
    header = webapi._content_disposition('résumé "final".pdf')
    assert header.startswith('attachment; filename="r?sum? _final_.pdf"')
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9%20%22final%22.pdf" in header
