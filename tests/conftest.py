import io
import struct
import zlib

import pytest
from docx import Document
from PIL import Image

from file_converter.conversion import ConversionService
from file_converter.conversion.adapters import build_local_backend


def make_image(fmt: str, size: tuple[int, int] = (40, 30), mode: str = "RGB") -> bytes:
    img = Image.new(mode, size, "red" if mode != "P" else 1)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_docx(*paragraphs: str, table: list[list[str]] | None = None) -> bytes:
    doc = Document()
    for text in paragraphs:
        p = doc.add_paragraph()
        # split into runs so formatting boundaries exist in the XML
        head, _, tail = text.partition(" ")
        p.add_run(head).bold = True
        if tail:
            p.add_run(" " + tail).italic = True
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                t.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def service() -> ConversionService:
    return ConversionService(build_local_backend())


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """PNG header announcing a huge bitmap; a few dozen bytes on disk."""

    def chunk(kind: bytes, payload: bytes) -> bytes:
        body = kind + payload
        return struct.pack(">I", len(payload)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")
