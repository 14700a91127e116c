import io
import logging

import requests
from docx import Document
from docx.table import Table
from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..errors import (
    CompositionFailure,
    ConversionError,
    DecodeFailure,
    EncodeFailure,
    UnsupportedConversion,
)
from .interfaces import (
    ConversionBackend,
    ConversionRequest,
    ImageCodec,
    ImageMetadata,
    PageCompositor,
    TextExtractor,
)
from .layout import FONT_SIZE, PAGE_HEIGHT, PAGE_WIDTH, fit_to_page, layout_lines

logger = logging.getLogger(__name__)

IMAGE_QUALITY = 90
FONT_NAME = "Helvetica"

# target extension -> (Pillow format name, modes that format can store)
_ENCODERS = {
    "jpg": ("JPEG", {"RGB", "L", "CMYK"}),
    "jpeg": ("JPEG", {"RGB", "L", "CMYK"}),
    "png": ("PNG", {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}),
    "webp": ("WEBP", {"RGB", "RGBA"}),
}

# Raster encodings reportlab can place without re-encoding
_EMBEDDABLE = {"jpeg", "png"}


def _open_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeFailure(f"cannot decode image: {e}") from e
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in {"RGBA", "LA", "PA"} or (img.mode == "P" and "transparency" in img.info)


class PillowCodec(ImageCodec):
    def __init__(self, quality: int = IMAGE_QUALITY) -> None:
        self._quality = quality

    def metadata(self, data: bytes) -> ImageMetadata:
        img = _open_image(data)
        fmt = img.format.lower() if img.format else None
        return ImageMetadata(width=img.width, height=img.height, format=fmt)

    def reencode(self, data: bytes, target_format: str) -> bytes:
        return self._encode(_open_image(data), target_format)

    def blank_page(self, target_format: str) -> bytes:
        """White A4-sized raster, used in place of a rendered PDF page."""
        img = Image.new("RGB", (PAGE_WIDTH, PAGE_HEIGHT), (255, 255, 255))
        return self._encode(img, target_format)

    def _encode(self, img: Image.Image, target_format: str) -> bytes:
        target = (target_format or "").lower()
        if target not in _ENCODERS:
            raise EncodeFailure(f"unsupported output format: {target_format}")
        pil_format, modes = _ENCODERS[target]
        if img.mode not in modes:
            if pil_format == "JPEG":
                img = img.convert("RGB")
            else:
                img = img.convert("RGBA" if _has_alpha(img) else "RGB")

        options: dict[str, object] = {}
        if pil_format in {"JPEG", "WEBP"}:
            options["quality"] = self._quality
        buf = io.BytesIO()
        try:
            img.save(buf, format=pil_format, **options)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeFailure(f"cannot encode image as {target}: {e}") from e
        return buf.getvalue()


class ReportLabCompositor(PageCompositor):
    """Builds A4 PDF documents with reportlab's canvas API."""

    def __init__(self, codec: ImageCodec) -> None:
        self._codec = codec

    def embed_image_page(self, data: bytes, metadata: ImageMetadata) -> bytes:
        width, height = fit_to_page(metadata.width, metadata.height)
        if metadata.format not in _EMBEDDABLE:
            try:
                data = self._codec.reencode(data, "png")
            except ConversionError as e:
                raise CompositionFailure(f"cannot transcode {metadata.format} image for embedding: {e}") from e

        buf = io.BytesIO()
        try:
            pdf = canvas.Canvas(buf, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
            pdf.drawImage(ImageReader(io.BytesIO(data)), 0, 0, width=width, height=height, mask="auto")
            pdf.showPage()
            pdf.save()
        except Exception as e:
            raise CompositionFailure(f"cannot embed image: {e}") from e
        return buf.getvalue()

    def layout_text(self, text: str) -> bytes:
        pages = layout_lines(text)
        buf = io.BytesIO()
        try:
            pdf = canvas.Canvas(buf, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
            for lines in pages:
                pdf.setFont(FONT_NAME, FONT_SIZE)
                for line in lines:
                    pdf.drawString(line.x, line.y, line.text)
                pdf.showPage()
            pdf.save()
        except Exception as e:
            raise CompositionFailure(f"cannot lay out text: {e}") from e
        logger.debug("laid out %d page(s)", len(pages))
        return buf.getvalue()


class DocxTextExtractor(TextExtractor):
    def extract_plain_text(self, data: bytes) -> str:
        try:
            doc = Document(io.BytesIO(data))
            lines: list[str] = []
            for block in doc.iter_inner_content():
                if isinstance(block, Table):
                    for row in block.rows:
                        for cell in row.cells:
                            lines.extend(p.text for p in cell.paragraphs)
                else:
                    lines.append(block.text)
        except Exception as e:
            raise DecodeFailure(f"not a readable DOCX document: {e}") from e
        # one blank line between paragraphs, as raw-text DOCX extractors emit
        return "\n\n".join(lines)


class HttpConversionBackend(ConversionBackend):
    """Delegates conversions to the `/convert` endpoint of a running server."""

    def __init__(self, api_base: str, *, timeout: float = 120.0) -> None:
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    def run(self, request: ConversionRequest) -> bytes:
        files = {"file": (request.filename, request.data, "application/octet-stream")}
        try:
            resp = requests.post(
                f"{self._api_base}/convert",
                files=files,
                data={"outputFormat": request.output_format},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ConversionError(f"Failed to connect to API: {e}") from e

        if resp.status_code == 200:
            return resp.content

        code, message = "", ""
        try:
            detail = resp.json().get("detail", {})
            if isinstance(detail, dict):
                code = str(detail.get("code", ""))
                message = str(detail.get("message", ""))
        except (ValueError, AttributeError):
            pass
        if code == "unsupported_conversion":
            raise UnsupportedConversion(request.input_format, request.output_format)
        # the server's message already reads "Conversion failed: ..."
        raise ConversionError(message or f"Conversion failed: {resp.status_code} {resp.text}")


def build_local_backend():
    """LocalBackend wired with the Pillow, reportlab and python-docx adapters."""
    from .service import LocalBackend

    codec = PillowCodec()
    return LocalBackend(codec=codec, compositor=ReportLabCompositor(codec), extractor=DocxTextExtractor())
