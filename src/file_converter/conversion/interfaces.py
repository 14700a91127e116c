from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ImageMetadata:
    width: int | None
    height: int | None
    format: str | None


@dataclass(frozen=True)
class ConversionRequest:
    filename: str
    data: bytes
    input_format: str
    output_format: str


@dataclass(frozen=True)
class ConversionResult:
    data: bytes
    mime_type: str
    filename: str


class ImageCodec(Protocol):
    def metadata(self, data: bytes) -> ImageMetadata:
        ...

    def reencode(self, data: bytes, target_format: str) -> bytes:
        """Decode any supported raster and write it as jpg/jpeg, png or webp."""

    def blank_page(self, target_format: str) -> bytes:
        ...


class PageCompositor(Protocol):
    def embed_image_page(self, data: bytes, metadata: ImageMetadata) -> bytes:
        ...

    def layout_text(self, text: str) -> bytes:
        ...


class TextExtractor(Protocol):
    def extract_plain_text(self, data: bytes) -> str:
        """Return the document's text with formatting discarded, paragraphs separated by a blank line."""


class ConversionBackend(Protocol):
    def run(self, request: ConversionRequest) -> bytes:
        """Execute the pipeline selected for `request` and return the output bytes.

        This is a blocking call; callers should offload to threads if needed.
        """
