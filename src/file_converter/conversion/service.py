import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from ..errors import ConversionError, UnsupportedConversion
from ..formats import extract_format, mime_type, output_filename
from .interfaces import (
    ConversionBackend,
    ConversionRequest,
    ConversionResult,
    ImageCodec,
    PageCompositor,
    TextExtractor,
)

logger = logging.getLogger(__name__)

RASTER_INPUTS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp"})
IMAGE_OUTPUTS = frozenset({"jpg", "jpeg", "png", "webp"})
PDF_IMAGE_OUTPUTS = frozenset({"jpg", "jpeg", "png"})


class Pipeline(enum.Enum):
    REENCODE_IMAGE = "reencode_image"
    EMBED_IMAGE = "embed_image"
    RASTERIZE_PDF = "rasterize_pdf"
    EXTRACT_TEXT = "extract_text"
    EXTRACT_AND_REFLOW = "extract_and_reflow"
    REFLOW_TEXT = "reflow_text"


# Checked in order; the first matching row wins.
DISPATCH_TABLE: tuple[tuple[frozenset[str], frozenset[str], Pipeline], ...] = (
    (RASTER_INPUTS, IMAGE_OUTPUTS, Pipeline.REENCODE_IMAGE),
    (RASTER_INPUTS, frozenset({"pdf"}), Pipeline.EMBED_IMAGE),
    (frozenset({"pdf"}), PDF_IMAGE_OUTPUTS, Pipeline.RASTERIZE_PDF),
    (frozenset({"docx"}), frozenset({"pdf"}), Pipeline.EXTRACT_AND_REFLOW),
    (frozenset({"docx"}), frozenset({"txt"}), Pipeline.EXTRACT_TEXT),
    (frozenset({"txt"}), frozenset({"pdf"}), Pipeline.REFLOW_TEXT),
)

# Pipelines a browser-side client can run without the server
CLIENT_LOCAL_PIPELINES = frozenset({Pipeline.REENCODE_IMAGE, Pipeline.EMBED_IMAGE})


def resolve_pipeline(input_format: str, output_format: str) -> Pipeline:
    src = (input_format or "").lower()
    dst = (output_format or "").lower()
    for inputs, outputs, pipeline in DISPATCH_TABLE:
        if src in inputs and dst in outputs:
            return pipeline
    raise UnsupportedConversion(input_format, output_format)


class LocalBackend(ConversionBackend):
    """Runs every pipeline in-process using the given capabilities."""

    def __init__(self, codec: ImageCodec, compositor: PageCompositor, extractor: TextExtractor) -> None:
        self._codec = codec
        self._compositor = compositor
        self._extractor = extractor

    def run(self, request: ConversionRequest) -> bytes:
        pipeline = resolve_pipeline(request.input_format, request.output_format)
        target = request.output_format.lower()

        if pipeline is Pipeline.REENCODE_IMAGE:
            return self._codec.reencode(request.data, target)
        if pipeline is Pipeline.EMBED_IMAGE:
            meta = self._codec.metadata(request.data)
            return self._compositor.embed_image_page(request.data, meta)
        if pipeline is Pipeline.RASTERIZE_PDF:
            # TODO: render the first PDF page instead of a blank placeholder once a rasterizer is available
            return self._codec.blank_page(target)
        if pipeline is Pipeline.EXTRACT_TEXT:
            return self._extractor.extract_plain_text(request.data).encode("utf-8")
        if pipeline is Pipeline.EXTRACT_AND_REFLOW:
            return self._compositor.layout_text(self._extractor.extract_plain_text(request.data))
        if pipeline is Pipeline.REFLOW_TEXT:
            return self._compositor.layout_text(request.data.decode("utf-8", errors="replace"))
        raise AssertionError(f"unhandled pipeline {pipeline}")


@dataclass
class BatchItem:
    filename: str
    result: ConversionResult | None = None
    error: ConversionError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class ConversionService:
    """Dispatches conversion requests to a local or remote backend.

    The dispatch decision is the same everywhere; only the backend that
    executes a pipeline differs. The server keeps every pipeline local,
    while the browser client runs image pipelines itself and delegates the
    rest to the server.
    """

    def __init__(
        self,
        local: ConversionBackend,
        *,
        remote: ConversionBackend | None = None,
        local_pipelines: Iterable[Pipeline] | None = None,
    ) -> None:
        self._local = local
        self._remote = remote
        self._local_pipelines = frozenset(local_pipelines) if local_pipelines is not None else frozenset(Pipeline)

    def backend_for(self, pipeline: Pipeline) -> ConversionBackend:
        if pipeline in self._local_pipelines or self._remote is None:
            return self._local
        return self._remote

    def build_request(self, filename: str, data: bytes, output_format: str) -> ConversionRequest:
        return ConversionRequest(
            filename=filename,
            data=data,
            input_format=extract_format(filename),
            output_format=(output_format or "").lower(),
        )

    async def convert(self, request: ConversionRequest) -> ConversionResult:
        pipeline = resolve_pipeline(request.input_format, request.output_format)
        backend = self.backend_for(pipeline)
        logger.info(
            "converting %s: %s -> %s via %s (%s)",
            request.filename,
            request.input_format,
            request.output_format,
            pipeline.value,
            "local" if backend is self._local else "remote",
        )
        data = await asyncio.to_thread(backend.run, request)
        return ConversionResult(
            data=data,
            mime_type=mime_type(request.output_format),
            filename=output_filename(request.filename, request.output_format),
        )

    async def convert_batch(
        self,
        files: Sequence[tuple[str, bytes]],
        output_format: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> list[BatchItem]:
        """Convert `files` one after another.

        A failing file does not stop the batch; its error is recorded on the
        returned item and the files before it keep their results.
        """
        items: list[BatchItem] = []
        total = len(files)
        for i, (filename, data) in enumerate(files):
            item = BatchItem(filename=filename)
            try:
                item.result = await self.convert(self.build_request(filename, data, output_format))
            except ConversionError as e:
                logger.warning("conversion of %s failed: %s", filename, e)
                item.error = e
            except Exception as e:
                logger.exception("unexpected error converting %s", filename)
                err = ConversionError(f"Conversion failed: {e}")
                err.__cause__ = e
                item.error = err
            items.append(item)
            if on_progress is not None:
                on_progress(i + 1, total)
        return items
