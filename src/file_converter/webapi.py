import logging
import os
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

try:
    from file_converter.conversion import ConversionService
    from file_converter.conversion.adapters import build_local_backend
    from file_converter.errors import ConversionError, UnsupportedConversion
    from file_converter.formats import FORMAT_FAMILIES, available_outputs, family
except ImportError:
    # Allow running as a script: `python src/file_converter/webapi.py`
    import sys as _sys
    from pathlib import Path as _Path
    _sys.path.append(str(_Path(__file__).resolve().parents[1]))  # add ./src to sys.path
    from file_converter.conversion import ConversionService
    from file_converter.conversion.adapters import build_local_backend
    from file_converter.errors import ConversionError, UnsupportedConversion
    from file_converter.formats import FORMAT_FAMILIES, available_outputs, family

logger = logging.getLogger(__name__)

app = FastAPI(
    title="File Converter",
    version=os.getenv("FILE_CONVERTER_VERSION", "0.1.0"),
    description=(
        "Converts uploaded files between image formats, PDF and plain text. "
        "All processing happens in memory; nothing is persisted."
    ),
)

# Global configuration defaults
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "50"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SERVICE: ConversionService | None = None


def _get_service() -> ConversionService:
    global SERVICE
    if SERVICE is None:
        SERVICE = ConversionService(build_local_backend())
    return SERVICE


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _content_disposition(filename: str) -> str:
    # Header values must be latin-1; keep an ASCII fallback and the exact name in filename*
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


async def _read_upload(file: UploadFile) -> bytes:
    chunk_size = 1024 * 1024
    max_bytes = MAX_UPLOAD_MB * 1024 * 1024
    chunks: list[bytes] = []
    size_bytes = 0
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        size_bytes += len(chunk)
        if size_bytes > max_bytes:
            raise _error(413, "payload_too_large", f"upload exceeds {MAX_UPLOAD_MB} MB")
        chunks.append(chunk)
    return b"".join(chunks)


@app.on_event("startup")
async def _startup() -> None:
    _get_service()


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/formats")
def list_formats() -> dict[str, list[str]]:
    return FORMAT_FAMILIES


@app.get("/formats/{fmt}/outputs")
def list_outputs(fmt: str) -> dict[str, object]:
    """Formats a file of type `fmt` may be converted to."""
    fmt = fmt.lower()
    if family(fmt) is None:
        raise _error(404, "not_found", f"unknown format {fmt}")
    return {"input": fmt, "outputs": available_outputs(fmt)}


@app.post("/convert")
async def convert(
    file: UploadFile | None = File(None),
    outputFormat: str | None = Form(None),
) -> Response:
    """Convert an uploaded file and return the converted bytes.

    Accepts multipart/form-data with a "file" part and an "outputFormat"
    field. Responds with the converted content and a Content-Disposition
    suggesting `<stem>.<outputFormat>` as the download name.
    """
    if file is None or not outputFormat:
        raise _error(400, "missing_fields", "Missing file or output format")

    service = _get_service()
    data = await _read_upload(file)
    request = service.build_request(file.filename or "upload", data, outputFormat)
    logger.info("conversion request: %s -> %s", request.filename, request.output_format)

    try:
        result = await service.convert(request)
    except UnsupportedConversion as e:
        raise _error(400, "unsupported_conversion", str(e))
    except ConversionError as e:
        logger.error("conversion of %s failed: %s", request.filename, e)
        raise _error(500, "conversion_failed", f"Conversion failed: {e}")
    except Exception as e:
        logger.exception("unexpected error converting %s", request.filename)
        raise _error(500, "conversion_failed", f"Conversion failed: {e}")

    logger.info("conversion successful, returning %s", result.filename)
    return Response(
        content=result.data,
        media_type=result.mime_type,
        headers={"Content-Disposition": _content_disposition(result.filename)},
    )


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("file_converter.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
