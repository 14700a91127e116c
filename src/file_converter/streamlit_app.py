import asyncio
import os

import streamlit as st

from file_converter.conversion import CLIENT_LOCAL_PIPELINES, BatchItem, ConversionService
from file_converter.conversion.adapters import HttpConversionBackend, build_local_backend
from file_converter.formats import FORMAT_FAMILIES, available_outputs, extract_format

API_BASE = os.getenv("FILE_CONVERTER_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")
HTTP_TIMEOUT = float(os.getenv("FILE_CONVERTER_HTTP_TIMEOUT", "120"))

UPLOAD_TYPES = [fmt for formats in FORMAT_FAMILIES.values() for fmt in formats]


@st.cache_resource
def _service() -> ConversionService:
    # Image pipelines run here; everything else goes to the API
    return ConversionService(
        build_local_backend(),
        remote=HttpConversionBackend(API_BASE, timeout=HTTP_TIMEOUT),
        local_pipelines=CLIENT_LOCAL_PIPELINES,
    )


def _reset_state():
    for key in ["results", "output_format"]:
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _convert(files: list[tuple[str, bytes]], output_format: str) -> list[BatchItem]:
    bar = st.progress(0, text="Converting...")

    def on_progress(done: int, total: int) -> None:
        bar.progress(done / total, text=f"Converted {done} of {total}")

    return asyncio.run(_service().convert_batch(files, output_format, on_progress=on_progress))


def main() -> None:
    st.set_page_config(page_title="File Converter", page_icon="🔄", layout="centered")
    st.title("🔄 File Converter")
    st.caption(f"API base: {API_BASE}")

    if st.button("Restart", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        "Upload files (images, PDF, DOCX, TXT, ...)",
        type=UPLOAD_TYPES,  # type: ignore[arg-type]
        accept_multiple_files=True,
        key=f"uploader-{st.session_state['upload_key']}",
    )
    if not uploaded:
        return

    # The first file decides which targets are offered
    input_format = extract_format(uploaded[0].name)
    outputs = available_outputs(input_format)
    if not outputs:
        st.error(f"Unsupported input format: {input_format or 'unknown'}")
        return
    output_format = st.selectbox("Convert to", [o.upper() for o in outputs], key="output_format")

    if st.button("Convert", type="primary"):
        files = [(f.name, f.getvalue()) for f in uploaded]
        st.session_state["results"] = _convert(files, output_format.lower())

    results: list[BatchItem] = st.session_state.get("results", [])
    for i, item in enumerate(results):
        if item.ok:
            assert item.result is not None
            st.download_button(
                label=f"Download {item.result.filename}",
                data=item.result.data,
                file_name=item.result.filename,
                mime=item.result.mime_type,
                key=f"download-{i}",
            )
        else:
            st.error(f"{item.filename}: {item.error}")
    if results and all(item.ok for item in results):
        st.success("Conversion complete!")


if __name__ == "__main__":
    main()
