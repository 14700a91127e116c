"""Format classification: extensions, families, allowed outputs and MIME types."""

FORMAT_FAMILIES: dict[str, list[str]] = {
    "document": ["pdf", "docx", "doc", "txt", "rtf"],
    "presentation": ["pptx", "ppt", "odp"],
    "image": ["jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"],
    "other": ["csv", "xlsx", "xls"],
}

_FAMILY_OF: dict[str, str] = {
    fmt: name for name, formats in FORMAT_FAMILIES.items() for fmt in formats
}

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "txt": "text/plain",
}


def extract_format(filename: str) -> str:
    """Return the lowercased final extension of `filename`, or "" when it has none."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def family(fmt: str) -> str | None:
    return _FAMILY_OF.get((fmt or "").lower())


def available_outputs(input_format: str) -> list[str]:
    """List the formats a file of `input_format` may be converted to.

    Images go to every other image format and PDF. PDF goes to every image
    format and every other document format. Other documents go to the rest
    of the document family, with PDF always included. Remaining families
    convert within themselves. Unknown formats get an empty list.
    """
    fmt = (input_format or "").lower()
    category = family(fmt)
    if category is None:
        return []

    if category == "image":
        outputs = [f for f in FORMAT_FAMILIES["image"] if f != fmt] + ["pdf"]
    elif fmt == "pdf":
        outputs = FORMAT_FAMILIES["image"] + [f for f in FORMAT_FAMILIES["document"] if f != "pdf"]
    elif category == "document":
        outputs = [f for f in FORMAT_FAMILIES["document"] if f != fmt] + ["pdf"]
    else:
        outputs = [f for f in FORMAT_FAMILIES[category] if f != fmt]

    # pdf may already be present for documents
    return list(dict.fromkeys(outputs))


def mime_type(fmt: str) -> str:
    return _MIME_TYPES.get((fmt or "").lower(), "application/octet-stream")


def output_filename(original_name: str, output_format: str) -> str:
    """Name of the converted file: the full stem of `original_name` plus the new extension."""
    name = original_name or "upload"
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return f"{stem or 'upload'}.{output_format}"
