"""
File Converter package.

Converts uploaded files between image, PDF and text formats. The FastAPI
application in `file_converter.webapi` exposes the server-side conversions;
`file_converter.streamlit_app` is the browser front-end.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
