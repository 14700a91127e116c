"""
Domain layer for file conversion.
Provides capability interfaces, a dispatcher that maps (input, output)
format pairs to pipelines, and the backends that execute them, so that
front-ends (HTTP or the browser client) share the same decision table.
"""

from .interfaces import ConversionBackend, ConversionRequest, ConversionResult, ImageMetadata
from .service import (
    CLIENT_LOCAL_PIPELINES,
    BatchItem,
    ConversionService,
    LocalBackend,
    Pipeline,
    resolve_pipeline,
)
