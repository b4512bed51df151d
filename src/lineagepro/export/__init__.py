from __future__ import annotations

from .serializer import (
    ExportError,
    ExportFormat,
    ExportResult,
    ExportSerializer,
    ViewRenderer,
)
from .service import ExportService

__all__ = [
    "ExportError",
    "ExportFormat",
    "ExportResult",
    "ExportSerializer",
    "ExportService",
    "ViewRenderer",
]
