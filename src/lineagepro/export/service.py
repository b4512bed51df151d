from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from ..graph.model import GraphSnapshot
from ..graph.store import GraphStore
from ..log import getLogger
from .serializer import ExportFormat, ExportResult, ExportSerializer

logger = getLogger(__name__)


class ExportService:
    """
    Runs exports off the interaction thread.

    The snapshot is taken when `submit` is called, so edits made while an
    export runs never leak into it. A failing export is logged and its
    future resolves to None; the graph is never touched.
    """

    def __init__(
        self,
        graph: GraphStore,
        serializer: ExportSerializer,
        *,
        max_workers: int = 2,
    ) -> None:
        self._graph = graph
        self._serializer = serializer
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="lineagepro-export"
        )

    @property
    def serializer(self) -> ExportSerializer:
        return self._serializer

    def submit(
        self,
        fmt: ExportFormat | str,
        snapshot: Optional[GraphSnapshot] = None,
    ) -> Future[Optional[ExportResult]]:
        snapshot = self._graph.snapshot if snapshot is None else snapshot
        logger.debug("Export %s queued for %d node(s)", fmt, len(snapshot.nodes))
        return self._executor.submit(self._run, snapshot, fmt)

    def _run(self, snapshot: GraphSnapshot, fmt: ExportFormat | str) -> Optional[ExportResult]:
        try:
            result = self._serializer.export(snapshot, fmt)
        except Exception as exc:
            logger.exception("Export to %s failed: %r", fmt, exc)
            return None
        logger.info("Export %s ready: %s (%d bytes)", result.format.value, result.filename, len(result.data))
        return result

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
