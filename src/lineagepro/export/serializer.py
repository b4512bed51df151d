from __future__ import annotations

import io
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import ExportSettings
from ..graph.model import DEFAULT_LEGEND, GraphSnapshot
from ..graph.records import (
    EdgeRecord,
    LegendRecord,
    NodeRecord,
    snapshot_from_records,
    snapshot_to_dict,
)
from ..log import getLogger

logger = getLogger(__name__)


class ExportError(RuntimeError):
    """An export or import could not be produced."""
    pass


class ExportFormat(str, Enum):
    JSON = "json"
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"


MEDIA_TYPES: dict[ExportFormat, str] = {
    ExportFormat.JSON: "application/json",
    ExportFormat.PNG: "image/png",
    ExportFormat.SVG: "image/svg+xml",
    ExportFormat.PDF: "application/pdf",
}


class ViewRenderer(Protocol):
    """Renders the current diagram view; supplied by the canvas layer."""

    def render_image(self, snapshot: GraphSnapshot) -> Image.Image:
        """Rasterize the diagram for `snapshot`."""

    def render_svg(self, snapshot: GraphSnapshot) -> str:
        """Return the diagram for `snapshot` as an SVG document."""


@dataclass(frozen=True, slots=True)
class ExportResult:
    format: ExportFormat
    filename: str
    data: bytes

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self.format]

    def write_to(self, directory: str | Path) -> Path:
        """Write the export into `directory` (the download location)."""
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        logger.info("Wrote %s export to %s (%d bytes)", self.format.value, path, len(self.data))
        return path


class ExportDocument(BaseModel):
    """Structural export: the whole snapshot in the persisted record layout."""

    model_config = ConfigDict(extra="ignore")

    nodes: list[NodeRecord] = Field(default_factory=list)
    edges: list[EdgeRecord] = Field(default_factory=list)
    legend: Optional[list[LegendRecord]] = None


class ExportSerializer:
    """
    Turns a read-only snapshot into downloadable files.

    JSON is produced here and is re-importable. PNG and SVG come from the
    ViewRenderer; PDF embeds the PNG raster scaled to the page width and
    split over as many pages as its height needs.
    """

    def __init__(
        self,
        renderer: Optional[ViewRenderer] = None,
        *,
        settings: Optional[ExportSettings] = None,
    ) -> None:
        self._renderer = renderer
        self._settings = settings or ExportSettings()

    @property
    def settings(self) -> ExportSettings:
        return self._settings

    def _require_renderer(self) -> ViewRenderer:
        if self._renderer is None:
            raise ExportError("No view renderer configured for visual exports")
        return self._renderer

    # ------------------------------------------------------------------ #
    # Structural
    # ------------------------------------------------------------------ #

    def to_json(self, snapshot: GraphSnapshot) -> str:
        return json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True, ensure_ascii=False)

    def from_json(self, text: str | bytes) -> GraphSnapshot:
        """Parse a structural export back into a snapshot."""
        try:
            doc = ExportDocument.model_validate_json(text)
        except ValidationError as exc:
            raise ExportError(f"Not a valid diagram export: {exc.error_count()} error(s)") from exc

        snapshot = snapshot_from_records(doc.nodes, doc.edges, doc.legend or [])
        if doc.legend is None:
            snapshot = GraphSnapshot(snapshot.nodes, snapshot.edges, DEFAULT_LEGEND)
        return snapshot

    # ------------------------------------------------------------------ #
    # Visual
    # ------------------------------------------------------------------ #

    def to_png(self, snapshot: GraphSnapshot) -> bytes:
        image = self._require_renderer().render_image(snapshot)
        buf = io.BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()

    def to_svg(self, snapshot: GraphSnapshot) -> bytes:
        return self._require_renderer().render_svg(snapshot).encode("utf-8")

    def paginate(self, image: Image.Image) -> list[Image.Image]:
        """Scale `image` to the page width and cut it into page-sized sheets."""
        page_w = self._settings.page_width_px
        page_h = self._settings.page_height_px

        image = image.convert("RGB")
        scaled_h = max(1, round(image.height * page_w / image.width))
        scaled = image.resize((page_w, scaled_h), Image.Resampling.LANCZOS)

        pages: list[Image.Image] = []
        for top in range(0, scaled_h, page_h):
            sheet = Image.new("RGB", (page_w, page_h), "white")
            sheet.paste(scaled.crop((0, top, page_w, min(top + page_h, scaled_h))), (0, 0))
            pages.append(sheet)
        return pages

    def to_pdf(self, snapshot: GraphSnapshot) -> bytes:
        pages = self.paginate(self._require_renderer().render_image(snapshot))
        buf = io.BytesIO()
        pages[0].save(
            buf,
            format="PDF",
            save_all=True,
            append_images=pages[1:],
            resolution=self._settings.dpi,
        )
        return buf.getvalue()

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def export(self, snapshot: GraphSnapshot, fmt: ExportFormat | str) -> ExportResult:
        try:
            fmt = ExportFormat(fmt)
        except ValueError as exc:
            raise ExportError(f"Unsupported export format {fmt!r}") from exc

        if fmt is ExportFormat.JSON:
            data = self.to_json(snapshot).encode("utf-8")
        elif fmt is ExportFormat.PNG:
            data = self.to_png(snapshot)
        elif fmt is ExportFormat.SVG:
            data = self.to_svg(snapshot)
        else:
            data = self.to_pdf(snapshot)

        return ExportResult(
            format=fmt,
            filename=f"{self._settings.basename}.{fmt.value}",
            data=data,
        )
