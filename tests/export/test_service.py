from __future__ import annotations

import io
import json
import threading

import pytest
from PIL import Image

from lineagepro.export.serializer import ExportSerializer
from lineagepro.export.service import ExportService
from lineagepro.graph.model import Column, GraphSnapshot
from lineagepro.graph.store import GraphStore


class BlockingRenderer:
    """Holds the export until the test releases it."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.release = threading.Event()

    def render_image(self, snapshot: GraphSnapshot) -> Image.Image:
        self.started.set()
        self.release.wait(timeout=5)
        return Image.new("RGB", (10 * (len(snapshot.nodes) + 1), 10), "white")

    def render_svg(self, snapshot: GraphSnapshot) -> str:
        raise RuntimeError("renderer crashed")


@pytest.fixture
def graph() -> GraphStore:
    g = GraphStore()
    g.create_node("CUSTOMERS", (Column("id", True),))
    return g


def test_json_export_uses_snapshot_at_call_time(graph: GraphStore) -> None:
    service = ExportService(graph, ExportSerializer())
    try:
        future = service.submit("json")
        graph.create_node("ORDERS", (Column("id", True),))
        result = future.result(timeout=5)
    finally:
        service.close()

    assert result is not None
    doc = json.loads(result.data)
    assert [n["data"]["label"] for n in doc["nodes"]] == ["CUSTOMERS"]


def test_edits_during_a_running_export_do_not_leak(graph: GraphStore) -> None:
    renderer = BlockingRenderer()
    service = ExportService(graph, ExportSerializer(renderer))
    try:
        future = service.submit("png")
        assert renderer.started.wait(timeout=5)
        graph.create_node("ORDERS", (Column("id", True),))
        renderer.release.set()
        result = future.result(timeout=5)
    finally:
        service.close()

    assert result is not None
    assert result.filename == "lineage.png"
    with Image.open(io.BytesIO(result.data)) as img:
        # One node at submit time.
        assert img.size == (20, 10)
    assert len(graph.snapshot.nodes) == 2


def test_failed_export_resolves_to_none_and_keeps_graph(graph: GraphStore) -> None:
    before = graph.snapshot
    service = ExportService(graph, ExportSerializer(BlockingRenderer()))
    try:
        result = service.submit("svg").result(timeout=5)
    finally:
        service.close()

    assert result is None
    assert graph.snapshot is before


def test_explicit_snapshot_is_exported(graph: GraphStore) -> None:
    service = ExportService(graph, ExportSerializer())
    try:
        result = service.submit("json", snapshot=GraphSnapshot()).result(timeout=5)
    finally:
        service.close()

    assert result is not None
    assert json.loads(result.data)["nodes"] == []
