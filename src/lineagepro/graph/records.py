from __future__ import annotations

"""
Persisted / exported JSON layout.

The records mirror what the canvas keeps per node and edge. They hold
identifiers and data only; edit/delete behavior is attached at hydration
time and never written.

    node   {id, type, position:{x,y}, data:{label, columns:[{name,isPK}], color}}
    edge   {id, source, target, sourceHandle?, targetHandle?, label?, animated,
            style:{stroke, strokeWidth, strokeDasharray?},
            markerStart?, markerEnd, data:{kind}}
    legend {id, name, hex, description}
"""

from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .model import (
    Column,
    Edge,
    GraphSnapshot,
    LegendEntry,
    Marker,
    Position,
    TableNode,
)
from .presentation import presentation_for, resolve_kind

NODE_TYPE = "tableNode"


class _Record(BaseModel):
    # Stored payloads may carry extra keys from older canvases; ignore them.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ColumnRecord(_Record):
    name: str
    is_pk: bool = Field(False, alias="isPK")


class PositionRecord(_Record):
    x: float = 0.0
    y: float = 0.0


class NodeDataRecord(_Record):
    label: str
    columns: list[ColumnRecord] = Field(default_factory=list)
    color: Optional[str] = None


class NodeRecord(_Record):
    id: str
    type: str = NODE_TYPE
    position: PositionRecord = Field(default_factory=PositionRecord)
    data: NodeDataRecord


class MarkerRecord(_Record):
    type: str
    color: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class EdgeStyleRecord(_Record):
    stroke: Optional[str] = None
    stroke_width: Optional[float] = Field(None, alias="strokeWidth")
    stroke_dasharray: Optional[str] = Field(None, alias="strokeDasharray")


class EdgeDataRecord(_Record):
    kind: Optional[str] = None


class EdgeRecord(_Record):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(None, alias="sourceHandle")
    target_handle: Optional[str] = Field(None, alias="targetHandle")
    label: Optional[str] = None
    animated: bool = False
    style: EdgeStyleRecord = Field(default_factory=EdgeStyleRecord)
    marker_start: Optional[MarkerRecord] = Field(None, alias="markerStart")
    marker_end: Optional[MarkerRecord] = Field(None, alias="markerEnd")
    data: EdgeDataRecord = Field(default_factory=EdgeDataRecord)


class LegendRecord(_Record):
    id: str
    name: str = ""
    hex: str = ""
    description: str = ""


NODE_LIST = TypeAdapter(list[NodeRecord])
EDGE_LIST = TypeAdapter(list[EdgeRecord])
LEGEND_LIST = TypeAdapter(list[LegendRecord])


# ---------------------------------------------------------------------------
# Domain -> record
# ---------------------------------------------------------------------------


def _marker_record(marker: Optional[Marker]) -> Optional[MarkerRecord]:
    if marker is None:
        return None
    return MarkerRecord(
        type=marker.type, color=marker.color, width=marker.width, height=marker.height
    )


def node_to_record(node: TableNode) -> NodeRecord:
    return NodeRecord(
        id=node.id,
        position=PositionRecord(x=node.position.x, y=node.position.y),
        data=NodeDataRecord(
            label=node.label,
            columns=[ColumnRecord(name=c.name, is_pk=c.is_pk) for c in node.columns],
            color=node.color,
        ),
    )


def edge_to_record(edge: Edge) -> EdgeRecord:
    p = edge.presentation
    return EdgeRecord(
        id=edge.id,
        source=edge.source,
        target=edge.target,
        source_handle=edge.source_handle,
        target_handle=edge.target_handle,
        label=edge.label,
        animated=p.animated,
        style=EdgeStyleRecord(
            stroke=p.stroke, stroke_width=p.stroke_width, stroke_dasharray=p.dash
        ),
        marker_start=_marker_record(p.marker_start),
        marker_end=_marker_record(p.marker_end),
        data=EdgeDataRecord(kind=edge.kind.value),
    )


def legend_to_record(entry: LegendEntry) -> LegendRecord:
    return LegendRecord(
        id=entry.id, name=entry.name, hex=entry.hex, description=entry.description
    )


def dump_records(records: Sequence[BaseModel]) -> list[dict[str, Any]]:
    return [r.model_dump(by_alias=True, exclude_none=True) for r in records]


def snapshot_to_dict(snapshot: GraphSnapshot) -> dict[str, list[dict[str, Any]]]:
    return {
        "nodes": dump_records([node_to_record(n) for n in snapshot.nodes]),
        "edges": dump_records([edge_to_record(e) for e in snapshot.edges]),
        "legend": dump_records([legend_to_record(e) for e in snapshot.legend]),
    }


# ---------------------------------------------------------------------------
# Record -> domain
# ---------------------------------------------------------------------------


def node_from_record(record: NodeRecord, default_color: str = "#1e293b") -> TableNode:
    return TableNode(
        id=record.id,
        label=record.data.label,
        columns=tuple(Column(c.name, c.is_pk) for c in record.data.columns),
        color=record.data.color or default_color,
        position=Position(record.position.x, record.position.y),
    )


def edge_from_record(record: EdgeRecord) -> Edge:
    """
    Rebuild an edge; presentation is always derived from the kind.

    The kind comes from data.kind, else from the short label, else the
    default kind.
    """
    kind = resolve_kind(record.data.kind or record.label)
    return Edge(
        id=record.id,
        source=record.source,
        target=record.target,
        kind=kind,
        presentation=presentation_for(kind),
        source_handle=record.source_handle,
        target_handle=record.target_handle,
    )


def legend_from_record(record: LegendRecord) -> LegendEntry:
    return LegendEntry(
        id=record.id, name=record.name, hex=record.hex, description=record.description
    )


def snapshot_from_records(
    nodes: Sequence[NodeRecord],
    edges: Sequence[EdgeRecord],
    legend: Sequence[LegendRecord],
) -> GraphSnapshot:
    return GraphSnapshot.of(
        [node_from_record(n) for n in nodes],
        [edge_from_record(e) for e in edges],
        [legend_from_record(e) for e in legend],
    )
