from __future__ import annotations

"""Immutable value types for the lineage diagram."""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence


class CardinalityKind(str, Enum):
    ONE_TO_ONE = "oneToOne"
    ONE_TO_MANY = "oneToMany"
    MANY_TO_ONE = "manyToOne"
    MANY_TO_MANY = "manyToMany"
    IDENTIFYING = "identifying"
    NON_IDENTIFYING = "nonIdentifying"
    OPTIONAL = "optional"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]

    @classmethod
    def coerce(cls, value: object) -> Optional["CardinalityKind"]:
        """Return the kind for `value` (kind, value string or label), or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            pass
        for kind, label in _KIND_LABELS.items():
            if label == value:
                return kind
        return None


_KIND_LABELS: dict[CardinalityKind, str] = {
    CardinalityKind.ONE_TO_ONE: "1:1",
    CardinalityKind.ONE_TO_MANY: "1:N",
    CardinalityKind.MANY_TO_ONE: "N:1",
    CardinalityKind.MANY_TO_MANY: "N:M",
    CardinalityKind.IDENTIFYING: "ID",
    CardinalityKind.NON_IDENTIFYING: "NID",
    CardinalityKind.OPTIONAL: "0..1",
}


@dataclass(frozen=True, slots=True)
class Column:
    name: str
    is_pk: bool = False


@dataclass(frozen=True, slots=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True, slots=True)
class TableNode:
    """One table on the canvas. Carries no behavior; see NodeDispatch."""

    id: str
    label: str
    columns: tuple[Column, ...] = ()
    color: str = "#1e293b"
    position: Position = Position()


@dataclass(frozen=True, slots=True)
class Marker:
    """Line-end marker (mirrors the canvas library's marker object)."""

    type: str
    color: str
    width: int = 25
    height: int = 25


@dataclass(frozen=True, slots=True)
class EdgePresentation:
    marker_end: Marker
    stroke: str
    marker_start: Optional[Marker] = None
    stroke_width: float = 2.0
    dash: Optional[str] = None
    animated: bool = True


@dataclass(frozen=True, slots=True)
class Edge:
    id: str
    source: str
    target: str
    kind: CardinalityKind
    presentation: EdgePresentation
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    @property
    def label(self) -> str:
        return self.kind.label

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def with_endpoints(self, source: str, target: str) -> Edge:
        return replace(self, source=source, target=target)


@dataclass(frozen=True, slots=True)
class LegendEntry:
    id: str
    name: str
    hex: str
    description: str = ""


DEFAULT_LEGEND: tuple[LegendEntry, ...] = (
    LegendEntry("gold", "Gold", "#fbbf24"),
    LegendEntry("silver", "Silver", "#94a3b8"),
    LegendEntry("bronze", "Bronze", "#cd7f32"),
    LegendEntry("landing", "Landing", "#22c55e"),
    LegendEntry("neutral", "Neutral", "#1e293b"),
)


@dataclass(frozen=True, slots=True)
class GraphSnapshot:
    """
    Full diagram state at one point in time.

    Never mutated; GraphStore builds a new snapshot for every effective
    change, so `old is not new` is a valid change test.
    """

    nodes: tuple[TableNode, ...] = ()
    edges: tuple[Edge, ...] = ()
    legend: tuple[LegendEntry, ...] = ()
    _node_index: Mapping[str, TableNode] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )
    _edge_index: Mapping[str, Edge] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_node_index", MappingProxyType({n.id: n for n in self.nodes}))
        object.__setattr__(self, "_edge_index", MappingProxyType({e.id: e for e in self.edges}))

    @classmethod
    def of(
        cls,
        nodes: Sequence[TableNode] = (),
        edges: Sequence[Edge] = (),
        legend: Sequence[LegendEntry] = (),
    ) -> GraphSnapshot:
        return cls(tuple(nodes), tuple(edges), tuple(legend))

    def node(self, node_id: str) -> Optional[TableNode]:
        return self._node_index.get(node_id)

    def edge(self, edge_id: str) -> Optional[Edge]:
        return self._edge_index.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def edges_for(self, node_id: str) -> tuple[Edge, ...]:
        return tuple(e for e in self.edges if e.touches(node_id))

    @property
    def is_empty(self) -> bool:
        return not (self.nodes or self.edges or self.legend)
