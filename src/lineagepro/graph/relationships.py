from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from ..log import getLogger
from .model import CardinalityKind, Edge
from .presentation import DEFAULT_KIND, presentation_for, resolve_kind
from .store import HANDLE_SEPARATOR, GraphStore

logger = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A node, optionally narrowed to one of its columns (or connection points)."""

    node_id: str
    handle: Optional[str] = None

    @classmethod
    def parse(cls, value: "Endpoint | str | None") -> Optional["Endpoint"]:
        """Accept an Endpoint or a "<nodeId>|<column>" selection value."""
        if value is None or isinstance(value, Endpoint):
            return value
        node_id, _, handle = value.partition(HANDLE_SEPARATOR)
        if not node_id:
            return None
        return cls(node_id, handle or None)

    def __str__(self) -> str:
        if self.handle is None:
            return self.node_id
        return f"{self.node_id}{HANDLE_SEPARATOR}{self.handle}"


_ID_ESCAPES = str.maketrans({"%": "%25", ".": "%2E", "-": "%2D"})


def _id_part(value: Optional[str]) -> str:
    return (value or "").translate(_ID_ESCAPES)


def explicit_edge_id(source: Endpoint, target: Endpoint) -> str:
    """
    Id for attribute-level links; the same endpoints always give the same id.

    The "." and "-" delimiters are percent-escaped inside each part, so
    distinct endpoint pairs never share an id.
    """
    return (
        f"e-{_id_part(source.node_id)}.{_id_part(source.handle)}"
        f"-{_id_part(target.node_id)}.{_id_part(target.handle)}"
    )


def make_edge(
    edge_id: str,
    source: Endpoint,
    target: Endpoint,
    kind: CardinalityKind | str,
) -> Edge:
    resolved = resolve_kind(kind)
    return Edge(
        id=edge_id,
        source=source.node_id,
        target=target.node_id,
        kind=resolved,
        presentation=presentation_for(resolved),
        source_handle=source.handle,
        target_handle=target.handle,
    )


class RelationshipBuilder:
    """
    Builds and edits edges on a GraphStore.

    Holds the relationship panel's working selection: a source and target
    endpoint, the cardinality kind, and the edge being edited (if any).
    `selected_kind` is also what drag-connect links get.
    """

    def __init__(self, store: GraphStore, kind: CardinalityKind | str = DEFAULT_KIND) -> None:
        self._store = store
        self.source: Optional[Endpoint] = None
        self.target: Optional[Endpoint] = None
        self.selected_kind: CardinalityKind = resolve_kind(kind)
        self.editing_edge_id: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Construction modes
    # ------------------------------------------------------------------ #

    def link(
        self,
        source: Endpoint | str | None,
        target: Endpoint | str | None,
        kind: CardinalityKind | str | None = None,
    ) -> Optional[Edge]:
        """
        Explicit attribute-level link with a deterministic id.

        An edge already joining the same endpoints (e.g. one created before
        a rename) keeps its id, so relinking never duplicates it.
        """
        src = Endpoint.parse(source)
        tgt = Endpoint.parse(target)
        if src is None or tgt is None:
            logger.debug("link skipped: source=%r target=%r", source, target)
            return None

        existing = self._store.find_edge(src.node_id, tgt.node_id, src.handle, tgt.handle)
        edge = make_edge(
            existing.id if existing is not None else explicit_edge_id(src, tgt),
            src,
            tgt,
            self.selected_kind if kind is None else kind,
        )
        return self._store.create_edge(edge)

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        """Free-form drag-connect between two canvas connection points."""
        if not source or not target:
            return None
        edge = make_edge(
            f"edge_{uuid.uuid4().hex}",
            Endpoint(source, source_handle),
            Endpoint(target, target_handle),
            self.selected_kind,
        )
        return self._store.create_edge(edge)

    # ------------------------------------------------------------------ #
    # Working selection
    # ------------------------------------------------------------------ #

    def set_kind(self, kind: CardinalityKind | str) -> CardinalityKind:
        self.selected_kind = resolve_kind(kind)
        return self.selected_kind

    def select_edge(self, edge_id: str) -> Optional[Edge]:
        """Load an existing edge into the working selection for editing."""
        edge = self._store.get_edge(edge_id)
        if edge is None:
            return None
        self.source = Endpoint(edge.source, edge.source_handle)
        self.target = Endpoint(edge.target, edge.target_handle)
        self.selected_kind = edge.kind
        self.editing_edge_id = edge.id
        return edge

    def clear_selection(self) -> None:
        self.source = None
        self.target = None
        self.editing_edge_id = None

    def rename_node(self, old_id: str, new_id: str) -> None:
        """Point the working selection at a node's new id after a rename."""
        if self.source is not None and self.source.node_id == old_id:
            self.source = Endpoint(new_id, self.source.handle)
        if self.target is not None and self.target.node_id == old_id:
            self.target = Endpoint(new_id, self.target.handle)

    def save(self) -> Optional[Edge]:
        """
        Persist the working selection.

        Updates the selected edge in place when one is being edited,
        otherwise creates an explicit link.
        """
        if self.source is None or self.target is None:
            logger.debug("save skipped: incomplete selection")
            return None

        if self.editing_edge_id is None:
            return self.link(self.source, self.target, self.selected_kind)

        edge = make_edge(self.editing_edge_id, self.source, self.target, self.selected_kind)
        updated = self._store.update_edge(self.editing_edge_id, edge)
        if updated is not None:
            self.clear_selection()
        return updated

    def restyle(self, edge_id: str, kind: CardinalityKind | str) -> Optional[Edge]:
        """Change only the kind of an edge; its presentation follows."""
        edge = self._store.get_edge(edge_id)
        if edge is None:
            return None
        return self._store.update_edge(edge_id, make_edge(
            edge_id,
            Endpoint(edge.source, edge.source_handle),
            Endpoint(edge.target, edge.target_handle),
            kind,
        ))
