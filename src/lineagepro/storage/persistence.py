from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from ..graph.model import DEFAULT_LEGEND, GraphSnapshot, LegendEntry, TableNode
from ..graph.records import (
    EDGE_LIST,
    LEGEND_LIST,
    NODE_LIST,
    snapshot_from_records,
    snapshot_to_dict,
)
from ..graph.store import GraphStore
from ..log import getLogger
from .base import KeyValueStore

logger = getLogger(__name__)

NODES_KEY = "nodes"
EDGES_KEY = "edges"
LEGEND_KEY = "legend"
KEYS: tuple[str, ...] = (NODES_KEY, EDGES_KEY, LEGEND_KEY)

R = TypeVar("R")


class NodeDispatch(Protocol):
    """Edit/delete behavior for table nodes, resolved by node id at use time."""

    def edit(self, node_id: str) -> Any:
        """Open the node in the table form."""

    def delete(self, node_id: str) -> Any:
        """Delete the node (and its edges)."""


@dataclass(frozen=True, slots=True)
class BoundNode:
    """A node paired with the dispatch current at binding time."""

    node: TableNode
    dispatch: NodeDispatch

    @property
    def id(self) -> str:
        return self.node.id

    def edit(self) -> Any:
        return self.dispatch.edit(self.node.id)

    def delete(self) -> Any:
        return self.dispatch.delete(self.node.id)


def dumps(records: Any) -> str:
    """Canonical JSON: identical state always gives identical text."""
    return json.dumps(records, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class PersistenceAdapter:
    """
    Durable round trip of the diagram through a KeyValueStore.

    - Three independent keys: 'nodes', 'edges', 'legend'; each holds a JSON
      array and is rewritten as a whole on every observed mutation.
    - Loading never raises on bad content: a missing, corrupt or
      schema-invalid value falls back to an empty list (or the built-in
      legend).
    - Behavior (NodeDispatch) is never written; `bind` attaches it to the
      loaded nodes instead.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        default_legend: Sequence[LegendEntry] = DEFAULT_LEGEND,
    ) -> None:
        self._store = store
        self._default_legend = tuple(default_legend)

        self._graph: Optional[GraphStore] = None
        self._watch_id: Optional[uuid.UUID] = None

        self._dispatch: Optional[NodeDispatch] = None
        self._generation = 0
        self._bound_for: Optional[GraphSnapshot] = None
        self._bound: tuple[BoundNode, ...] = ()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Save
    # ------------------------------------------------------------------ #

    def save(self, snapshot: GraphSnapshot) -> None:
        payload = snapshot_to_dict(snapshot)
        for key in KEYS:
            self._store.set(key, dumps(payload[key]))
        logger.debug(
            "Saved %d node(s), %d edge(s), %d legend entr(ies)",
            len(snapshot.nodes),
            len(snapshot.edges),
            len(snapshot.legend),
        )

    def _on_snapshot(self, snapshot: GraphSnapshot) -> bool:
        self.save(snapshot)
        return True

    def attach(self, graph: GraphStore) -> uuid.UUID:
        """Save `graph` after every mutation from now on."""
        self.detach()
        self._graph = graph
        self._watch_id = graph.subscribe(self._on_snapshot)
        return self._watch_id

    def detach(self) -> None:
        if self._graph is not None and self._watch_id is not None:
            self._graph.unsubscribe(self._watch_id)
        self._watch_id = None

    # ------------------------------------------------------------------ #
    # Load
    # ------------------------------------------------------------------ #

    def _load_key(self, key: str, adapter: TypeAdapter[list[R]]) -> Optional[list[R]]:
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored %r is unreadable, falling back to default (%d error(s))",
                key,
                exc.error_count(),
            )
            return None

    def load(self) -> GraphSnapshot:
        nodes = self._load_key(NODES_KEY, NODE_LIST) or []
        edges = self._load_key(EDGES_KEY, EDGE_LIST) or []
        legend = self._load_key(LEGEND_KEY, LEGEND_LIST)

        snapshot = snapshot_from_records(nodes, edges, legend or [])
        if legend is None:
            snapshot = GraphSnapshot(snapshot.nodes, snapshot.edges, self._default_legend)

        logger.info(
            "Loaded %d node(s), %d edge(s), %d legend entr(ies)",
            len(snapshot.nodes),
            len(snapshot.edges),
            len(snapshot.legend),
        )
        return snapshot

    def restore(self, graph: GraphStore, dispatch: Optional[NodeDispatch] = None) -> GraphSnapshot:
        """
        Startup sequence: load, hydrate `graph`, attach for saving, and bind
        `dispatch` if given.
        """
        snapshot = graph.hydrate(self.load())
        self.attach(graph)
        if dispatch is not None:
            self.bind(dispatch)
        return snapshot

    # ------------------------------------------------------------------ #
    # Behavior binding
    # ------------------------------------------------------------------ #

    @property
    def dispatch(self) -> Optional[NodeDispatch]:
        return self._dispatch

    @property
    def binding_generation(self) -> int:
        """Number of times a new dispatch has been bound."""
        return self._generation

    def bind(self, dispatch: NodeDispatch) -> bool:
        """
        Attach `dispatch` to the nodes. Binding the same object again is a
        no-op; returns whether a rebind happened.
        """
        if dispatch is self._dispatch:
            return False
        self._dispatch = dispatch
        self._generation += 1
        self._bound_for = None
        logger.debug("Bound node dispatch %r (generation %d)", dispatch, self._generation)
        return True

    def bound_nodes(self) -> tuple[BoundNode, ...]:
        """Nodes of the attached graph, in order, each with the current dispatch."""
        if self._graph is None or self._dispatch is None:
            return ()
        snapshot = self._graph.snapshot
        if snapshot is not self._bound_for:
            self._bound = tuple(BoundNode(n, self._dispatch) for n in snapshot.nodes)
            self._bound_for = snapshot
        return self._bound

    # ------------------------------------------------------------------ #
    # Reset
    # ------------------------------------------------------------------ #

    def reset(self, confirm: Callable[[], bool]) -> bool:
        """
        Drop all persisted keys and clear the attached graph.

        Irreversible, so `confirm()` must return True first. Afterwards
        the stored state is the empty state.
        """
        if not confirm():
            logger.info("Reset cancelled")
            return False

        for key in KEYS:
            self._store.delete(key)

        if self._graph is not None:
            self._graph.clear()
        if self._watch_id is None:
            self.save(GraphSnapshot())

        logger.warning("Diagram reset: all nodes, edges and legend entries removed")
        return True
