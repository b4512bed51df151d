from __future__ import annotations

import re
import time
import uuid
from dataclasses import replace
from enum import Enum
from threading import RLock
from typing import Callable, Dict, Iterable, Optional, Sequence

from ..log import getLogger
from .model import Column, Edge, GraphSnapshot, LegendEntry, Position, TableNode
from .parser import dedupe
from .presentation import restyle

logger = getLogger(__name__)

SnapshotCallback = Callable[[GraphSnapshot], bool]

HANDLE_SEPARATOR = "|"

_NODE_ID_RE = re.compile(r"^node_(\d+)$")


class IdentityMode(str, Enum):
    OPAQUE = "opaque"  # node_<ms>, assigned once
    NAME = "name"      # id == label, renames rewrite edge endpoints


class GraphStore:
    """
    Single owner of the diagram state.

    - State is an immutable GraphSnapshot; every effective mutation swaps
      in a new snapshot under the lock, so readers (exports, persistence)
      never see a half-applied change.
    - Operations whose inputs are missing or stale are silent no-ops:
      they return None/False and leave the current snapshot object as is.
    - Observers registered with `subscribe` get the new snapshot after each
      effective mutation. A callback returning False is removed.
    """

    def __init__(
        self,
        *,
        identity: IdentityMode | str = IdentityMode.OPAQUE,
        default_position: Position = Position(350.0, 150.0),
        default_color: str = "#1e293b",
        snapshot: Optional[GraphSnapshot] = None,
    ) -> None:
        self._identity = IdentityMode(identity)
        self._default_position = default_position
        self._default_color = default_color

        self._lock = RLock()
        self._snapshot = GraphSnapshot()
        self._watchers: Dict[uuid.UUID, SnapshotCallback] = {}
        self._last_stamp = 0

        if snapshot is not None:
            self.hydrate(snapshot)

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    @property
    def identity(self) -> IdentityMode:
        return self._identity

    @property
    def snapshot(self) -> GraphSnapshot:
        with self._lock:
            return self._snapshot

    def get_node(self, node_id: str) -> Optional[TableNode]:
        return self.snapshot.node(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self.snapshot.edge(edge_id)

    def edges_for(self, node_id: str) -> tuple[Edge, ...]:
        return self.snapshot.edges_for(node_id)

    def find_edge(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        """First edge joining exactly these endpoints, whatever its id."""
        for e in self.snapshot.edges_for(source):
            if (
                e.source == source
                and e.target == target
                and e.source_handle == source_handle
                and e.target_handle == target_handle
            ):
                return e
        return None

    def column_handles(self) -> list[tuple[str, str]]:
        """
        Selection options for explicit linking, in canvas order.

        Each option is (value, text) with value "<nodeId>|<column>" and
        text "<LABEL>.<column>".
        """
        return [
            (f"{n.id}{HANDLE_SEPARATOR}{c.name}", f"{n.label}.{c.name}")
            for n in self.snapshot.nodes
            for c in n.columns
        ]

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, callback: SnapshotCallback) -> uuid.UUID:
        watch_id = uuid.uuid4()
        with self._lock:
            self._watchers[watch_id] = callback
        return watch_id

    def unsubscribe(self, watch_id: uuid.UUID) -> bool:
        with self._lock:
            return self._watchers.pop(watch_id, None) is not None

    def _notify(self, snapshot: GraphSnapshot) -> None:
        with self._lock:
            watchers = list(self._watchers.items())

        for watch_id, callback in watchers:
            try:
                keep = callback(snapshot)
            except Exception as exc:
                # The mutation already happened; an observer failing must not
                # leave callers thinking it did not.
                logger.exception("Snapshot observer %s raised: %r", watch_id, exc)
                continue
            if keep is False:
                self.unsubscribe(watch_id)

    def _commit(
        self,
        reason: str,
        *,
        nodes: Optional[Iterable[TableNode]] = None,
        edges: Optional[Iterable[Edge]] = None,
        legend: Optional[Iterable[LegendEntry]] = None,
    ) -> GraphSnapshot:
        with self._lock:
            current = self._snapshot
            snapshot = GraphSnapshot(
                tuple(current.nodes if nodes is None else nodes),
                tuple(current.edges if edges is None else edges),
                tuple(current.legend if legend is None else legend),
            )
            self._snapshot = snapshot

        logger.debug(
            "%s -> %d node(s), %d edge(s), %d legend entr(ies)",
            reason,
            len(snapshot.nodes),
            len(snapshot.edges),
            len(snapshot.legend),
        )
        self._notify(snapshot)
        return snapshot

    # ------------------------------------------------------------------ #
    # Nodes
    # ------------------------------------------------------------------ #

    def _next_node_id(self) -> str:
        stamp = time.time_ns() // 1_000_000
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return f"node_{stamp}"

    def create_node(
        self,
        label: str,
        columns: Sequence[Column],
        color: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> Optional[TableNode]:
        """
        Insert a new table node and return it.

        In NAME identity mode a label that is already a node id is skipped.
        """
        with self._lock:
            if self._identity is IdentityMode.NAME:
                node_id = label
                if self._snapshot.has_node(node_id):
                    logger.debug("create_node skipped: id %r already in use", node_id)
                    return None
            else:
                node_id = self._next_node_id()

            node = TableNode(
                id=node_id,
                label=label,
                columns=dedupe(columns),
                color=color or self._default_color,
                position=position or self._default_position,
            )
            self._commit(f"create_node({node_id})", nodes=self._snapshot.nodes + (node,))

        logger.info("Created table %r as %s", label, node_id)
        return node

    def update_node(
        self,
        node_id: str,
        label: str,
        columns: Sequence[Column],
        color: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> Optional[TableNode]:
        """
        Replace a node's payload, keeping its id and position.

        In NAME identity mode a new label means a new id; every edge that
        pointed at the old id is rewritten in the same swap.
        """
        with self._lock:
            snap = self._snapshot
            current = snap.node(node_id)
            if current is None:
                logger.debug("update_node skipped: unknown node %r", node_id)
                return None

            new_id = label if self._identity is IdentityMode.NAME else node_id
            if new_id != node_id and snap.has_node(new_id):
                logger.debug("update_node skipped: %r would collide with %r", node_id, new_id)
                return None

            node = TableNode(
                id=new_id,
                label=label,
                columns=dedupe(columns),
                color=color or current.color,
                position=position or current.position,
            )
            nodes = [node if n.id == node_id else n for n in snap.nodes]

            edges: Optional[list[Edge]] = None
            if new_id != node_id:
                edges = [
                    e.with_endpoints(
                        new_id if e.source == node_id else e.source,
                        new_id if e.target == node_id else e.target,
                    )
                    for e in snap.edges
                ]
            self._commit(f"update_node({node_id})", nodes=nodes, edges=edges)

        if new_id != node_id:
            logger.info("Renamed table %s -> %s", node_id, new_id)
        return node

    def move_node(self, node_id: str, position: Position) -> Optional[TableNode]:
        with self._lock:
            current = self._snapshot.node(node_id)
            if current is None:
                return None
            if current.position == position:
                return current
            node = replace(current, position=position)
            self._commit(
                f"move_node({node_id})",
                nodes=[node if n.id == node_id else n for n in self._snapshot.nodes],
            )
        return node

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        with self._lock:
            snap = self._snapshot
            if not snap.has_node(node_id):
                logger.debug("delete_node skipped: unknown node %r", node_id)
                return False

            edges = [e for e in snap.edges if not e.touches(node_id)]
            dropped = len(snap.edges) - len(edges)
            self._commit(
                f"delete_node({node_id})",
                nodes=[n for n in snap.nodes if n.id != node_id],
                edges=edges,
            )

        logger.info("Deleted table %s and %d edge(s)", node_id, dropped)
        return True

    # ------------------------------------------------------------------ #
    # Edges
    # ------------------------------------------------------------------ #

    def _endpoints_present(self, edge: Edge) -> bool:
        snap = self._snapshot
        return bool(
            edge.source
            and edge.target
            and snap.has_node(edge.source)
            and snap.has_node(edge.target)
        )

    def create_edge(self, edge: Edge) -> Optional[Edge]:
        """
        Insert `edge` with its kind's registered presentation.

        An edge whose id already exists replaces that edge in place.
        """
        with self._lock:
            if not self._endpoints_present(edge):
                logger.debug(
                    "create_edge skipped: endpoints %r -> %r not present",
                    edge.source,
                    edge.target,
                )
                return None

            edge = restyle(edge, edge.kind)
            snap = self._snapshot
            if snap.edge(edge.id) is not None:
                edges = [edge if e.id == edge.id else e for e in snap.edges]
                logger.debug("create_edge replaced existing edge %s", edge.id)
            else:
                edges = list(snap.edges) + [edge]
            self._commit(f"create_edge({edge.id})", edges=edges)

        return edge

    def update_edge(self, edge_id: str, edge: Edge) -> Optional[Edge]:
        """Replace endpoints/kind of an existing edge, keeping its id."""
        with self._lock:
            snap = self._snapshot
            if snap.edge(edge_id) is None:
                logger.debug("update_edge skipped: unknown edge %r", edge_id)
                return None
            if not self._endpoints_present(edge):
                logger.debug("update_edge skipped: endpoints of %r not present", edge_id)
                return None

            updated = restyle(replace(edge, id=edge_id), edge.kind)
            self._commit(
                f"update_edge({edge_id})",
                edges=[updated if e.id == edge_id else e for e in snap.edges],
            )
        return updated

    def delete_edge(self, edge_id: str) -> bool:
        with self._lock:
            snap = self._snapshot
            if snap.edge(edge_id) is None:
                return False
            self._commit(
                f"delete_edge({edge_id})",
                edges=[e for e in snap.edges if e.id != edge_id],
            )
        return True

    # ------------------------------------------------------------------ #
    # Legend
    # ------------------------------------------------------------------ #

    def add_legend_entry(self, name: str, hex: str, description: str = "") -> LegendEntry:
        entry = LegendEntry(
            id=f"legend_{uuid.uuid4().hex[:12]}",
            name=name,
            hex=hex,
            description=description,
        )
        with self._lock:
            self._commit("add_legend_entry", legend=self._snapshot.legend + (entry,))
        return entry

    def update_legend_entry(
        self,
        entry_id: str,
        *,
        name: Optional[str] = None,
        hex: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[LegendEntry]:
        with self._lock:
            legend = self._snapshot.legend
            current = next((e for e in legend if e.id == entry_id), None)
            if current is None:
                return None

            entry = LegendEntry(
                id=entry_id,
                name=current.name if name is None else name,
                hex=current.hex if hex is None else hex,
                description=current.description if description is None else description,
            )
            self._commit(
                f"update_legend_entry({entry_id})",
                legend=[entry if e.id == entry_id else e for e in legend],
            )
        return entry

    def remove_legend_entry(self, entry_id: str) -> bool:
        with self._lock:
            legend = self._snapshot.legend
            if not any(e.id == entry_id for e in legend):
                return False
            self._commit(
                f"remove_legend_entry({entry_id})",
                legend=[e for e in legend if e.id != entry_id],
            )
        return True

    def set_legend(self, entries: Iterable[LegendEntry]) -> None:
        self._commit("set_legend", legend=entries)

    # ------------------------------------------------------------------ #
    # Bulk
    # ------------------------------------------------------------------ #

    def hydrate(self, snapshot: GraphSnapshot) -> GraphSnapshot:
        """
        Replace the whole state with `snapshot` (e.g. loaded from storage).

        Duplicate node ids keep their first occurrence; edges whose
        endpoints are not among the loaded nodes are dropped.
        """
        with self._lock:
            seen: set[str] = set()
            nodes: list[TableNode] = []
            for node in snapshot.nodes:
                if node.id in seen:
                    logger.warning("Dropping duplicate node id %r on hydrate", node.id)
                    continue
                seen.add(node.id)
                nodes.append(replace(node, columns=dedupe(node.columns)))

                match = _NODE_ID_RE.match(node.id)
                if match:
                    self._last_stamp = max(self._last_stamp, int(match.group(1)))

            edges: list[Edge] = []
            for edge in snapshot.edges:
                if edge.source in seen and edge.target in seen:
                    edges.append(restyle(edge, edge.kind))
                else:
                    logger.warning(
                        "Dropping dangling edge %s (%s -> %s) on hydrate",
                        edge.id,
                        edge.source,
                        edge.target,
                    )

            return self._commit(
                "hydrate",
                nodes=nodes,
                edges=edges,
                legend=snapshot.legend,
            )

    def clear(self) -> GraphSnapshot:
        return self._commit("clear", nodes=(), edges=(), legend=())

    def __repr__(self) -> str:
        snap = self.snapshot
        return (
            f"GraphStore(identity={self._identity.value}, "
            f"nodes={len(snap.nodes)}, edges={len(snap.edges)}, "
            f"legend={len(snap.legend)})"
        )
