from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional

from .config import AppSettings, get_settings
from .export import ExportError, ExportFormat, ExportResult, ExportSerializer, ExportService, ViewRenderer
from .graph import (
    CardinalityKind,
    Edge,
    GraphSnapshot,
    GraphStore,
    Grammar,
    LegendEntry,
    Position,
    RelationshipBuilder,
    TableNode,
    parse,
    render,
)
from .graph.relationships import Endpoint
from .log import configure_logging, getLogger
from .storage import BoundNode, KeyValueStore, PersistenceAdapter, create_store

logger = getLogger(__name__)


@dataclass(slots=True)
class TableForm:
    """Working state of the table panel."""

    label: str = ""
    schema_text: str = ""
    color: str = "#1e293b"
    editing_node_id: Optional[str] = None


class DiagramEditor:
    """
    User-facing operations of the lineage editor.

    Wires GraphStore (state), PersistenceAdapter (durability), the
    RelationshipBuilder (edge panel) and the ExportService together, and
    acts as the NodeDispatch the canvas nodes call for edit/delete.

    Construction performs the startup sequence: load from storage,
    hydrate the graph, attach saving, bind this editor as dispatch.
    """

    def __init__(
        self,
        graph: GraphStore,
        persistence: PersistenceAdapter,
        exports: ExportService,
        *,
        grammar: Grammar | str = Grammar.LINES,
        default_color: str = "#1e293b",
    ) -> None:
        self._graph = graph
        self._persistence = persistence
        self._exports = exports
        self._builder = RelationshipBuilder(graph)

        self.grammar = Grammar(grammar)
        self._default_color = default_color
        self.form = TableForm(color=default_color)

        persistence.restore(graph, self)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AppSettings] = None,
        *,
        renderer: Optional[ViewRenderer] = None,
        store: Optional[KeyValueStore] = None,
    ) -> DiagramEditor:
        settings = settings or get_settings()
        configure_logging(settings.logging)

        canvas = settings.canvas
        graph = GraphStore(
            identity=canvas.identity,
            default_position=Position(canvas.default_x, canvas.default_y),
            default_color=canvas.default_color,
        )
        persistence = PersistenceAdapter(store if store is not None else create_store(settings))
        exports = ExportService(
            graph,
            ExportSerializer(renderer, settings=settings.export),
            max_workers=settings.export.max_workers,
        )
        return cls(
            graph,
            persistence,
            exports,
            grammar=canvas.grammar,
            default_color=canvas.default_color,
        )

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    @property
    def graph(self) -> GraphStore:
        return self._graph

    @property
    def persistence(self) -> PersistenceAdapter:
        return self._persistence

    @property
    def relationships(self) -> RelationshipBuilder:
        return self._builder

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._graph.snapshot

    @property
    def nodes(self) -> tuple[BoundNode, ...]:
        """Canvas nodes with edit/delete bound to this editor."""
        return self._persistence.bound_nodes()

    # ------------------------------------------------------------------ #
    # Tables
    # ------------------------------------------------------------------ #

    def submit_table(
        self,
        label: str,
        schema_text: str,
        color: Optional[str] = None,
    ) -> Optional[TableNode]:
        """
        Create a table, or update the one being edited.

        Empty label, empty text or text without columns is a no-op.
        """
        label = (label or "").strip()
        columns = parse(schema_text, self.grammar)
        if not label or not columns:
            logger.debug("submit_table skipped: label=%r columns=%d", label, len(columns))
            return None

        color = color or self.form.color
        editing = self.form.editing_node_id
        if editing is not None:
            node = self._graph.update_node(editing, label, columns, color)
            if node is not None and node.id != editing:
                self._builder.rename_node(editing, node.id)
        else:
            node = self._graph.create_node(label, columns, color)

        if node is not None:
            self.form = TableForm(color=self._default_color)
        return node

    def begin_edit(self, node_id: str) -> Optional[TableForm]:
        """Load a table into the form, with clean schema text."""
        node = self._graph.get_node(node_id)
        if node is None:
            return None
        self.form = TableForm(
            label=node.label,
            schema_text=render(node.columns, self.grammar),
            color=node.color,
            editing_node_id=node.id,
        )
        return self.form

    def cancel_edit(self) -> None:
        self.form = TableForm(color=self._default_color)

    def delete_table(self, node_id: str) -> bool:
        if not self._graph.delete_node(node_id):
            return False
        if self.form.editing_node_id == node_id:
            self.cancel_edit()
        editing_edge = self._builder.editing_edge_id
        if editing_edge is not None and self._graph.get_edge(editing_edge) is None:
            self._builder.clear_selection()
        return True

    def move_table(self, node_id: str, x: float, y: float) -> Optional[TableNode]:
        return self._graph.move_node(node_id, Position(x, y))

    # NodeDispatch
    def edit(self, node_id: str) -> Optional[TableForm]:
        return self.begin_edit(node_id)

    def delete(self, node_id: str) -> bool:
        return self.delete_table(node_id)

    # ------------------------------------------------------------------ #
    # Relationships
    # ------------------------------------------------------------------ #

    def column_options(self) -> list[tuple[str, str]]:
        return self._graph.column_handles()

    def set_relationship_kind(self, kind: CardinalityKind | str) -> CardinalityKind:
        return self._builder.set_kind(kind)

    def link(
        self,
        source: Endpoint | str | None,
        target: Endpoint | str | None,
        kind: CardinalityKind | str | None = None,
    ) -> Optional[Edge]:
        return self._builder.link(source, target, kind)

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        return self._builder.connect(source, target, source_handle, target_handle)

    def select_edge(self, edge_id: str) -> Optional[Edge]:
        return self._builder.select_edge(edge_id)

    def save_relationship(
        self,
        source: Endpoint | str | None = None,
        target: Endpoint | str | None = None,
        kind: CardinalityKind | str | None = None,
    ) -> Optional[Edge]:
        """
        Save the relationship panel; given arguments override the current
        selection first.
        """
        if source is not None:
            self._builder.source = Endpoint.parse(source)
        if target is not None:
            self._builder.target = Endpoint.parse(target)
        if kind is not None:
            self._builder.set_kind(kind)
        return self._builder.save()

    def delete_relationship(self, edge_id: str) -> bool:
        deleted = self._graph.delete_edge(edge_id)
        if deleted and self._builder.editing_edge_id == edge_id:
            self._builder.clear_selection()
        return deleted

    # ------------------------------------------------------------------ #
    # Legend
    # ------------------------------------------------------------------ #

    def add_legend_entry(self, name: str, hex: str, description: str = "") -> LegendEntry:
        return self._graph.add_legend_entry(name, hex, description)

    def update_legend_entry(self, entry_id: str, **changes: str) -> Optional[LegendEntry]:
        return self._graph.update_legend_entry(entry_id, **changes)

    def remove_legend_entry(self, entry_id: str) -> bool:
        return self._graph.remove_legend_entry(entry_id)

    # ------------------------------------------------------------------ #
    # Export / import / reset
    # ------------------------------------------------------------------ #

    def export(self, fmt: ExportFormat | str) -> Future[Optional[ExportResult]]:
        return self._exports.submit(fmt)

    def import_json(self, text: str | bytes) -> Optional[GraphSnapshot]:
        """Replace the diagram with a structural export; bad input is a no-op."""
        try:
            snapshot = self._exports.serializer.from_json(text)
        except ExportError as exc:
            logger.warning("Import skipped: %s", exc)
            return None
        self.cancel_edit()
        self._builder.clear_selection()
        return self._graph.hydrate(snapshot)

    def reset(self, confirm: Callable[[], bool]) -> bool:
        if not self._persistence.reset(confirm):
            return False
        self.cancel_edit()
        self._builder.clear_selection()
        return True

    def close(self) -> None:
        self._exports.close()
        self._persistence.detach()
        self._persistence.store.close()
