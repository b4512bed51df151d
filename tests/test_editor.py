from __future__ import annotations

import json

import pytest

from lineagepro import DiagramEditor
from lineagepro.config import AppSettings
from lineagepro.graph.model import DEFAULT_LEGEND, CardinalityKind, Column
from lineagepro.storage.memory import InMemoryStore
from lineagepro.storage.persistence import NODES_KEY


def make_settings(**canvas) -> AppSettings:
    return AppSettings(storage={"backend": "memory"}, canvas=canvas)


@pytest.fixture
def kv() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def editor(kv: InMemoryStore):
    ed = DiagramEditor.from_settings(make_settings(), store=kv)
    yield ed
    ed.close()


def table(editor: DiagramEditor, label: str, text: str = "id (pk)\nname"):
    node = editor.submit_table(label, text)
    assert node is not None
    return node


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def test_fresh_start_is_empty_with_default_legend(editor: DiagramEditor) -> None:
    assert editor.snapshot.nodes == ()
    assert editor.snapshot.legend == DEFAULT_LEGEND
    assert editor.persistence.binding_generation == 1


def test_reload_restores_the_same_diagram(editor: DiagramEditor, kv: InMemoryStore) -> None:
    a = table(editor, "CUSTOMERS")
    b = table(editor, "ORDERS", "id (pk)\ncustomer_id")
    editor.link(f"{b.id}|customer_id", f"{a.id}|id", CardinalityKind.MANY_TO_ONE)
    before = editor.snapshot

    reopened = DiagramEditor.from_settings(make_settings(), store=kv)
    try:
        assert reopened.snapshot == before
        assert [n.id for n in reopened.nodes] == [a.id, b.id]
    finally:
        reopened.close()


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def test_submit_creates_table_at_default_position(editor: DiagramEditor) -> None:
    node = table(editor, "  CUSTOMERS  ", "id (pk), name")

    assert node.label == "CUSTOMERS"
    assert node.position.x == 350 and node.position.y == 150
    # Line grammar by default: one entry with the comma stripped.
    assert node.columns == (Column("id  name", True),)


def test_comma_grammar_from_settings(kv: InMemoryStore) -> None:
    editor = DiagramEditor.from_settings(make_settings(grammar="commas"), store=kv)
    try:
        node = editor.submit_table("T", "id (pk), name, created_at")
    finally:
        editor.close()

    assert node is not None
    assert [c.name for c in node.columns] == ["id", "name", "created_at"]


@pytest.mark.parametrize("label, text", [("", "id"), ("   ", "id"), ("T", ""), ("T", "\n \n")])
def test_submit_without_label_or_columns_is_noop(editor: DiagramEditor, label: str, text: str) -> None:
    before = editor.snapshot

    assert editor.submit_table(label, text) is None
    assert editor.snapshot is before


def test_edit_then_submit_updates_in_place(editor: DiagramEditor) -> None:
    node = table(editor, "ORDERS", "id (PK) INT\ntotal DECIMAL(10,2)")

    form = editor.begin_edit(node.id)
    assert form is not None
    assert form.schema_text == "id (pk)\ntotal"
    assert form.editing_node_id == node.id

    updated = editor.submit_table("ORDERS_V2", form.schema_text + "\nstatus")

    assert updated is not None
    assert updated.id == node.id
    assert [c.name for c in updated.columns] == ["id", "total", "status"]
    assert len(editor.snapshot.nodes) == 1
    assert editor.form.editing_node_id is None


def test_cancel_edit_creates_new_table_on_next_submit(editor: DiagramEditor) -> None:
    node = table(editor, "ORDERS")
    editor.begin_edit(node.id)
    editor.cancel_edit()

    other = table(editor, "ORDERS_COPY")

    assert other.id != node.id
    assert len(editor.snapshot.nodes) == 2


def test_delete_customers_cascades(editor: DiagramEditor) -> None:
    customers = table(editor, "CUSTOMERS")
    orders = table(editor, "ORDERS")
    invoices = table(editor, "INVOICES")
    editor.link(orders.id, customers.id)
    editor.link(invoices.id, customers.id)
    editor.link(invoices.id, orders.id)

    assert editor.delete_table(customers.id) is True

    snap = editor.snapshot
    assert [n.label for n in snap.nodes] == ["ORDERS", "INVOICES"]
    assert len(snap.edges) == 1
    assert not any(e.touches(customers.id) for e in snap.edges)


def test_bound_nodes_dispatch_back_to_editor(editor: DiagramEditor) -> None:
    table(editor, "CUSTOMERS")
    table(editor, "ORDERS")

    first, second = editor.nodes
    form = first.edit()
    assert form is not None and form.label == "CUSTOMERS"

    assert second.delete() is True
    assert [n.label for n in editor.snapshot.nodes] == ["CUSTOMERS"]


def test_deleting_the_edited_table_clears_the_form(editor: DiagramEditor) -> None:
    node = table(editor, "ORDERS")
    editor.begin_edit(node.id)

    editor.delete_table(node.id)

    assert editor.form.editing_node_id is None


def test_move_table(editor: DiagramEditor) -> None:
    node = table(editor, "ORDERS")

    moved = editor.move_table(node.id, 10, 20)

    assert moved is not None
    assert (moved.position.x, moved.position.y) == (10, 20)


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


def test_column_options_list_every_column(editor: DiagramEditor) -> None:
    node = table(editor, "ORDERS", "id (pk)\ncustomer_id")

    assert editor.column_options() == [
        (f"{node.id}|id", "ORDERS.id"),
        (f"{node.id}|customer_id", "ORDERS.customer_id"),
    ]


def test_relationship_panel_round_trip(editor: DiagramEditor) -> None:
    a = table(editor, "CUSTOMERS")
    b = table(editor, "ORDERS")

    created = editor.save_relationship(f"{b.id}|name", f"{a.id}|id", "oneToMany")
    assert created is not None

    editor.select_edge(created.id)
    changed = editor.save_relationship(kind=CardinalityKind.IDENTIFYING)

    assert changed is not None
    assert changed.id == created.id
    assert editor.snapshot.edge(created.id).kind is CardinalityKind.IDENTIFYING  # type: ignore[union-attr]

    assert editor.delete_relationship(created.id) is True
    assert editor.snapshot.edges == ()


def test_drag_connect_uses_selected_kind(editor: DiagramEditor) -> None:
    a = table(editor, "A")
    b = table(editor, "B")
    editor.set_relationship_kind("manyToMany")

    edge = editor.connect(a.id, b.id)

    assert edge is not None
    assert edge.kind is CardinalityKind.MANY_TO_MANY


# ---------------------------------------------------------------------------
# Legend, import, reset
# ---------------------------------------------------------------------------


def test_legend_edits_persist(editor: DiagramEditor, kv: InMemoryStore) -> None:
    entry = editor.add_legend_entry("Platinum", "#e5e4e2", "certified")
    editor.update_legend_entry(entry.id, description="certified marts")
    assert editor.remove_legend_entry(DEFAULT_LEGEND[0].id) is True

    reopened = DiagramEditor.from_settings(make_settings(), store=kv)
    legend = reopened.snapshot.legend
    reopened.close()

    assert legend[-1].description == "certified marts"
    assert DEFAULT_LEGEND[0].id not in [e.id for e in legend]


def test_import_json_replaces_diagram(editor: DiagramEditor) -> None:
    table(editor, "OLD")
    exported = editor.export("json").result(timeout=5)
    assert exported is not None

    editor.submit_table("NEW", "id")
    restored = editor.import_json(exported.data)

    assert restored is not None
    assert [n.label for n in editor.snapshot.nodes] == ["OLD"]


def test_bad_import_is_noop(editor: DiagramEditor) -> None:
    table(editor, "KEEP")
    before = editor.snapshot

    assert editor.import_json("{broken") is None
    assert editor.snapshot is before


def test_reset(editor: DiagramEditor, kv: InMemoryStore) -> None:
    table(editor, "ORDERS")

    assert editor.reset(lambda: False) is False
    assert len(editor.snapshot.nodes) == 1

    assert editor.reset(lambda: True) is True
    assert editor.snapshot.is_empty
    assert json.loads(kv.data[NODES_KEY]) == []


def test_rename_keeps_relationship_selection_usable(kv: InMemoryStore) -> None:
    editor = DiagramEditor.from_settings(make_settings(identity="name"), store=kv)
    try:
        table(editor, "CUSTOMERS")
        table(editor, "ORDERS", "id (pk)\ncustomer_id")
        created = editor.save_relationship("ORDERS|customer_id", "CUSTOMERS|id")
        assert created is not None
        editor.select_edge(created.id)

        editor.begin_edit("ORDERS")
        renamed = editor.submit_table("SALES", "id (pk)\ncustomer_id")
        assert renamed is not None and renamed.id == "SALES"

        saved = editor.save_relationship(kind=CardinalityKind.MANY_TO_ONE)
    finally:
        editor.close()

    assert saved is not None
    assert saved.id == created.id
    assert (saved.source, saved.kind) == ("SALES", CardinalityKind.MANY_TO_ONE)
