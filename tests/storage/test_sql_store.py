from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from lineagepro.graph.model import Column
from lineagepro.graph.store import GraphStore
from lineagepro.storage.persistence import PersistenceAdapter
from lineagepro.storage.sql import SqlKeyValueStore


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'lineage.db'}"


@pytest.fixture
def store(db_url: str):
    s = SqlKeyValueStore.from_url(db_url)
    yield s
    s.close()


def test_table_is_created(store: SqlKeyValueStore) -> None:
    assert "kv_store" in inspect(store.engine).get_table_names()


def test_get_missing_returns_none(store: SqlKeyValueStore) -> None:
    assert store.get("nodes") is None


def test_set_get_and_overwrite(store: SqlKeyValueStore) -> None:
    store.set("nodes", "[]")
    assert store.get("nodes") == "[]"

    store.set("nodes", '[{"id":"a"}]')
    assert store.get("nodes") == '[{"id":"a"}]'


def test_delete_reports_presence(store: SqlKeyValueStore) -> None:
    store.set("edges", "[]")

    assert store.delete("edges") is True
    assert store.delete("edges") is False
    assert store.get("edges") is None


def test_namespaces_share_one_table(db_url: str) -> None:
    engine = create_engine(db_url)
    left = SqlKeyValueStore(engine, namespace="left")
    right = SqlKeyValueStore(engine, namespace="right")

    left.set("nodes", "L")
    right.set("nodes", "R")

    assert left.get("nodes") == "L"
    assert right.get("nodes") == "R"
    engine.dispose()


def test_diagram_survives_reopening(db_url: str) -> None:
    first = SqlKeyValueStore.from_url(db_url)
    graph = GraphStore()
    PersistenceAdapter(first).attach(graph)
    graph.create_node("ORDERS", (Column("id", True),))
    saved = graph.snapshot
    first.close()

    second = SqlKeyValueStore.from_url(db_url)
    try:
        assert PersistenceAdapter(second).load().nodes == saved.nodes
    finally:
        second.close()
