"""
lineagepro.graph
================

Diagram data model.

Public API:

- Column, TableNode, Edge, LegendEntry, GraphSnapshot : immutable value types.
- CardinalityKind      : relationship multiplicity kinds.
- Grammar, parse, render : schema text <-> columns.
- GraphStore           : the single owner of nodes, edges and legend.
- RelationshipBuilder  : explicit links, drag-connect and edge editing.
- presentation_for     : cardinality kind -> marker/line presentation.

Record conversion (lineagepro.graph.records) is used by storage and export.
"""

from __future__ import annotations

from .model import (
    DEFAULT_LEGEND,
    CardinalityKind,
    Column,
    Edge,
    EdgePresentation,
    GraphSnapshot,
    LegendEntry,
    Marker,
    Position,
    TableNode,
)
from .parser import Grammar, parse, render
from .presentation import PRESENTATIONS, presentation_for
from .relationships import Endpoint, RelationshipBuilder
from .store import GraphStore, IdentityMode

__all__ = [
    "DEFAULT_LEGEND",
    "CardinalityKind",
    "Column",
    "Edge",
    "EdgePresentation",
    "GraphSnapshot",
    "LegendEntry",
    "Marker",
    "Position",
    "TableNode",
    "Grammar",
    "parse",
    "render",
    "PRESENTATIONS",
    "presentation_for",
    "Endpoint",
    "RelationshipBuilder",
    "GraphStore",
    "IdentityMode",
]
