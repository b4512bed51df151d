from __future__ import annotations

"""Cardinality kind -> edge presentation registry."""

from dataclasses import replace
from types import MappingProxyType
from typing import Mapping

from .model import CardinalityKind, Edge, EdgePresentation, Marker

# Marker type names understood by the canvas.
ARROW = "arrow"
ARROW_CLOSED = "arrowclosed"

BLUE = "#3b82f6"

DEFAULT_KIND = CardinalityKind.ONE_TO_ONE

# Direct, closed-arrow line; also the fallback for unknown kinds.
DEFAULT_PRESENTATION = EdgePresentation(
    marker_end=Marker(ARROW_CLOSED, BLUE),
    stroke=BLUE,
)

PRESENTATIONS: Mapping[CardinalityKind, EdgePresentation] = MappingProxyType(
    {
        CardinalityKind.ONE_TO_ONE: DEFAULT_PRESENTATION,
        CardinalityKind.ONE_TO_MANY: EdgePresentation(
            marker_end=Marker(ARROW, BLUE),
            stroke=BLUE,
        ),
        CardinalityKind.MANY_TO_ONE: EdgePresentation(
            marker_start=Marker(ARROW, "#6366f1"),
            marker_end=Marker(ARROW_CLOSED, "#6366f1"),
            stroke="#6366f1",
        ),
        CardinalityKind.MANY_TO_MANY: EdgePresentation(
            marker_start=Marker(ARROW, "#8b5cf6"),
            marker_end=Marker(ARROW, "#8b5cf6"),
            stroke="#8b5cf6",
        ),
        CardinalityKind.IDENTIFYING: EdgePresentation(
            marker_end=Marker(ARROW_CLOSED, "#0f172a"),
            stroke="#0f172a",
            stroke_width=3.0,
            animated=False,
        ),
        CardinalityKind.NON_IDENTIFYING: EdgePresentation(
            marker_end=Marker(ARROW_CLOSED, "#64748b"),
            stroke="#64748b",
            dash="6 4",
            animated=False,
        ),
        CardinalityKind.OPTIONAL: EdgePresentation(
            marker_end=Marker(ARROW, "#94a3b8"),
            stroke="#94a3b8",
            dash="2 4",
        ),
    }
)


def resolve_kind(kind: object) -> CardinalityKind:
    """Map anything kind-like onto a registered kind, defaulting to 1:1."""
    return CardinalityKind.coerce(kind) or DEFAULT_KIND


def presentation_for(kind: object) -> EdgePresentation:
    resolved = CardinalityKind.coerce(kind)
    if resolved is None:
        return DEFAULT_PRESENTATION
    return PRESENTATIONS.get(resolved, DEFAULT_PRESENTATION)


def restyle(edge: Edge, kind: object) -> Edge:
    """Return `edge` carrying `kind` and that kind's full presentation."""
    resolved = resolve_kind(kind)
    return replace(edge, kind=resolved, presentation=presentation_for(resolved))
