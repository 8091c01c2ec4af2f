"""Patch-field catalogs and defaults shared by the figure model.

This module centralizes the closed set of fields each update instruction may
carry, their alias resolution rules, per-kind payload schemas, and animation
defaults. Keeping these contracts outside the protocol code gives tests a
single place to lock patch semantics, and lets widgets and exporters list the
accepted options without importing the protocol itself.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .figure_errors import PatchError

TRACE_PATCH_OPTIONS: dict[str, str] = {
    "visible": "Trace visibility: True, False, or 'legendonly'. Lists are figure-positional.",
    "kind": "Chart-type tag (bar, line, scatter, box, histogram, heatmap, pie, table).",
    "type": "Alias for kind.",
    "name": "Legend label.",
    "legend_group": "Legend group key; traces sharing it toggle together in renderers.",
    "legendgroup": "Alias for legend_group.",
    "opacity": "Trace opacity from 0.0 (fully transparent) to 1.0 (fully opaque).",
    "color": "Primary trace color (marker/line/bar fill).",
    "payload": "Full replacement payload mapping (or one mapping per addressed trace).",
    "x": "Per-trace x coordinates (one array per addressed trace).",
    "y": "Per-trace y coordinates (one array per addressed trace).",
    "z": "Per-trace 2-D values for heatmaps (one matrix per addressed trace).",
    "text": "Per-trace point labels.",
    "size": "Per-trace marker sizes (scatter only).",
    "labels": "Per-trace slice labels (pie only).",
    "values": "Per-trace slice values (pie only).",
    "header": "Per-trace column headers (table only).",
    "cells": "Per-trace column values (table only).",
}

TRACE_PATCH_ALIASES: dict[str, str] = {
    "type": "kind",
    "legendgroup": "legend_group",
}

PAYLOAD_FIELDS: frozenset[str] = frozenset(
    {"x", "y", "z", "text", "size", "labels", "values", "header", "cells"}
)

# kind -> (required fields, optional fields)
PAYLOAD_SCHEMAS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "bar": (frozenset({"x", "y"}), frozenset({"text"})),
    "line": (frozenset({"x", "y"}), frozenset({"text"})),
    "scatter": (frozenset({"x", "y"}), frozenset({"text", "size"})),
    "box": (frozenset({"y"}), frozenset({"x"})),
    "histogram": (frozenset({"x"}), frozenset()),
    "heatmap": (frozenset({"z"}), frozenset({"x", "y"})),
    "pie": (frozenset({"labels", "values"}), frozenset()),
    "table": (frozenset({"header", "cells"}), frozenset()),
}

AXISLESS_KINDS: frozenset[str] = frozenset({"pie", "table"})

LAYOUT_PATCH_OPTIONS: dict[str, str] = {
    "title": "Figure title text.",
    "font": "Global font mapping with family, size, color.",
    "showlegend": "Whether renderers draw a legend.",
    "legend": "Legend placement mapping with orientation, x, y.",
    "width": "Figure width in pixels.",
    "height": "Figure height in pixels.",
    "annotations": "Replacement sequence of annotations.",
    "menus": "Replacement sequence of menu bindings.",
    "sliders": "Replacement sequence of slider bindings.",
    "<axis id>": "Axis mapping (x, x2, y, y3, ...; aliases xaxis, yaxis3) with domain, range, title, anchor, overlaying, matches.",
}

# Plotly layout keys accepted in place of the canonical field name.
LAYOUT_PATCH_ALIASES: dict[str, str] = {"updatemenus": "menus"}

AXIS_FIELDS: frozenset[str] = frozenset(
    {"domain", "range", "title", "anchor", "overlaying", "matches"}
)
FONT_FIELDS: frozenset[str] = frozenset({"family", "size", "color"})
LEGEND_FIELDS: frozenset[str] = frozenset({"orientation", "x", "y"})

DEFAULT_FONT: dict[str, Any] = {"family": "Arial", "size": 12, "color": "#444"}

DEFAULT_TRANSITION_MS = 500.0
DEFAULT_FRAME_MS = 500.0
DEFAULT_EASING = "cubic-in-out"

_EASING_BASES = ("quad", "cubic", "sin", "exp", "circle", "elastic", "back", "bounce")
EASINGS: frozenset[str] = frozenset(
    ["linear"]
    + [base for base in _EASING_BASES]
    + [f"{base}-{suffix}" for base in _EASING_BASES for suffix in ("in", "out", "in-out")]
)

# Intersections thinner than this are treated as shared edges, not overlap.
DOMAIN_TOLERANCE = 1e-9


def resolve_trace_patch_aliases(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``patch`` with aliases rewritten to canonical field names.

    Raises
    ------
    PatchError
        If a field is unknown, or an alias and its canonical field are both
        provided with different values.
    """
    resolved: dict[str, Any] = {}
    for key, value in patch.items():
        if key not in TRACE_PATCH_OPTIONS:
            raise PatchError(
                f"Unknown restyle field {key!r}. Supported fields: {', '.join(sorted(TRACE_PATCH_OPTIONS))}"
            )
        canonical = TRACE_PATCH_ALIASES.get(key, key)
        if canonical in resolved and resolved[canonical] != value:
            raise PatchError(
                f"restyle received both {canonical}= and an alias with different values; use only one."
            )
        resolved[canonical] = value
    return resolved


__all__ = [
    "TRACE_PATCH_OPTIONS",
    "TRACE_PATCH_ALIASES",
    "PAYLOAD_FIELDS",
    "PAYLOAD_SCHEMAS",
    "AXISLESS_KINDS",
    "LAYOUT_PATCH_OPTIONS",
    "LAYOUT_PATCH_ALIASES",
    "AXIS_FIELDS",
    "FONT_FIELDS",
    "LEGEND_FIELDS",
    "DEFAULT_FONT",
    "DEFAULT_TRANSITION_MS",
    "DEFAULT_FRAME_MS",
    "DEFAULT_EASING",
    "EASINGS",
    "DOMAIN_TOLERANCE",
    "resolve_trace_patch_aliases",
]
