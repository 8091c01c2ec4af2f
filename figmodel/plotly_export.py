"""Plotly export adapter.

Converts a :class:`~figmodel.FigureSnapshot.FigureSnapshot` into a Plotly
figure dictionary (``data``/``layout``/``frames``) or a
``plotly.graph_objects.Figure``. This is the boundary consumed by rendering
and export collaborators; it performs no drawing and no file I/O.

Mapping notes
-------------
- ``line`` and ``scatter`` both export as Plotly ``scatter`` traces with
  ``mode="lines"`` / ``mode="markers"``.
- Axis ids become Plotly layout keys (``x`` -> ``xaxis``, ``y2`` ->
  ``yaxis2``); menus export as ``updatemenus``.
- Menu and slider instructions are rewritten into Plotly attribute names.
  Figure-positional ``visible`` lists are narrowed to the addressed traces,
  which is how Plotly's ``restyle`` reads them.
- Restyled ``color`` targets ``line.color`` on line traces and
  ``marker.color`` elsewhere when the figure's trace kinds are known.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

import plotly.graph_objects as go

from .FigureSnapshot import FigureSnapshot
from .figure_axes import Axis, parse_axis_key, plotly_axis_key
from .figure_frames import Frame, overlay_frame
from .figure_instructions import Animate, Instruction, Relayout, Restyle, Update, plain_value
from .figure_layout import Layout
from .figure_menu import MenuBinding, SliderBinding
from .figure_trace import Trace, TraceKind

_PLOTLY_TYPES = {
    TraceKind.BAR: ("bar", None),
    TraceKind.LINE: ("scatter", "lines"),
    TraceKind.SCATTER: ("scatter", "markers"),
    TraceKind.BOX: ("box", None),
    TraceKind.HISTOGRAM: ("histogram", None),
    TraceKind.HEATMAP: ("heatmap", None),
    TraceKind.PIE: ("pie", None),
    TraceKind.TABLE: ("table", None),
}

# Kinds whose Plotly trace has no marker color / legend grouping.
_NO_COLOR = {TraceKind.HEATMAP, TraceKind.PIE, TraceKind.TABLE}
_NO_LEGEND_STYLE = {TraceKind.TABLE}

_RESTYLE_FIELD_NAMES = {
    "legend_group": "legendgroup",
    "size": "marker.size",
    "header": "header.values",
    "cells": "cells.values",
}


def _payload_to_plotly(trace: Trace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name, arr in trace.payload.items():
        values = arr.tolist()
        if name == "size":
            out.setdefault("marker", {})["size"] = values
        elif trace.kind is TraceKind.TABLE:
            out[name] = {"values": values}
        else:
            out[name] = values
    return out


def trace_to_plotly(trace: Trace) -> dict[str, Any]:
    """Return the Plotly trace dictionary for one trace."""
    plotly_type, mode = _PLOTLY_TYPES[trace.kind]
    out: dict[str, Any] = {"type": plotly_type, "visible": trace.visible}
    if mode is not None:
        out["mode"] = mode
    if trace.name:
        out["name"] = trace.name
    out.update(_payload_to_plotly(trace))

    if trace.kind not in _NO_LEGEND_STYLE:
        if trace.legend_group is not None:
            out["legendgroup"] = trace.legend_group
        if trace.opacity is not None:
            out["opacity"] = trace.opacity
    if trace.color is not None and trace.kind not in _NO_COLOR:
        key = "line" if trace.kind is TraceKind.LINE else "marker"
        out.setdefault(key, {})["color"] = trace.color

    if trace.axis_ref is not None:
        out["xaxis"], out["yaxis"] = trace.axis_ref
    elif trace.domain is not None:
        out["domain"] = trace.domain.to_dict()
    return out


def _axis_to_plotly(axis: Axis) -> dict[str, Any]:
    out: dict[str, Any] = {"domain": list(axis.domain), "anchor": axis.anchor}
    if axis.range is not None:
        out["range"] = list(axis.range)
    if axis.title:
        out["title"] = {"text": axis.title}
    if axis.overlaying is not None:
        out["overlaying"] = axis.overlaying
    if axis.matches is not None:
        out["matches"] = axis.matches
    return out


def _color_keys(
    patch: Mapping[str, Any], trace_indices: Optional[tuple[int, ...]], kinds: Optional[tuple[TraceKind, ...]]
) -> list[str]:
    if kinds is None:
        return ["marker.color"]
    addressed = [kinds[i] for i in (range(len(kinds)) if trace_indices is None else trace_indices)]
    if "kind" in patch:
        new = plain_value(patch["kind"])
        new = new if isinstance(new, list) else [new] * len(addressed)
        addressed = [TraceKind.coerce(k) for k in new]
    keys = []
    if any(k is TraceKind.LINE for k in addressed):
        keys.append("line.color")
    if any(k is not TraceKind.LINE for k in addressed) or not keys:
        keys.insert(0, "marker.color")
    return keys


def _restyle_patch_to_plotly(
    patch: Mapping[str, Any],
    trace_indices: Optional[tuple[int, ...]],
    kinds: Optional[tuple[TraceKind, ...]] = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in patch.items():
        value = plain_value(value)
        if key == "visible" and isinstance(value, list) and trace_indices is not None:
            out["visible"] = [value[i] for i in trace_indices]
        elif key == "color":
            for color_key in _color_keys(patch, trace_indices, kinds):
                out[color_key] = value
        elif key == "kind":
            new_kinds = value if isinstance(value, list) else [value]
            pairs = [_PLOTLY_TYPES[TraceKind.coerce(k)] for k in new_kinds]
            types = [p[0] for p in pairs]
            modes = [p[1] for p in pairs]
            out["type"] = types if isinstance(value, list) else types[0]
            if any(m is not None for m in modes):
                out["mode"] = modes if isinstance(value, list) else modes[0]
        elif key == "payload":
            payloads = value if isinstance(value, list) else [value]
            fields = sorted({name for payload in payloads for name in payload})
            for name in fields:
                out[_RESTYLE_FIELD_NAMES.get(name, name)] = [payload.get(name) for payload in payloads]
        else:
            out[_RESTYLE_FIELD_NAMES.get(key, key)] = value
    return out


def _layout_key_to_plotly(key: str) -> str:
    head, _, rest = key.partition(".")
    axis = parse_axis_key(head)
    if axis is not None:
        head = plotly_axis_key(axis)
        if rest == "title":
            rest = "title.text"
    elif head == "menus":
        head = "updatemenus"
    elif head == "title" and not rest:
        return "title.text"
    return f"{head}.{rest}" if rest else head


def _relayout_patch_to_plotly(patch: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in patch.items():
        plotly_key = _layout_key_to_plotly(key)
        if plotly_key == "updatemenus" and value is not None:
            value = [menu_to_plotly(MenuBinding.from_value(m)) for m in value]
        elif plotly_key == "sliders" and value is not None:
            value = [slider_to_plotly(SliderBinding.from_value(s)) for s in value]
        elif isinstance(value, Mapping) and parse_axis_key(key) is not None and "title" in value:
            value = {**value, "title": {"text": value["title"]}}
        out[plotly_key] = plain_value(value)
    return out


def instruction_to_plotly(
    instruction: Instruction, kinds: Optional[tuple[TraceKind, ...]] = None
) -> dict[str, Any]:
    """Return ``{"method": ..., "args": [...]}`` with Plotly attribute names.

    ``kinds`` lists the figure's trace kinds. With it, ``color`` maps to
    ``line.color`` for line traces and ``marker.color`` for the others;
    without it ``color`` always maps to ``marker.color``.
    """
    if isinstance(instruction, Restyle):
        indices = None if instruction.trace_indices is None else list(instruction.trace_indices)
        args = [_restyle_patch_to_plotly(instruction.patch, instruction.trace_indices, kinds), indices]
    elif isinstance(instruction, Relayout):
        args = [_relayout_patch_to_plotly(instruction.patch)]
    elif isinstance(instruction, Update):
        indices = None if instruction.trace_indices is None else list(instruction.trace_indices)
        args = [
            _restyle_patch_to_plotly(instruction.trace_patch, instruction.trace_indices, kinds),
            _relayout_patch_to_plotly(instruction.layout_patch),
            indices,
        ]
    elif isinstance(instruction, Animate):
        return instruction.to_dict()
    else:
        raise TypeError(f"Unsupported instruction: {type(instruction).__name__}")
    return {"method": instruction.method, "args": args}


def menu_to_plotly(menu: MenuBinding, kinds: Optional[tuple[TraceKind, ...]] = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "type": menu.kind,
        "direction": menu.direction,
        "active": menu.active,
        "showactive": True,
        "buttons": [{"label": opt.label, **instruction_to_plotly(opt.instruction, kinds)} for opt in menu.options],
    }
    if menu.name:
        out["name"] = menu.name
    if menu.x is not None:
        out["x"] = menu.x
    if menu.y is not None:
        out["y"] = menu.y
    return out


def slider_to_plotly(slider: SliderBinding, kinds: Optional[tuple[TraceKind, ...]] = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "active": max(slider.active, 0),
        "currentvalue": {"prefix": slider.prefix},
        "steps": [{"label": step.label, **instruction_to_plotly(step.instruction, kinds)} for step in slider.steps],
    }
    if slider.name:
        out["name"] = slider.name
    return out


def layout_to_plotly(layout: Layout, kinds: Optional[tuple[TraceKind, ...]] = None) -> dict[str, Any]:
    """Return the Plotly layout dictionary for ``layout``."""
    out: dict[str, Any] = {
        "font": dict(layout.font),
        "showlegend": layout.showlegend,
    }
    if layout.title:
        out["title"] = {"text": layout.title}
    if layout.legend:
        out["legend"] = dict(layout.legend)
    if layout.width is not None:
        out["width"] = layout.width
    if layout.height is not None:
        out["height"] = layout.height
    for axis_id in sorted(layout.axes):
        out[plotly_axis_key(axis_id)] = _axis_to_plotly(layout.axes[axis_id])
    if layout.annotations:
        out["annotations"] = [a.to_dict() for a in layout.annotations]
    if layout.menus:
        out["updatemenus"] = [menu_to_plotly(m, kinds) for m in layout.menus]
    if layout.sliders:
        out["sliders"] = [slider_to_plotly(s, kinds) for s in layout.sliders]
    return out


def frame_to_plotly(frame: Frame, traces: tuple[Trace, ...]) -> dict[str, Any]:
    """Return a Plotly frame holding the fully overlaid traces the frame addresses."""
    overlaid = overlay_frame(traces, frame)
    indices = list(frame.trace_indices)
    return {
        "name": frame.name,
        "data": [trace_to_plotly(overlaid[i]) for i in indices],
        "traces": indices,
    }


def to_plotly_dict(snapshot: FigureSnapshot) -> dict[str, Any]:
    """Return ``{"data", "layout", "frames"}`` for the displayed state of ``snapshot``."""
    return {
        "data": [trace_to_plotly(t) for t in snapshot.displayed_traces()],
        "layout": layout_to_plotly(snapshot.layout, tuple(t.kind for t in snapshot.traces)),
        "frames": [frame_to_plotly(f, snapshot.traces) for f in snapshot.frames],
    }


def to_plotly_figure(snapshot: FigureSnapshot) -> go.Figure:
    """Return a ``plotly.graph_objects.Figure`` built from :func:`to_plotly_dict`."""
    return go.Figure(to_plotly_dict(snapshot))


__all__ = [
    "frame_to_plotly",
    "instruction_to_plotly",
    "layout_to_plotly",
    "menu_to_plotly",
    "slider_to_plotly",
    "to_plotly_dict",
    "to_plotly_figure",
    "trace_to_plotly",
]
