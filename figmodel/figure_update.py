"""Update protocol: pure transforms from (snapshot, instruction) to snapshot.

Purpose
-------
Implements ``restyle``, ``relayout``, ``update`` and ``animate`` as pure
functions over :class:`~figmodel.FigureSnapshot.FigureSnapshot`. Each returns
a new snapshot plus a :class:`RenderDelta` describing what changed, and
raises before returning anything if the instruction is invalid. Nothing here
mutates its inputs, so rejecting an instruction can never leave a figure
half-patched; :class:`figmodel.Figure.Figure` commits by swapping snapshots.

Concepts and structure
----------------------
- Trace addressing is positional. ``visible`` lists are figure-positional
  (one entry per trace in the figure); every other list-valued field carries
  one entry per addressed trace.
- Every candidate snapshot passes :func:`validate_snapshot` (axis refs,
  subplot overlap, frames, bindings) before it is returned.
- ``update`` runs restyle then relayout on the intermediate snapshot; the
  caller only ever sees the final snapshot or an exception.

Important gotchas
-----------------
- A ``kind`` change that crosses between axis-bound and axis-less kinds
  keeps the trace's rectangle. Axis-less kinds take the old subplot's
  rectangle as ``domain``; axis-bound kinds bind to the axis set covering the
  old ``domain``, and that pair is added to the layout in the same commit when
  no existing set covers it.
- Menu selections are cumulative: an option's patch is applied on top of the
  current state, and nothing is reverted when another option is picked.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from .FigureSnapshot import FigureSnapshot
from .figure_animation import request, reset, tick
from .figure_axes import Axis, Domain, GridSpec, axis_id, check_disjoint, subplots
from .figure_errors import AxisRefResolutionError, IndexOutOfRangeError, UnknownFrameError
from .figure_frames import validate_frames
from .figure_instructions import (
    Animate,
    Instruction,
    Relayout,
    Restyle,
    TransitionSpec,
    Update,
    check_trace_patch_shape,
    resolve_trace_indices,
)
from .figure_layout import merge_layout_patch
from .figure_menu import resolve_frame_target, validate_bindings
from .figure_options import DOMAIN_TOLERANCE, PAYLOAD_FIELDS
from .figure_trace import Trace, TraceKind


@dataclass(frozen=True)
class RenderDelta:
    """What a committed instruction changed, for incremental renderers.

    Parameters
    ----------
    method : str
        ``restyle``, ``relayout``, ``update``, ``animate`` or ``tick``.
    trace_indices : tuple[int, ...]
        Traces whose displayed state may have changed.
    trace_fields : tuple[str, ...]
        Restyled field names.
    layout_paths : tuple[str, ...]
        Dotted layout paths that were patched.
    frame : str or None
        Frame displayed after the commit (animate/tick).
    transition : TransitionSpec or None
        Requested transition timing (animate).
    revision : int
        Snapshot revision produced by the commit.
    """

    method: str
    trace_indices: tuple[int, ...] = ()
    trace_fields: tuple[str, ...] = ()
    layout_paths: tuple[str, ...] = ()
    frame: Optional[str] = None
    transition: Optional[TransitionSpec] = None
    revision: int = 0


def _trace_region(index: int, trace: Trace, snapshot: FigureSnapshot) -> Optional[tuple[str, Domain]]:
    if trace.axis_ref is None:
        domain = trace.domain if trace.domain is not None else Domain()
        return (f"domain{domain.x}{domain.y}", domain)
    axes = snapshot.layout.axes
    for axis in trace.axis_ref:
        if axis not in axes:
            raise AxisRefResolutionError(
                f"Trace {index} references axis {axis!r}, which the layout does not define"
            )
    x_axis, y_axis = (axes[a] for a in trace.axis_ref)
    if x_axis.overlaying is not None or y_axis.overlaying is not None:
        return None
    return (f"{x_axis.id}{y_axis.id}", Domain(x=x_axis.domain, y=y_axis.domain))


def validate_snapshot(snapshot: FigureSnapshot, *, touched: Optional[Iterable[int]] = None) -> None:
    """Run every cross-component invariant check on a candidate snapshot.

    ``touched`` limits frame re-validation to frames addressing those traces
    (``()`` skips it, ``None`` checks every frame).

    Raises
    ------
    AxisRefResolutionError
        If a trace references an axis the layout does not define.
    InvalidGridError
        If two occupied, non-overlaid subplot rectangles overlap.
    IndexOutOfRangeError, PayloadKindMismatchError, ValueError
        From frame validation.
    ShapeMismatchError, UnknownFrameError
        From binding validation.
    """
    regions = []
    for index, trace in enumerate(snapshot.traces):
        region = _trace_region(index, trace, snapshot)
        if region is not None:
            regions.append(region)
    check_disjoint(regions)
    validate_frames(snapshot.frames, snapshot.traces, only=touched)
    validate_bindings(
        snapshot.layout.menus,
        snapshot.layout.sliders,
        trace_count=snapshot.trace_count,
        frame_names=snapshot.frame_names,
    )


def _pick(value: Any, position: int) -> Any:
    if isinstance(value, (list, tuple)) or (hasattr(value, "ndim") and getattr(value, "ndim", 0) > 0):
        return value[position]
    return value


def _same_rect(a: Domain, b: Domain) -> bool:
    return all(abs(p - q) <= DOMAIN_TOLERANCE for p, q in zip(a.x + a.y, b.x + b.y))


def _axis_pair_for(domain: Domain, axes: dict[str, Axis], grid: Optional[GridSpec]) -> tuple[str, str]:
    """Return an axis set covering ``domain``, adding one to ``axes`` if none does.

    A new pair takes the grid cell's index when ``domain`` is a recorded cell
    and those ids are free, otherwise the lowest free index.
    """
    for sub in subplots(axes):
        if _same_rect(sub.domain, domain):
            return sub.axis_ref

    def free(k: int) -> bool:
        return axis_id("x", k) not in axes and axis_id("y", k) not in axes

    k = None
    if grid is not None:
        for (row, col), cell in grid.cells.items():
            if _same_rect(cell, domain) and free((row - 1) * grid.cols + col):
                k = (row - 1) * grid.cols + col
                break
    if k is None:
        k = 1
        while not free(k):
            k += 1
    x_id, y_id = axis_id("x", k), axis_id("y", k)
    axes[x_id] = Axis(x_id, domain=domain.x, anchor=y_id)
    axes[y_id] = Axis(y_id, domain=domain.y, anchor=x_id)
    return (x_id, y_id)


def _restyled_trace(
    trace: Trace,
    patch: Mapping[str, Any],
    index: int,
    position: int,
    axes: dict[str, Axis],
    grid: Optional[GridSpec],
) -> Trace:
    changes: dict[str, Any] = {}
    payload = dict(trace.payload)
    if "payload" in patch:
        payload = dict(_pick(patch["payload"], position))
    for key, value in patch.items():
        if key == "payload":
            continue
        if key == "visible":
            changes["visible"] = _pick(value, index)
        elif key in PAYLOAD_FIELDS:
            payload[key] = value[position]
        else:
            changes[key] = _pick(value, position)

    # The trace keeps its place on the canvas across axis-bound/axis-less kinds.
    if "kind" in changes:
        new_kind = TraceKind.coerce(changes["kind"])
        if new_kind.axisless and not trace.kind.axisless:
            x_axis, y_axis = (axes[a] for a in trace.axis_ref)
            changes["axis_ref"] = None
            changes["domain"] = Domain(x=x_axis.domain, y=y_axis.domain)
        elif not new_kind.axisless and trace.kind.axisless:
            domain = trace.domain if trace.domain is not None else Domain()
            changes["axis_ref"] = _axis_pair_for(domain, axes, grid)
            changes["domain"] = None
    return trace.replace(payload=payload, **changes)


def restyle(
    snapshot: FigureSnapshot,
    patch: Mapping[str, Any],
    trace_indices: Optional[Sequence[int]] = None,
) -> tuple[FigureSnapshot, RenderDelta]:
    """Apply a trace-attribute patch positionally.

    Raises
    ------
    IndexOutOfRangeError
        If an index is ``>= trace count`` (or negative).
    ShapeMismatchError
        If ``visible`` (or another list field) has the wrong length.
    PayloadKindMismatchError
        If a payload no longer fits its kind (including after a kind change).
    PatchError
        On unknown fields or malformed values.
    """
    instruction = patch if isinstance(patch, Restyle) else Restyle(patch, trace_indices)
    canonical = instruction.patch
    targets = resolve_trace_indices(instruction.trace_indices, snapshot.trace_count)
    check_trace_patch_shape(canonical, targets, snapshot.trace_count)

    traces = list(snapshot.traces)
    axes = dict(snapshot.layout.axes)
    for position, index in enumerate(targets):
        traces[index] = _restyled_trace(traces[index], canonical, index, position, axes, snapshot.layout.grid)

    added = tuple(a for a in axes if a not in snapshot.layout.axes)
    layout = snapshot.layout.replace(axes=axes) if added else snapshot.layout
    candidate = dataclasses.replace(snapshot, traces=tuple(traces), layout=layout)
    validate_snapshot(candidate, touched=targets)
    delta = RenderDelta(
        method="restyle",
        trace_indices=tuple(sorted(set(targets))),
        trace_fields=tuple(sorted(canonical)),
        layout_paths=added,
    )
    return candidate, delta


def relayout(snapshot: FigureSnapshot, patch: Mapping[str, Any]) -> tuple[FigureSnapshot, RenderDelta]:
    """Deep-merge ``patch`` into the layout.

    Raises
    ------
    PatchError
        On unknown keys or malformed values.
    AxisRefResolutionError
        If an axis still referenced by a trace is removed.
    InvalidGridError
        If moved axis domains make occupied subplots overlap.
    ShapeMismatchError, IndexOutOfRangeError, UnknownFrameError
        If new menu/slider bindings do not fit the figure.
    """
    layout, paths = merge_layout_patch(snapshot.layout, patch)
    candidate = dataclasses.replace(snapshot, layout=layout)
    validate_snapshot(candidate, touched=())
    return candidate, RenderDelta(method="relayout", layout_paths=paths)


def update(
    snapshot: FigureSnapshot,
    trace_patch: Mapping[str, Any],
    layout_patch: Mapping[str, Any],
    trace_indices: Optional[Sequence[int]] = None,
) -> tuple[FigureSnapshot, RenderDelta]:
    """Apply restyle and relayout together; either failure rejects both."""
    styled, trace_delta = restyle(snapshot, trace_patch, trace_indices)
    laid_out, layout_delta = relayout(styled, layout_patch)
    delta = RenderDelta(
        method="update",
        trace_indices=trace_delta.trace_indices,
        trace_fields=trace_delta.trace_fields,
        layout_paths=trace_delta.layout_paths + layout_delta.layout_paths,
    )
    return laid_out, delta


def _resolve_targets(snapshot: FigureSnapshot, target: Any) -> tuple[str, ...]:
    names = snapshot.frame_names
    if target is None:
        if not names:
            raise UnknownFrameError("Figure has no frames to play")
        return names
    if isinstance(target, tuple):
        return tuple(resolve_frame_target(item, names) for item in target)
    return (resolve_frame_target(target, names),)


def animate(
    snapshot: FigureSnapshot,
    target: Any,
    transition: Optional[TransitionSpec] = None,
) -> tuple[FigureSnapshot, RenderDelta]:
    """Select a frame (or playlist) to display and advertise the transition.

    Raises
    ------
    UnknownFrameError
        If a target name or index is not in the frame sequence.
    """
    instruction = target if isinstance(target, Animate) else Animate(target, transition or TransitionSpec())
    targets = _resolve_targets(snapshot, instruction.target)
    state = request(snapshot.animation, targets, instruction.transition)
    candidate = dataclasses.replace(snapshot, animation=state)
    return candidate, _animation_delta("animate", snapshot, candidate, instruction.transition)


def advance(snapshot: FigureSnapshot, elapsed_ms: Any) -> tuple[FigureSnapshot, RenderDelta]:
    """Advance playback by renderer clock time."""
    candidate = dataclasses.replace(snapshot, animation=tick(snapshot.animation, elapsed_ms))
    return candidate, _animation_delta("tick", snapshot, candidate, None)


def stop(snapshot: FigureSnapshot) -> tuple[FigureSnapshot, RenderDelta]:
    """Return to the idle state so the base traces are displayed again."""
    candidate = dataclasses.replace(snapshot, animation=reset())
    return candidate, _animation_delta("animate", snapshot, candidate, None)


def _animation_delta(
    method: str, before: FigureSnapshot, after: FigureSnapshot, transition: Optional[TransitionSpec]
) -> RenderDelta:
    touched: set[int] = set()
    for state in (before, after):
        shown = state.animation.displayed_frame
        if shown is not None:
            touched.update(state.frame(shown).trace_indices)
    return RenderDelta(
        method=method,
        trace_indices=tuple(sorted(touched)),
        frame=after.animation.displayed_frame,
        transition=transition,
    )


def apply_instruction(snapshot: FigureSnapshot, instruction: Instruction) -> tuple[FigureSnapshot, RenderDelta]:
    """Dispatch ``instruction`` and stamp the next revision on the result."""
    if isinstance(instruction, Restyle):
        candidate, delta = restyle(snapshot, instruction)
    elif isinstance(instruction, Relayout):
        candidate, delta = relayout(snapshot, instruction.patch)
    elif isinstance(instruction, Update):
        candidate, delta = update(
            snapshot, instruction.trace_patch, instruction.layout_patch, instruction.trace_indices
        )
    elif isinstance(instruction, Animate):
        candidate, delta = animate(snapshot, instruction)
    else:
        raise TypeError(f"Unsupported instruction: {type(instruction).__name__}")
    return stamp_revision(candidate, delta, snapshot.revision + 1)


def stamp_revision(candidate: FigureSnapshot, delta: RenderDelta, revision: int) -> tuple[FigureSnapshot, RenderDelta]:
    """Return ``(candidate, delta)`` both carrying ``revision``."""
    return (
        dataclasses.replace(candidate, revision=revision),
        dataclasses.replace(delta, revision=revision),
    )


def select_option(
    snapshot: FigureSnapshot, binding_index: int, option_index: int, *, slider: bool = False
) -> tuple[FigureSnapshot, RenderDelta]:
    """Apply a menu (or slider) option and record it as the binding's active option.

    Raises
    ------
    IndexOutOfRangeError
        If the binding or option does not exist.
    """
    bindings = snapshot.layout.sliders if slider else snapshot.layout.menus
    what = "slider" if slider else "menu"
    if not 0 <= binding_index < len(bindings):
        raise IndexOutOfRangeError(f"{what} index {binding_index} is out of range for {len(bindings)} {what}(s)")
    binding = bindings[binding_index]
    if not 0 <= option_index < len(binding.options):
        raise IndexOutOfRangeError(
            f"option index {option_index} is out of range for {what} {binding_index} "
            f"with {len(binding.options)} option(s)"
        )

    candidate, delta = apply_instruction(snapshot, binding.options[option_index].instruction)
    current = candidate.layout.sliders if slider else candidate.layout.menus
    if binding_index < len(current) and current[binding_index] is binding:
        updated = list(current)
        updated[binding_index] = binding.with_active(option_index)
        field_name = "sliders" if slider else "menus"
        layout = candidate.layout.replace(**{field_name: tuple(updated)})
        candidate = dataclasses.replace(candidate, layout=layout)
        delta = dataclasses.replace(
            delta, layout_paths=delta.layout_paths + (f"{field_name}.{binding_index}.active",)
        )
    return candidate, delta


__all__ = [
    "RenderDelta",
    "advance",
    "animate",
    "apply_instruction",
    "relayout",
    "restyle",
    "select_option",
    "stamp_revision",
    "stop",
    "update",
    "validate_snapshot",
]
