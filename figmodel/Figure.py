"""Figure: the unit of mutation for the declarative figure model.

Purpose
-------
This module provides the public ``Figure`` class. A figure owns exactly one
current :class:`~figmodel.FigureSnapshot.FigureSnapshot` and replaces it as a
whole on every accepted instruction, so every observer sees either the state
before an instruction or the state after it, never a mix.

Concepts and structure
----------------------
- Construction validates the full assembly (payloads, axis references,
  subplot overlap, frames, menu/slider bindings) and raises before a
  ``Figure`` exists.
- ``apply`` delegates to the pure protocol in ``figure_update`` and commits
  the returned snapshot with a single attribute assignment.
- Commit listeners registered with ``on_commit`` receive
  ``(snapshot, delta)`` after the swap. A failing listener is reported with
  ``warnings.warn`` and never undoes the commit.

Important gotchas
-----------------
- A ``Figure`` does not serialize concurrent callers. Threads (and widget
  callbacks) should submit through :class:`figmodel.instruction_queue.InstructionQueue`.
- There is no process-wide "current figure"; pass figures explicitly.

Examples
--------
>>> from figmodel import Figure, Trace
>>> fig = Figure([Trace("bar", {"x": ["a", "b"], "y": [1, 2]})])
>>> fig.restyle({"visible": "legendonly"}).trace_indices
(0,)
>>> fig.traces[0].visible
'legendonly'
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional, Sequence, Union

from IPython.display import display

from .FigureSnapshot import FigureSnapshot
from .figure_animation import AnimationState
from .figure_frames import Frame
from .figure_instructions import (
    Animate,
    Instruction,
    Relayout,
    Restyle,
    TransitionSpec,
    Update,
    instruction_from_dict,
)
from .figure_layout import Layout, merge_layout_patch
from .figure_trace import Trace
from .figure_update import (
    RenderDelta,
    advance,
    apply_instruction,
    select_option,
    stamp_revision,
    stop,
    validate_snapshot,
)
from .plotly_export import to_plotly_figure

# Module logger
# - Uses a NullHandler so importing this module never configures global logging.
# - Callers can enable logs via standard logging configuration.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

CommitCallback = Callable[[FigureSnapshot, RenderDelta], Any]


def _coerce_trace(value: Union[Trace, Mapping[str, Any]]) -> Trace:
    if isinstance(value, Trace):
        return value
    if isinstance(value, Mapping):
        return Trace(**value)
    raise TypeError(f"traces must be Trace objects or mappings, got {type(value).__name__}")


def _coerce_frame(value: Union[Frame, Mapping[str, Any]]) -> Frame:
    if isinstance(value, Frame):
        return value
    if isinstance(value, Mapping):
        return Frame(value.get("name", ""), value.get("traces", value.get("trace_snapshots", {})))
    raise TypeError(f"frames must be Frame objects or mappings, got {type(value).__name__}")


def _coerce_layout(value: Union[Layout, Mapping[str, Any], None]) -> Layout:
    if value is None:
        return Layout()
    if isinstance(value, Layout):
        return value
    layout, _ = merge_layout_patch(Layout(), value)
    return layout


class Figure:
    """An interactive, declaratively updated figure.

    Parameters
    ----------
    traces : iterable of Trace or mapping, optional
        Ordered data series. Mappings are passed to ``Trace(**mapping)``.
    layout : Layout or mapping, optional
        Presentation state. A mapping is applied as a relayout patch on the
        default layout.
    frames : iterable of Frame or mapping, optional
        Ordered animation frames (``{"name": ..., "traces": {...}}``).

    Raises
    ------
    FigureModelError
        Any validation error from the assembled state; see
        :func:`figmodel.figure_update.validate_snapshot`.
    """

    def __init__(
        self,
        traces: Iterable[Union[Trace, Mapping[str, Any]]] = (),
        layout: Union[Layout, Mapping[str, Any], None] = None,
        frames: Iterable[Union[Frame, Mapping[str, Any]]] = (),
    ) -> None:
        snapshot = FigureSnapshot(
            traces=tuple(_coerce_trace(t) for t in traces),
            layout=_coerce_layout(layout),
            frames=tuple(_coerce_frame(f) for f in frames),
        )
        validate_snapshot(snapshot)
        self._snapshot = snapshot
        self._hooks: dict[int, CommitCallback] = {}
        self._next_hook_id = 0

    @classmethod
    def from_snapshot(cls, snapshot: FigureSnapshot) -> "Figure":
        """Return a figure whose current state is ``snapshot`` (validated)."""
        validate_snapshot(snapshot)
        fig = cls.__new__(cls)
        fig._snapshot = snapshot
        fig._hooks = {}
        fig._next_hook_id = 0
        return fig

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def snapshot(self) -> FigureSnapshot:
        """Return the current immutable snapshot.

        Snapshots are never mutated, so the returned object stays valid (and
        unchanged) after later commits.
        """
        return self._snapshot

    @property
    def traces(self) -> tuple[Trace, ...]:
        return self._snapshot.traces

    @property
    def layout(self) -> Layout:
        return self._snapshot.layout

    @property
    def frames(self) -> tuple[Frame, ...]:
        return self._snapshot.frames

    @property
    def animation(self) -> AnimationState:
        return self._snapshot.animation

    @property
    def revision(self) -> int:
        return self._snapshot.revision

    def displayed_traces(self) -> tuple[Trace, ...]:
        """Return base traces overlaid with the currently shown frame."""
        return self._snapshot.displayed_traces()

    def to_dict(self) -> dict[str, Any]:
        return self._snapshot.to_dict()

    def to_plotly(self):
        """Return a ``plotly.graph_objects.Figure`` for the current snapshot."""
        return to_plotly_figure(self._snapshot)

    def copy(self) -> "Figure":
        """Return an independent figure starting from the current state.

        Commit listeners are not copied. The two figures share the current
        snapshot, which is immutable, so later commits on one never show up
        in the other.
        """
        fig = type(self).__new__(type(self))
        fig._snapshot = self._snapshot
        fig._hooks = {}
        fig._next_hook_id = 0
        return fig

    # ------------------------------------------------------------------
    # Commit listeners
    # ------------------------------------------------------------------

    def on_commit(self, callback: CommitCallback) -> int:
        """Register ``callback(snapshot, delta)`` to run after every commit.

        Returns
        -------
        int
            Hook id for :meth:`remove_hook`.
        """
        if not callable(callback):
            raise TypeError(f"on_commit callback must be callable, got {type(callback).__name__}")
        hook_id = self._next_hook_id
        self._next_hook_id += 1
        self._hooks[hook_id] = callback
        return hook_id

    def remove_hook(self, hook_id: int) -> None:
        self._hooks.pop(hook_id, None)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _commit(self, candidate: FigureSnapshot, delta: RenderDelta) -> RenderDelta:
        self._snapshot = candidate
        logger.debug(
            "commit revision=%s method=%s traces=%s layout=%s frame=%s",
            delta.revision,
            delta.method,
            list(delta.trace_indices),
            list(delta.layout_paths),
            delta.frame,
        )
        for hook_id, callback in list(self._hooks.items()):
            try:
                callback(candidate, delta)
            except Exception as e:
                warnings.warn(f"Commit hook {hook_id} failed: {e}")
        return delta

    def _run(self, what: str, compute: Callable[[FigureSnapshot], tuple[FigureSnapshot, RenderDelta]]) -> RenderDelta:
        try:
            candidate, delta = compute(self._snapshot)
        except Exception as e:
            logger.info("rejected %s at revision %s: %s", what, self._snapshot.revision, e)
            raise
        return self._commit(candidate, delta)

    def apply(self, instruction: Union[Instruction, Mapping[str, Any]]) -> RenderDelta:
        """Apply an instruction atomically.

        Parameters
        ----------
        instruction : Restyle, Relayout, Update, Animate, or mapping
            Mappings use the Plotly ``{"method": ..., "args": [...]}`` form.

        Returns
        -------
        RenderDelta
            What changed, stamped with the new revision.

        Raises
        ------
        FigureModelError
            If the instruction is rejected; the figure keeps its previous
            snapshot.
        """
        try:
            instruction = instruction_from_dict(instruction)
        except Exception as e:
            logger.info("rejected malformed instruction: %s", e)
            raise
        return self._run(instruction.method, lambda snap: apply_instruction(snap, instruction))

    def restyle(self, patch: Mapping[str, Any], trace_indices: Optional[Sequence[int]] = None) -> RenderDelta:
        return self.apply(Restyle(patch, trace_indices))

    def relayout(self, patch: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> RenderDelta:
        """Deep-merge a layout patch; keyword arguments are merged into ``patch``."""
        return self.apply(Relayout({**(patch or {}), **kwargs}))

    def update(
        self,
        trace_patch: Optional[Mapping[str, Any]] = None,
        layout_patch: Optional[Mapping[str, Any]] = None,
        trace_indices: Optional[Sequence[int]] = None,
    ) -> RenderDelta:
        return self.apply(Update(trace_patch or {}, layout_patch or {}, trace_indices))

    def animate(self, target: Any = None, transition: Union[TransitionSpec, Mapping[str, Any], None] = None) -> RenderDelta:
        """Show a frame (name or index), a playlist (tuple), or every frame (``None``)."""
        if transition is None:
            transition = TransitionSpec()
        return self.apply(Animate(target, transition))

    def pause(self) -> RenderDelta:
        return self.apply(Animate.pause())

    def stop(self) -> RenderDelta:
        """Leave playback and display the base traces again."""
        return self._run("stop", lambda snap: stamp_revision(*stop(snap), snap.revision + 1))

    def advance(self, elapsed_ms: float) -> RenderDelta:
        """Advance playback by ``elapsed_ms`` of renderer clock time."""
        return self._run("tick", lambda snap: stamp_revision(*advance(snap, elapsed_ms), snap.revision + 1))

    def select(self, menu_index: int, option_index: int) -> RenderDelta:
        """Apply a menu option and mark it active in the same commit."""
        return self._run("select", lambda snap: select_option(snap, menu_index, option_index))

    def seek(self, step_index: int, slider_index: int = 0) -> RenderDelta:
        """Apply a slider step and mark it active in the same commit."""
        return self._run("seek", lambda snap: select_option(snap, slider_index, step_index, slider=True))

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def _ipython_display_(self, **kwargs: Any) -> None:
        """Display the Plotly rendering of the current snapshot."""
        display(self.to_plotly())

    def __repr__(self) -> str:
        snap = self._snapshot
        return (
            f"Figure(title={snap.layout.title!r}, traces={snap.trace_count}, "
            f"frames={len(snap.frames)}, revision={snap.revision})"
        )


__all__ = ["CommitCallback", "Figure"]
