"""Immutable snapshot of an entire Figure's state.

A ``FigureSnapshot`` aggregates the ordered traces, the layout, the ordered
frames and the animation playback state into a single frozen object. The
figure swaps one snapshot for the next on every commit, so rendering and
export collaborators that hold a snapshot never observe a half-applied
instruction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .figure_animation import AnimationState
from .figure_frames import Frame, frame_names, overlay_frame
from .figure_layout import Layout
from .figure_trace import Trace


@dataclass(frozen=True)
class FigureSnapshot:
    """Immutable record of a full figure's state.

    Parameters
    ----------
    traces : tuple[Trace, ...]
        Base traces in addressing order.
    layout : Layout
        Presentation state.
    frames : tuple[Frame, ...]
        Animation frames in playback order.
    animation : AnimationState
        Current playback state.
    revision : int
        Number of commits applied since construction.
    """

    traces: tuple[Trace, ...] = ()
    layout: Layout = field(default_factory=Layout)
    frames: tuple[Frame, ...] = ()
    animation: AnimationState = field(default_factory=AnimationState)
    revision: int = 0

    @property
    def trace_count(self) -> int:
        return len(self.traces)

    @property
    def frame_names(self) -> tuple[str, ...]:
        return frame_names(self.frames)

    def frame(self, name: str) -> Frame:
        for frame in self.frames:
            if frame.name == name:
                return frame
        raise KeyError(name)

    def displayed_traces(self) -> tuple[Trace, ...]:
        """Return the traces as currently displayed (base plus the shown frame's overlay)."""
        shown = self.animation.displayed_frame
        if shown is None:
            return self.traces
        return overlay_frame(self.traces, self.frame(shown))

    def to_dict(self) -> dict[str, Any]:
        return {
            "traces": [t.to_dict() for t in self.traces],
            "layout": self.layout.to_dict(),
            "frames": [f.to_dict() for f in self.frames],
            "animation": self.animation.to_dict(),
            "revision": self.revision,
        }

    def __repr__(self) -> str:
        return (
            f"FigureSnapshot(title={self.layout.title!r}, "
            f"traces={len(self.traces)}, "
            f"frames={len(self.frames)}, revision={self.revision})"
        )
