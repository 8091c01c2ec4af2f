"""Animation frames: named, ordered partial payload snapshots.

A ``Frame`` maps trace indices to payload overlays. Overlays are field-wise
and always layered on the figure's *base* traces, never on whatever frame was
shown before, so the displayed state after seeking to a frame does not
depend on the path taken to reach it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

import numpy as np

from .InputConvert import InputConvert
from .figure_errors import IndexOutOfRangeError, PatchError
from .figure_trace import Trace, as_payload_array


@dataclass(frozen=True, eq=False)
class Frame:
    """One named animation step.

    Parameters
    ----------
    name : str
        Unique name within the owning figure (used for random-access seeks).
    trace_snapshots : mapping[int, mapping[str, array-like]]
        Partial payload overlays by trace index. Traces not mentioned keep
        their base payload.
    """

    name: str
    trace_snapshots: Mapping[int, Mapping[str, np.ndarray]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        name = str(self.name)
        if not name:
            raise PatchError("frame name must be a non-empty string")
        object.__setattr__(self, "name", name)
        if not isinstance(self.trace_snapshots, Mapping):
            raise PatchError(f"frame {name!r} trace_snapshots must be a mapping of trace index to payload")
        snapshots: dict[int, Mapping[str, np.ndarray]] = {}
        for raw_index, overlay in self.trace_snapshots.items():
            try:
                index = InputConvert(raw_index, int, truncate=False)
            except ValueError as e:
                raise PatchError(f"frame {name!r} has a non-integer trace key {raw_index!r}") from e
            if not isinstance(overlay, Mapping):
                raise PatchError(f"frame {name!r} snapshot for trace {index} must be a mapping")
            snapshots[index] = MappingProxyType(
                {key: as_payload_array(f"frame {name!r}", key, value) for key, value in overlay.items()}
            )
        object.__setattr__(self, "trace_snapshots", MappingProxyType(snapshots))

    __hash__ = None  # type: ignore[assignment]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def trace_indices(self) -> tuple[int, ...]:
        return tuple(sorted(self.trace_snapshots))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "traces": {
                str(index): {key: arr.tolist() for key, arr in overlay.items()}
                for index, overlay in sorted(self.trace_snapshots.items())
            },
        }

    def __repr__(self) -> str:
        return f"Frame(name={self.name!r}, traces={list(self.trace_indices)})"


def frame_names(frames: Iterable[Frame]) -> tuple[str, ...]:
    return tuple(frame.name for frame in frames)


def overlay_frame(traces: Sequence[Trace], frame: Frame) -> tuple[Trace, ...]:
    """Return ``traces`` with ``frame``'s snapshots layered field-wise on top.

    Raises
    ------
    IndexOutOfRangeError
        If the frame addresses a trace that does not exist.
    PayloadKindMismatchError
        If an overlaid payload no longer fits the trace's kind.
    """
    out = list(traces)
    for index, overlay in frame.trace_snapshots.items():
        if index < 0 or index >= len(out):
            raise IndexOutOfRangeError(
                f"Frame {frame.name!r} addresses trace {index} but the figure has {len(out)} trace(s)"
            )
        out[index] = out[index].with_payload_overlay(overlay)
    return tuple(out)


def validate_frames(frames: Sequence[Frame], traces: Sequence[Trace], *, only: Iterable[int] | None = None) -> None:
    """Check frame-name uniqueness and that every overlay fits its trace.

    ``only`` restricts the overlay check to frames touching those trace
    indices (used after a restyle changed a subset of traces).

    Raises
    ------
    ValueError
        If two frames share a name.
    IndexOutOfRangeError, PayloadKindMismatchError
        See :func:`overlay_frame`.
    """
    seen: set[str] = set()
    for frame in frames:
        if frame.name in seen:
            raise ValueError(f"Duplicate frame name: {frame.name!r}")
        seen.add(frame.name)

    touched = None if only is None else set(only)
    for frame in frames:
        if touched is not None and touched.isdisjoint(frame.trace_snapshots):
            continue
        overlay_frame(traces, frame)


__all__ = ["Frame", "frame_names", "overlay_frame", "validate_frames"]
