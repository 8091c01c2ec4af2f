"""Serializable update-protocol instructions.

Purpose
-------
Defines the four instruction kinds a figure accepts (``Restyle``,
``Relayout``, ``Update``, ``Animate``) together with ``TransitionSpec``.
Instructions are plain frozen records: they carry *what* to change and are
validated against a figure only when applied (see ``figure_update``).

Architecture notes
------------------
- Restyle field names are checked against the closed catalog in
  ``figure_options`` when the instruction is built, so a typo in a menu
  definition fails at declaration time instead of at click time.
- ``to_dict``/``instruction_from_dict`` use the Plotly button shape
  ``{"method": ..., "args": [...]}``; Plotly aliases (``type``,
  ``legendgroup``, ``xaxis.range``) are accepted on input.

Examples
--------
>>> from figmodel.figure_instructions import Restyle, instruction_from_dict
>>> Restyle({"visible": [True, False]}).to_dict()
{'method': 'restyle', 'args': [{'visible': [True, False]}, None]}
>>> instruction_from_dict({"method": "relayout", "args": [{"title": "GDP"}]}).patch
mappingproxy({'title': 'GDP'})
"""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Optional, Union

import numpy as np

from .InputConvert import InputConvert
from .figure_errors import IndexOutOfRangeError, PatchError, ShapeMismatchError
from .figure_options import (
    DEFAULT_EASING,
    DEFAULT_FRAME_MS,
    DEFAULT_TRANSITION_MS,
    EASINGS,
    PAYLOAD_FIELDS,
    resolve_trace_patch_aliases,
)

FrameTarget = Union[str, int]


def plain_value(value: Any) -> Any:
    """Return ``value`` with arrays, tuples and records converted to plain data."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if hasattr(value, "to_dict") and callable(value.to_dict):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(k): plain_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain_value(v) for v in value]
    return value


def _coerce_indices(indices: Any) -> Optional[tuple[int, ...]]:
    if indices is None:
        return None
    if isinstance(indices, (int, np.integer)) and not isinstance(indices, bool):
        return (int(indices),)
    try:
        return tuple(InputConvert(i, int, truncate=False) for i in indices)
    except (TypeError, ValueError) as e:
        raise PatchError(f"trace_indices must be an int or a sequence of ints, got {indices!r}") from e


def _frozen_mapping(value: Any, *, what: str) -> Mapping[str, Any]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise PatchError(f"{what} must be a mapping, got {type(value).__name__}")
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class TransitionSpec:
    """Requested animation timing, advertised to the rendering collaborator.

    Parameters
    ----------
    duration : float
        Transition duration in milliseconds; ``0`` collapses straight to the
        target frame.
    easing : str
        Plotly easing name (``linear``, ``cubic-in-out``, …).
    frame_duration : float
        How long each frame of a playlist stays shown, in milliseconds.
    """

    duration: float = DEFAULT_TRANSITION_MS
    easing: str = DEFAULT_EASING
    frame_duration: float = DEFAULT_FRAME_MS

    def __post_init__(self) -> None:
        for attr in ("duration", "frame_duration"):
            try:
                value = InputConvert(getattr(self, attr), float)
            except ValueError as e:
                raise PatchError(f"transition {attr} must be a finite number") from e
            if value < 0:
                raise PatchError(f"transition {attr} must be >= 0, got {value}")
            object.__setattr__(self, attr, value)
        if self.easing not in EASINGS:
            raise PatchError(f"Unknown easing {self.easing!r}")

    @classmethod
    def immediate(cls) -> "TransitionSpec":
        """Return a zero-duration transition (scrubbing)."""
        return cls(duration=0.0, frame_duration=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "frame": {"duration": self.frame_duration, "redraw": True},
            "transition": {"duration": self.duration, "easing": self.easing},
            "mode": "immediate",
        }

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]]) -> "TransitionSpec":
        """Parse Plotly ``animate`` options (``frame``/``transition`` mappings)."""
        if not options:
            return cls()
        frame = options.get("frame") or {}
        transition = options.get("transition") or {}
        return cls(
            duration=transition.get("duration", DEFAULT_TRANSITION_MS),
            easing=transition.get("easing", DEFAULT_EASING),
            frame_duration=frame.get("duration", DEFAULT_FRAME_MS),
        )


@dataclass(frozen=True)
class Restyle:
    """Apply a trace-attribute patch positionally to ``trace_indices`` (default: all)."""

    patch: Mapping[str, Any]
    trace_indices: Optional[tuple[int, ...]] = None

    method = "restyle"

    def __post_init__(self) -> None:
        patch = _frozen_mapping(self.patch, what="restyle patch")
        object.__setattr__(self, "patch", MappingProxyType(resolve_trace_patch_aliases(patch)))
        object.__setattr__(self, "trace_indices", _coerce_indices(self.trace_indices))

    def to_dict(self) -> dict[str, Any]:
        indices = None if self.trace_indices is None else list(self.trace_indices)
        return {"method": self.method, "args": [plain_value(self.patch), indices]}


@dataclass(frozen=True)
class Relayout:
    """Deep-merge ``patch`` into the layout."""

    patch: Mapping[str, Any]

    method = "relayout"

    def __post_init__(self) -> None:
        object.__setattr__(self, "patch", _frozen_mapping(self.patch, what="relayout patch"))

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "args": [plain_value(self.patch)]}


@dataclass(frozen=True)
class Update:
    """Atomic restyle + relayout: both halves commit or neither does."""

    trace_patch: Mapping[str, Any] = field(default_factory=dict)
    layout_patch: Mapping[str, Any] = field(default_factory=dict)
    trace_indices: Optional[tuple[int, ...]] = None

    method = "update"

    def __post_init__(self) -> None:
        trace_patch = _frozen_mapping(self.trace_patch, what="update trace patch")
        object.__setattr__(self, "trace_patch", MappingProxyType(resolve_trace_patch_aliases(trace_patch)))
        object.__setattr__(self, "layout_patch", _frozen_mapping(self.layout_patch, what="update layout patch"))
        object.__setattr__(self, "trace_indices", _coerce_indices(self.trace_indices))

    @property
    def restyle(self) -> Restyle:
        return Restyle(self.trace_patch, self.trace_indices)

    @property
    def relayout(self) -> Relayout:
        return Relayout(self.layout_patch)

    def to_dict(self) -> dict[str, Any]:
        indices = None if self.trace_indices is None else list(self.trace_indices)
        return {
            "method": self.method,
            "args": [plain_value(self.trace_patch), plain_value(self.layout_patch), indices],
        }


@dataclass(frozen=True)
class Animate:
    """Advance the displayed state to a frame.

    ``target`` is a frame name, a frame index, a tuple of those (a playlist
    shown in order), ``None`` (play every frame in order), or ``()`` (pause:
    stop any playlist and settle on the current target).
    """

    target: Union[FrameTarget, tuple[FrameTarget, ...], None] = None
    transition: TransitionSpec = field(default_factory=TransitionSpec)

    method = "animate"

    def __post_init__(self) -> None:
        target = self.target
        if isinstance(target, (list, tuple)):
            target = tuple(target)
            if len(target) == 1:
                target = target[0]
        if isinstance(target, np.integer):
            target = int(target)
        if isinstance(target, tuple):
            for item in target:
                if not isinstance(item, (str, int)) or isinstance(item, bool):
                    raise PatchError(f"animate playlist entries must be frame names or indices, got {item!r}")
        elif target is not None and (not isinstance(target, (str, int)) or isinstance(target, bool)):
            raise PatchError(f"animate target must be a frame name or index, got {target!r}")
        object.__setattr__(self, "target", target)
        if isinstance(self.transition, Mapping):
            object.__setattr__(self, "transition", TransitionSpec.from_dict(self.transition))

    @classmethod
    def pause(cls) -> "Animate":
        return cls(target=(), transition=TransitionSpec.immediate())

    @property
    def is_pause(self) -> bool:
        return self.target == ()

    def to_dict(self) -> dict[str, Any]:
        if self.is_pause:
            target: Any = [None]
        elif isinstance(self.target, tuple):
            target = list(self.target)
        elif self.target is None:
            target = None
        else:
            target = [self.target]
        return {"method": self.method, "args": [target, self.transition.to_dict()]}


Instruction = Union[Restyle, Relayout, Update, Animate]


def resolve_trace_indices(indices: Optional[Sequence[int]], trace_count: int) -> tuple[int, ...]:
    """Return the addressed trace indices, defaulting to every trace.

    Raises
    ------
    IndexOutOfRangeError
        If any index is negative or ``>= trace_count``.
    """
    if indices is None:
        return tuple(range(trace_count))
    for index in indices:
        if index < 0 or index >= trace_count:
            raise IndexOutOfRangeError(
                f"Trace index {index} is out of range for a figure with {trace_count} trace(s)"
            )
    return tuple(indices)


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple, np.ndarray))


def check_trace_patch_shape(patch: Mapping[str, Any], targets: Sequence[int], trace_count: int) -> None:
    """Check positional array lengths in a canonical restyle patch.

    - ``visible`` lists are figure-positional: length must equal ``trace_count``.
    - payload data fields always carry one array per addressed trace.
    - other list values carry one entry per addressed trace.

    Raises
    ------
    ShapeMismatchError
        On any length mismatch.
    """
    for key, value in patch.items():
        if key == "visible":
            if _is_list(value) and len(value) != trace_count:
                raise ShapeMismatchError(
                    f"visible has {len(value)} entries but the figure has {trace_count} trace(s)"
                )
        elif key in PAYLOAD_FIELDS:
            if not _is_list(value) or len(value) != len(targets):
                got = len(value) if _is_list(value) else type(value).__name__
                raise ShapeMismatchError(
                    f"restyle {key!r} needs one array per addressed trace ({len(targets)}), got {got}"
                )
        elif _is_list(value) and len(value) != len(targets):
            raise ShapeMismatchError(
                f"restyle {key!r} has {len(value)} entries for {len(targets)} addressed trace(s)"
            )


def _arg(args: Sequence[Any], index: int) -> Any:
    return args[index] if len(args) > index else None


def instruction_from_dict(data: Union[Mapping[str, Any], Instruction]) -> Instruction:
    """Build an instruction from its ``{"method": ..., "args": [...]}`` form.

    Raises
    ------
    PatchError
        If the method is unknown or the arguments are malformed.
    """
    if isinstance(data, (Restyle, Relayout, Update, Animate)):
        return data
    if not isinstance(data, Mapping):
        raise PatchError(f"instruction must be a mapping, got {type(data).__name__}")
    method = data.get("method")
    args = data.get("args") or []
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise PatchError(f"instruction args must be a list, got {args!r}")

    if method == "restyle":
        return Restyle(_arg(args, 0), _arg(args, 1))
    if method == "relayout":
        return Relayout(_arg(args, 0))
    if method == "update":
        return Update(_arg(args, 0), _arg(args, 1), _arg(args, 2))
    if method == "animate":
        target = _arg(args, 0)
        if isinstance(target, (list, tuple)) and list(target) == [None]:
            target = ()
            transition = TransitionSpec.immediate()
            if _arg(args, 1):
                transition = TransitionSpec.from_dict(_arg(args, 1))
            return Animate(target=target, transition=transition)
        return Animate(target=target, transition=TransitionSpec.from_dict(_arg(args, 1)))
    raise PatchError(f"Unknown instruction method {method!r}")


__all__ = [
    "Animate",
    "FrameTarget",
    "Instruction",
    "Relayout",
    "Restyle",
    "TransitionSpec",
    "Update",
    "check_trace_patch_shape",
    "instruction_from_dict",
    "plain_value",
    "resolve_trace_indices",
]
