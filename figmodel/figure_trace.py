"""Per-series trace model used by :mod:`figmodel.Figure`.

Purpose
-------
Defines ``Trace``, one data series tagged with a chart-type discriminator
(``kind``), a kind-specific ``payload``, a tri-state visibility flag, and an
axis reference binding it to an axis set of the owning layout.

Concepts and structure
----------------------
- ``TraceKind`` is the closed set of chart types the model recognizes. How a
  kind is drawn is a renderer concern; the model only knows which payload
  fields each kind requires (``figure_options.PAYLOAD_SCHEMAS``).
- ``validate_payload`` converts a raw mapping into read-only NumPy arrays and
  enforces the per-kind shape rules.
- ``Trace`` is frozen. Every change goes through ``Trace.replace`` (which
  re-runs validation), so a trace can never hold a payload that is
  incompatible with its kind.

Important gotchas
-----------------
- Pie and table traces are axis-less: their ``axis_ref`` is always ``None``
  and they may carry a canvas ``domain`` instead.
- Payload arrays are copied on construction and marked read-only; two traces
  never share a writable buffer.
- Traces compare equal when their plain ``to_dict()`` forms are equal.

Examples
--------
>>> from figmodel.figure_trace import Trace
>>> t = Trace("bar", {"x": ["a", "b"], "y": [1, 2]}, name="counts")
>>> t.axis_ref
('x', 'y')
>>> t.replace(visible="legendonly").visible
'legendonly'
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional, Union

import numpy as np

from .InputConvert import InputConvert
from .figure_axes import Domain, is_axis_id
from .figure_errors import AxisRefResolutionError, PatchError, PayloadKindMismatchError
from .figure_options import AXISLESS_KINDS, PAYLOAD_SCHEMAS

VisibleSpec = Union[bool, str]  # Plotly uses True/False or the string "legendonly".


class TraceKind(str, Enum):
    """Closed set of chart-type tags."""

    BAR = "bar"
    LINE = "line"
    SCATTER = "scatter"
    BOX = "box"
    HISTOGRAM = "histogram"
    HEATMAP = "heatmap"
    PIE = "pie"
    TABLE = "table"

    @property
    def axisless(self) -> bool:
        return self.value in AXISLESS_KINDS

    @classmethod
    def coerce(cls, value: Any) -> "TraceKind":
        try:
            return cls(value)
        except ValueError as e:
            choices = ", ".join(k.value for k in cls)
            raise PatchError(f"Unknown trace kind {value!r}. Expected one of: {choices}") from e


def normalize_visible(value: Any) -> VisibleSpec:
    """Return ``value`` as ``True``, ``False`` or ``"legendonly"``."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if value == "legendonly":
        return "legendonly"
    raise PatchError(f"visible must be True, False or 'legendonly', got {value!r}")


def _has_non_str(value: Any) -> bool:
    if isinstance(value, str):
        return False
    if isinstance(value, (list, tuple, np.ndarray)):
        return any(_has_non_str(item) for item in value)
    return True


def as_payload_array(owner: str, name: str, value: Any, *, dtype: Any = None) -> np.ndarray:
    """Return a read-only copy of ``value`` as a NumPy array.

    ``owner`` only prefixes error messages (a kind name or a frame name).
    """
    if value is None or isinstance(value, (str, bytes, Mapping)):
        raise PayloadKindMismatchError(
            f"{owner} payload field {name!r} must be an array-like sequence, got {type(value).__name__}"
        )
    try:
        arr = np.array(value, dtype=dtype, copy=True)
        if arr.dtype.kind == "U" and _has_non_str(value):
            # Mixed numbers and strings: keep the original objects instead of stringifying them.
            arr = np.array(value, dtype=object)
    except (TypeError, ValueError) as e:
        raise PayloadKindMismatchError(f"{owner} payload field {name!r} is not a regular array: {e}") from e
    arr.setflags(write=False)
    return arr


def _require_ndim(kind: str, name: str, arr: np.ndarray, ndim: int) -> None:
    if arr.ndim != ndim:
        raise PayloadKindMismatchError(
            f"{kind} payload field {name!r} must be {ndim}-D, got shape {arr.shape}"
        )


def _require_same_length(kind: str, arrays: Mapping[str, np.ndarray], names: tuple[str, ...]) -> None:
    lengths = {n: len(arrays[n]) for n in names if n in arrays}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{n}={length}" for n, length in lengths.items())
        raise PayloadKindMismatchError(f"{kind} payload fields must have equal length ({detail})")


def validate_payload(kind: Union[TraceKind, str], payload: Mapping[str, Any]) -> Mapping[str, np.ndarray]:
    """Return ``payload`` as read-only arrays validated against ``kind``.

    Raises
    ------
    PayloadKindMismatchError
        If required fields are missing, unknown fields are present, or the
        arrays violate the kind's shape rules.
    """
    kind = TraceKind.coerce(kind)
    if not isinstance(payload, Mapping):
        raise PayloadKindMismatchError(f"{kind.value} payload must be a mapping, got {type(payload).__name__}")
    required, optional = PAYLOAD_SCHEMAS[kind.value]
    keys = set(payload)
    missing = required - keys
    if missing:
        raise PayloadKindMismatchError(
            f"{kind.value} payload is missing required field(s): {', '.join(sorted(missing))}"
        )
    unknown = keys - required - optional
    if unknown:
        raise PayloadKindMismatchError(
            f"{kind.value} payload does not accept field(s): {', '.join(sorted(unknown))}"
        )

    arrays: dict[str, np.ndarray] = {}
    for name in sorted(keys):
        if kind is TraceKind.HEATMAP and name == "z":
            arr = as_payload_array(kind.value, name, payload[name], dtype=float)
            _require_ndim(kind.value, name, arr, 2)
        elif kind is TraceKind.TABLE and name == "cells":
            arr = as_payload_array(kind.value, name, payload[name], dtype=object)
            if arr.size and arr.ndim != 2:
                raise PayloadKindMismatchError("table cells must be a list of equal-length columns")
        else:
            arr = as_payload_array(kind.value, name, payload[name])
            _require_ndim(kind.value, name, arr, 1)
        arrays[name] = arr

    if kind in (TraceKind.BAR, TraceKind.LINE, TraceKind.SCATTER):
        _require_same_length(kind.value, arrays, ("x", "y", "text", "size"))
    elif kind is TraceKind.BOX:
        _require_same_length(kind.value, arrays, ("x", "y"))
    elif kind is TraceKind.PIE:
        _require_same_length(kind.value, arrays, ("labels", "values"))
        if arrays["values"].dtype.kind not in "iuf":
            raise PayloadKindMismatchError("pie payload field 'values' must be numeric")
    elif kind is TraceKind.HEATMAP:
        rows, cols = arrays["z"].shape
        if "x" in arrays and len(arrays["x"]) != cols:
            raise PayloadKindMismatchError(f"heatmap x has {len(arrays['x'])} entries for {cols} columns")
        if "y" in arrays and len(arrays["y"]) != rows:
            raise PayloadKindMismatchError(f"heatmap y has {len(arrays['y'])} entries for {rows} rows")
    elif kind is TraceKind.TABLE:
        n_cols = len(arrays["cells"]) if arrays["cells"].size else 0
        if n_cols != len(arrays["header"]):
            raise PayloadKindMismatchError(
                f"table has {len(arrays['header'])} header entries but {n_cols} cell columns"
            )
    return MappingProxyType(arrays)


def _plain(arr: np.ndarray) -> list[Any]:
    return arr.tolist()


@dataclass(frozen=True, eq=False)
class Trace:
    """One data series with a chart-type tag.

    Parameters
    ----------
    kind : TraceKind or str
        Chart-type tag.
    payload : mapping
        Kind-specific data fields (see ``figure_options.PAYLOAD_SCHEMAS``).
    visible : bool or "legendonly", optional
        Tri-state visibility; defaults to shown.
    axis_ref : tuple[str, str] or None, optional
        ``(x_axis_id, y_axis_id)``. ``None`` resolves to ``("x", "y")`` for
        axis-bound kinds and stays ``None`` for pie/table.
    domain : Domain or mapping or None, optional
        Canvas rectangle for axis-less kinds.
    name : str, optional
        Legend label.
    legend_group : str or None, optional
        Legend grouping key.
    opacity : float or None, optional
        Opacity in ``[0, 1]``.
    color : str or None, optional
        Primary color.
    """

    kind: TraceKind
    payload: Mapping[str, np.ndarray] = field(default_factory=dict)
    visible: VisibleSpec = True
    axis_ref: Optional[tuple[str, str]] = None
    domain: Optional[Domain] = None
    name: str = ""
    legend_group: Optional[str] = None
    opacity: Optional[float] = None
    color: Optional[str] = None

    def __post_init__(self) -> None:
        kind = TraceKind.coerce(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "payload", validate_payload(kind, self.payload))
        object.__setattr__(self, "visible", normalize_visible(self.visible))
        object.__setattr__(self, "name", "" if self.name is None else str(self.name))

        if kind.axisless:
            if self.axis_ref is not None:
                raise AxisRefResolutionError(f"{kind.value} traces are axis-less and cannot reference {self.axis_ref!r}")
            if self.domain is not None:
                object.__setattr__(self, "domain", Domain.from_value(self.domain))
        else:
            if self.domain is not None:
                raise PatchError(f"{kind.value} traces are placed by axis_ref, not by domain")
            ref = ("x", "y") if self.axis_ref is None else tuple(self.axis_ref)
            if len(ref) != 2 or not is_axis_id(ref[0]) or not is_axis_id(ref[1]) or ref[0][0] != "x" or ref[1][0] != "y":
                raise AxisRefResolutionError(f"axis_ref must be an (x-axis, y-axis) pair, got {self.axis_ref!r}")
            object.__setattr__(self, "axis_ref", ref)

        if self.opacity is not None:
            value = InputConvert(self.opacity, float)
            if not 0.0 <= value <= 1.0:
                raise PatchError(f"opacity must be within [0, 1], got {self.opacity!r}")
            object.__setattr__(self, "opacity", value)

    __hash__ = None  # type: ignore[assignment]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Trace):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def replace(self, **changes: Any) -> "Trace":
        """Return a re-validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def with_payload_overlay(self, overlay: Mapping[str, Any]) -> "Trace":
        """Return a copy whose payload is ``overlay`` layered field-wise on this one."""
        if not overlay:
            return self
        return self.replace(payload={**self.payload, **overlay})

    def to_dict(self) -> dict[str, Any]:
        """Return a plain, JSON-friendly representation."""
        return {
            "kind": self.kind.value,
            "payload": {name: _plain(arr) for name, arr in self.payload.items()},
            "visible": self.visible,
            "axis_ref": None if self.axis_ref is None else list(self.axis_ref),
            "domain": None if self.domain is None else self.domain.to_dict(),
            "name": self.name,
            "legend_group": self.legend_group,
            "opacity": self.opacity,
            "color": self.color,
        }

    def __repr__(self) -> str:
        return (
            f"Trace(kind={self.kind.value!r}, name={self.name!r}, "
            f"visible={self.visible!r}, axis_ref={self.axis_ref!r})"
        )


__all__ = ["Trace", "TraceKind", "VisibleSpec", "as_payload_array", "normalize_visible", "validate_payload"]
