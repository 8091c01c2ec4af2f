"""Axis and subplot-domain primitives.

Purpose
-------
Defines ``Axis`` (one named coordinate axis), ``Domain`` (a normalized
rectangle of the figure canvas) and ``GridSpec`` (the record a grid
composition leaves on the layout). An *axis set* is an anchored pair of one
x-axis and one y-axis; its rectangle is ``x.domain × y.domain``.

Architecture notes
------------------
Axis ids follow the Plotly convention: ``x``, ``x2``, ``x3``, … and ``y``,
``y2``, …. Layout keys ``xaxis``/``yaxis3`` are accepted as aliases through
:func:`parse_axis_key` so serialized Plotly patches can be replayed.

Overlap checks treat intersections thinner than ``DOMAIN_TOLERANCE`` as shared
edges, so adjacent grid cells with a common boundary never count as
overlapping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Optional

from .InputConvert import InputConvert
from .figure_errors import InvalidGridError, PatchError
from .figure_options import DOMAIN_TOLERANCE

_AXIS_ID_RE = re.compile(r"^([xy])([2-9]|[1-9]\d+)?$")
_AXIS_KEY_RE = re.compile(r"^([xy])axis([2-9]|[1-9]\d+)?$")


def axis_id(letter: str, index: int) -> str:
    """Return the axis id for ``letter`` and 1-based ``index`` (``x``, ``x2``, …)."""
    return letter if index == 1 else f"{letter}{index}"


def is_axis_id(value: Any) -> bool:
    """Return ``True`` when ``value`` is a canonical axis id."""
    return isinstance(value, str) and _AXIS_ID_RE.match(value) is not None


def parse_axis_key(key: str) -> Optional[str]:
    """Return the canonical axis id for an axis id or Plotly layout key.

    ``"x2"`` and ``"xaxis2"`` both map to ``"x2"``. Anything that is not an axis
    key returns ``None``.
    """
    if is_axis_id(key):
        return key
    match = _AXIS_KEY_RE.match(key)
    if match is None:
        return None
    return match.group(1) + (match.group(2) or "")


def plotly_axis_key(axis: str) -> str:
    """Return the Plotly layout key (``xaxis``, ``yaxis2``) for an axis id."""
    return f"{axis[0]}axis{axis[1:]}"


def _coerce_interval(value: Any, *, what: str) -> tuple[float, float]:
    try:
        lo, hi = value
    except (TypeError, ValueError) as e:
        raise PatchError(f"{what} must be a pair (lo, hi), got {value!r}") from e
    try:
        return (float(InputConvert(lo, float)), float(InputConvert(hi, float)))
    except ValueError as e:
        raise PatchError(f"{what} must contain finite numbers, got {value!r}") from e


def _coerce_unit_interval(value: Any, *, what: str) -> tuple[float, float]:
    lo, hi = _coerce_interval(value, what=what)
    if not (0.0 <= lo < hi <= 1.0):
        raise PatchError(f"{what} must satisfy 0 <= lo < hi <= 1, got {value!r}")
    return lo, hi


@dataclass(frozen=True)
class Domain:
    """Normalized rectangle ``x × y`` inside the unit canvas."""

    x: tuple[float, float] = (0.0, 1.0)
    y: tuple[float, float] = (0.0, 1.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", _coerce_unit_interval(self.x, what="domain.x"))
        object.__setattr__(self, "y", _coerce_unit_interval(self.y, what="domain.y"))

    @property
    def area(self) -> float:
        return (self.x[1] - self.x[0]) * (self.y[1] - self.y[0])

    def intersection_area(self, other: "Domain") -> float:
        """Return the area shared by ``self`` and ``other`` (0.0 if disjoint)."""
        w = min(self.x[1], other.x[1]) - max(self.x[0], other.x[0])
        h = min(self.y[1], other.y[1]) - max(self.y[0], other.y[0])
        if w <= 0 or h <= 0:
            return 0.0
        return w * h

    def overlaps(self, other: "Domain") -> bool:
        return self.intersection_area(other) > DOMAIN_TOLERANCE

    def to_dict(self) -> dict[str, list[float]]:
        return {"x": list(self.x), "y": list(self.y)}

    @classmethod
    def from_value(cls, value: Any) -> "Domain":
        """Build a domain from a ``Domain`` or a ``{"x": .., "y": ..}`` mapping."""
        if isinstance(value, Domain):
            return value
        if isinstance(value, Mapping):
            return cls(x=value.get("x", (0.0, 1.0)), y=value.get("y", (0.0, 1.0)))
        raise PatchError(f"domain must be a mapping with x/y intervals, got {value!r}")


@dataclass(frozen=True)
class Axis:
    """One coordinate axis.

    Parameters
    ----------
    id : str
        Canonical axis id (``x``, ``y2``, …).
    domain : tuple[float, float]
        Normalized extent along the axis direction.
    range : tuple[float, float] or None
        Data range, or ``None`` for autorange.
    title : str
        Axis title text.
    anchor : str or None
        Orthogonal axis this axis is drawn against. ``None`` resolves to the
        orthogonal axis with the same index (``x2`` -> ``y2``).
    overlaying : str or None
        Same-letter axis this axis is overlaid on; overlaid axes are exempt
        from the domain-overlap check.
    matches : str or None
        Same-letter axis whose range this axis shares.
    """

    id: str
    domain: tuple[float, float] = (0.0, 1.0)
    range: Optional[tuple[float, float]] = None
    title: str = ""
    anchor: Optional[str] = None
    overlaying: Optional[str] = None
    matches: Optional[str] = None

    def __post_init__(self) -> None:
        if not is_axis_id(self.id):
            raise PatchError(f"Invalid axis id: {self.id!r}")
        object.__setattr__(
            self, "domain", _coerce_unit_interval(self.domain, what=f"{self.id}.domain")
        )
        if self.range is not None:
            object.__setattr__(self, "range", _coerce_interval(self.range, what=f"{self.id}.range"))
        if isinstance(self.title, Mapping):
            object.__setattr__(self, "title", str(self.title.get("text", "")))
        elif self.title is None:
            object.__setattr__(self, "title", "")
        else:
            object.__setattr__(self, "title", str(self.title))

        letter = self.id[0]
        other = "y" if letter == "x" else "x"
        anchor = self.anchor if self.anchor is not None else other + self.id[1:]
        if anchor != "free" and not (is_axis_id(anchor) and anchor[0] == other):
            raise PatchError(f"{self.id}.anchor must be a {other}-axis id or 'free', got {anchor!r}")
        object.__setattr__(self, "anchor", anchor)
        for attr in ("overlaying", "matches"):
            ref = getattr(self, attr)
            if ref is None:
                continue
            if not (is_axis_id(ref) and ref[0] == letter) or ref == self.id:
                raise PatchError(f"{self.id}.{attr} must be another {letter}-axis id, got {ref!r}")

    @property
    def letter(self) -> str:
        return self.id[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": list(self.domain),
            "range": None if self.range is None else list(self.range),
            "title": self.title,
            "anchor": self.anchor,
            "overlaying": self.overlaying,
            "matches": self.matches,
        }


def default_axes() -> Mapping[str, Axis]:
    """Return the single full-canvas ``x``/``y`` axis set."""
    return MappingProxyType({"x": Axis("x"), "y": Axis("y")})


@dataclass(frozen=True)
class Subplot:
    """An anchored x/y axis pair and the canvas rectangle it occupies."""

    x: str
    y: str
    domain: Domain

    @property
    def axis_ref(self) -> tuple[str, str]:
        return (self.x, self.y)


def subplots(axes: Mapping[str, Axis]) -> list[Subplot]:
    """Return axis sets formed by x-axes anchored to an existing y-axis.

    Overlaying x-axes are skipped; they share the rectangle of the axis they
    overlay.
    """
    found: list[Subplot] = []
    for ax in axes.values():
        if ax.letter != "x" or ax.overlaying is not None:
            continue
        y_axis = axes.get(ax.anchor) if ax.anchor != "free" else None
        if y_axis is None:
            continue
        found.append(Subplot(x=ax.id, y=y_axis.id, domain=Domain(x=ax.domain, y=y_axis.domain)))
    return found


def check_disjoint(regions: Iterable[tuple[str, Domain]]) -> None:
    """Raise ``InvalidGridError`` if two distinct labelled regions overlap.

    Regions with identical rectangles and identical labels are treated as the
    same cell.
    """
    seen: list[tuple[str, Domain]] = []
    for label, domain in regions:
        for other_label, other in seen:
            if label == other_label:
                continue
            if domain.overlaps(other):
                raise InvalidGridError(
                    f"Domains of {other_label} {other.to_dict()} and {label} {domain.to_dict()} overlap"
                )
        seen.append((label, domain))


@dataclass(frozen=True)
class GridSpec:
    """Record of a rows × cols composition: one rectangle per 1-based cell."""

    rows: int
    cols: int
    cells: Mapping[tuple[int, int], Domain] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "cols": self.cols,
            "cells": {f"{r},{c}": d.to_dict() for (r, c), d in self.cells.items()},
        }


__all__ = [
    "Axis",
    "Domain",
    "GridSpec",
    "Subplot",
    "axis_id",
    "check_disjoint",
    "default_axes",
    "is_axis_id",
    "parse_axis_key",
    "plotly_axis_key",
    "subplots",
]
