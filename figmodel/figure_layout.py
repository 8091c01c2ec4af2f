"""Figure-wide presentation state and the relayout merge.

Purpose
-------
Defines ``Layout`` (title, font, legend, axes, annotations, menu and slider
bindings, grid record) and :func:`merge_layout_patch`, the deep merge behind
the ``relayout`` instruction.

Concepts and structure
----------------------
A relayout patch is a nested mapping over a closed set of keys
(``figure_options.LAYOUT_PATCH_OPTIONS``). Before merging it is normalized:

- dotted keys expand into nested mappings (``"x.title"`` -> ``{"x": {"title": ..}}``),
- Plotly axis keys map to axis ids (``"xaxis2"`` -> ``"x2"``),
- entries addressing the same key are deep-merged together.

Merge rules:

- nested mappings (``font``, ``legend``, axes) merge field by field, so a
  patch to ``x.title`` keeps the sibling ``x.range``;
- sequences (``annotations``, ``menus``, ``sliders``) replace wholesale;
- ``None`` resets a field to its default, or removes an axis.

Important gotchas
-----------------
Merging only produces a candidate layout. Cross-checks that need the traces
(axis-ref resolution, domain overlap, binding shapes) run in
``figure_update`` before anything is committed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Optional

from .figure_axes import Axis, GridSpec, default_axes, parse_axis_key
from .figure_errors import PatchError
from .figure_menu import MenuBinding, SliderBinding
from .figure_options import (
    AXIS_FIELDS,
    DEFAULT_FONT,
    FONT_FIELDS,
    LAYOUT_PATCH_ALIASES,
    LAYOUT_PATCH_OPTIONS,
    LEGEND_FIELDS,
)


@dataclass(frozen=True)
class Annotation:
    """A text label placed in paper (or axis) coordinates."""

    text: str
    x: float = 0.5
    y: float = 1.0
    xref: str = "paper"
    yref: str = "paper"
    showarrow: bool = False

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_value(cls, value: Any) -> "Annotation":
        if isinstance(value, Annotation):
            return value
        if not isinstance(value, Mapping):
            raise PatchError(f"annotation must be a mapping, got {type(value).__name__}")
        unknown = set(value) - {f.name for f in dataclasses.fields(cls)}
        if unknown:
            raise PatchError(f"annotation does not accept field(s): {', '.join(sorted(unknown))}")
        return cls(**value)


def _sequence(value: Any, *, what: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        raise PatchError(f"{what} must be a sequence, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Layout:
    """Figure-wide presentation state.

    Parameters
    ----------
    title : str
        Figure title.
    font : mapping
        Global font (``family``, ``size``, ``color``).
    showlegend : bool
        Whether renderers draw a legend.
    legend : mapping
        Legend placement (``orientation``, ``x``, ``y``).
    width, height : int or None
        Pixel size hints.
    axes : mapping[str, Axis]
        Axes by id; defaults to one full-canvas ``x``/``y`` pair.
    annotations : tuple[Annotation, ...]
        Text annotations.
    menus : tuple[MenuBinding, ...]
        Dropdown/button bindings.
    sliders : tuple[SliderBinding, ...]
        Slider bindings.
    grid : GridSpec or None
        Record of the grid composition that produced the axes, if any.
    """

    title: str = ""
    font: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_FONT))
    showlegend: bool = True
    legend: Mapping[str, Any] = field(default_factory=dict)
    width: Optional[int] = None
    height: Optional[int] = None
    axes: Mapping[str, Axis] = field(default_factory=default_axes)
    annotations: tuple[Annotation, ...] = ()
    menus: tuple[MenuBinding, ...] = ()
    sliders: tuple[SliderBinding, ...] = ()
    grid: Optional[GridSpec] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "title", _coerce_title(self.title))
        object.__setattr__(self, "font", MappingProxyType(_check_fields(self.font, FONT_FIELDS, "font")))
        object.__setattr__(self, "legend", MappingProxyType(_check_fields(self.legend, LEGEND_FIELDS, "legend")))
        object.__setattr__(self, "showlegend", bool(self.showlegend))
        object.__setattr__(self, "width", _coerce_size(self.width, "width"))
        object.__setattr__(self, "height", _coerce_size(self.height, "height"))
        axes: dict[str, Axis] = {}
        for key, ax in dict(self.axes).items():
            if not isinstance(ax, Axis):
                ax = Axis(key, **_check_fields(ax, AXIS_FIELDS, key))
            if ax.id != key:
                raise PatchError(f"axis stored under {key!r} has id {ax.id!r}")
            axes[key] = ax
        object.__setattr__(self, "axes", MappingProxyType(axes))
        object.__setattr__(
            self,
            "annotations",
            tuple(Annotation.from_value(a) for a in _sequence(self.annotations, what="annotations")),
        )
        object.__setattr__(
            self, "menus", tuple(MenuBinding.from_value(m) for m in _sequence(self.menus, what="menus"))
        )
        object.__setattr__(
            self, "sliders", tuple(SliderBinding.from_value(s) for s in _sequence(self.sliders, what="sliders"))
        )

    def replace(self, **changes: Any) -> "Layout":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "font": dict(self.font),
            "showlegend": self.showlegend,
            "legend": dict(self.legend),
            "width": self.width,
            "height": self.height,
            "axes": {key: ax.to_dict() for key, ax in self.axes.items()},
            "annotations": [a.to_dict() for a in self.annotations],
            "menus": [m.to_dict() for m in self.menus],
            "sliders": [s.to_dict() for s in self.sliders],
            "grid": None if self.grid is None else self.grid.to_dict(),
        }


def _coerce_title(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Mapping):
        return str(value.get("text", ""))
    return str(value)


def _coerce_size(value: Any, what: str) -> Optional[int]:
    if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
        raise PatchError(f"{what} must be a positive int or None, got {value!r}")
    return value


def _check_fields(value: Any, allowed: frozenset[str], what: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise PatchError(f"{what} must be a mapping, got {type(value).__name__}")
    unknown = set(value) - allowed
    if unknown:
        raise PatchError(f"{what} does not accept field(s): {', '.join(sorted(unknown))}")
    return dict(value)


def _deep_merge_into(target: dict[str, Any], key: str, value: Any) -> None:
    existing = target.get(key)
    if isinstance(existing, dict) and isinstance(value, Mapping):
        for sub_key, sub_value in value.items():
            _deep_merge_into(existing, sub_key, sub_value)
    elif isinstance(value, Mapping):
        target[key] = {}
        for sub_key, sub_value in value.items():
            _deep_merge_into(target[key], sub_key, sub_value)
    else:
        target[key] = value


def normalize_layout_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Expand dotted keys and axis aliases into one nested patch.

    Raises
    ------
    PatchError
        If a top-level key is not a layout field or axis key.
    """
    nested: dict[str, Any] = {}
    for raw_key, value in patch.items():
        head, _, rest = str(raw_key).partition(".")
        axis = parse_axis_key(head)
        key = axis if axis is not None else LAYOUT_PATCH_ALIASES.get(head, head)
        if axis is None and key not in LAYOUT_PATCH_OPTIONS:
            raise PatchError(
                f"Unknown relayout field {raw_key!r}. Supported fields: "
                f"{', '.join(k for k in LAYOUT_PATCH_OPTIONS if k != '<axis id>')} and axis ids"
            )
        if rest:
            for part in reversed(rest.split(".")):
                value = {part: value}
        _deep_merge_into(nested, key, value)
    return nested


def _merge_fields(
    current: Mapping[str, Any], patch: Any, *, allowed: frozenset[str], defaults: Mapping[str, Any], what: str
) -> dict[str, Any]:
    if patch is None:
        return dict(defaults)
    merged = dict(current)
    for key, value in _check_fields(patch, allowed, what).items():
        if value is None:
            if key in defaults:
                merged[key] = defaults[key]
            else:
                merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def _merge_axis(current: Optional[Axis], axis: str, patch: Any) -> Optional[Axis]:
    if patch is None:
        return None
    fields = _check_fields(patch, AXIS_FIELDS, axis)
    base = current if current is not None else Axis(axis)
    defaults = Axis(axis)
    changes = {name: (getattr(defaults, name) if value is None else value) for name, value in fields.items()}
    return dataclasses.replace(base, **changes)


def _paths(prefix: str, value: Any) -> list[str]:
    if isinstance(value, Mapping) and value:
        out: list[str] = []
        for key, sub in value.items():
            out.extend(_paths(f"{prefix}.{key}", sub))
        return out
    return [prefix]


def merge_layout_patch(layout: Layout, patch: Mapping[str, Any]) -> tuple[Layout, tuple[str, ...]]:
    """Return ``(merged_layout, changed_paths)`` for a relayout patch.

    The input layout is never modified. Merging an identical patch twice
    yields the same layout as merging it once.

    Raises
    ------
    PatchError
        On unknown keys or malformed values.
    """
    nested = normalize_layout_patch(patch)
    changes: dict[str, Any] = {}
    axes = dict(layout.axes)
    axes_changed = False
    paths: list[str] = []

    for key, value in nested.items():
        paths.extend(_paths(key, value))
        axis = parse_axis_key(key)
        if axis is not None:
            merged = _merge_axis(axes.get(axis), axis, value)
            if merged is None:
                axes.pop(axis, None)
            else:
                axes[axis] = merged
            axes_changed = True
        elif key == "title":
            changes["title"] = _coerce_title(value)
        elif key == "font":
            changes["font"] = _merge_fields(layout.font, value, allowed=FONT_FIELDS, defaults=DEFAULT_FONT, what="font")
        elif key == "legend":
            changes["legend"] = _merge_fields(layout.legend, value, allowed=LEGEND_FIELDS, defaults={}, what="legend")
        elif key == "showlegend":
            changes["showlegend"] = True if value is None else bool(value)
        elif key in ("width", "height"):
            changes[key] = _coerce_size(value, key)
        elif key in ("annotations", "menus", "sliders"):
            changes[key] = () if value is None else tuple(_sequence(value, what=key))

    if axes_changed:
        changes["axes"] = axes
    if not changes:
        return layout, tuple(paths)
    return layout.replace(**changes), tuple(paths)


__all__ = ["Annotation", "Layout", "merge_layout_patch", "normalize_layout_patch"]
