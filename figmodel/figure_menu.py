"""Declarative menu and slider bindings.

A binding is static data attached to the layout: an ordered list of
user-selectable options, each carrying one update-protocol instruction. The
model never executes a binding on its own; a control surface (see
``figure_controls``) or a caller picks an option and hands its instruction to
``Figure.select``.

Bindings are checked against the owning figure whenever they enter a layout
(``validate_bindings``): stale positional ``visible`` arrays, dangling trace
indices and unknown animation frames are construction-time errors, never
silent no-ops at click time.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional, Union

from .figure_errors import PatchError, UnknownFrameError
from .figure_instructions import (
    Animate,
    Instruction,
    Restyle,
    TransitionSpec,
    Update,
    check_trace_patch_shape,
    instruction_from_dict,
    resolve_trace_indices,
)

MENU_KINDS = ("dropdown", "buttons")
MENU_DIRECTIONS = ("down", "up", "left", "right")


@dataclass(frozen=True)
class MenuOption:
    """One selectable entry: a label bound to an instruction."""

    label: str
    instruction: Instruction

    def __post_init__(self) -> None:
        object.__setattr__(self, "label", str(self.label))
        object.__setattr__(self, "instruction", instruction_from_dict(self.instruction))

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, **self.instruction.to_dict()}

    @classmethod
    def from_value(cls, value: Union["MenuOption", Mapping[str, Any]]) -> "MenuOption":
        """Accept a ``MenuOption`` or a Plotly button ``{"label", "method", "args"}``."""
        if isinstance(value, MenuOption):
            return value
        if not isinstance(value, Mapping):
            raise PatchError(f"menu option must be a mapping, got {type(value).__name__}")
        instruction = value.get("instruction")
        if instruction is None:
            instruction = {"method": value.get("method"), "args": value.get("args")}
        return cls(label=value.get("label", ""), instruction=instruction)


def _coerce_options(options: Iterable[Any]) -> tuple[MenuOption, ...]:
    if isinstance(options, (str, bytes, Mapping)):
        raise PatchError("options must be a sequence of menu options")
    return tuple(MenuOption.from_value(opt) for opt in options)


def _coerce_active(active: Any, count: int) -> int:
    if isinstance(active, bool) or not isinstance(active, int):
        raise PatchError(f"active must be an int, got {active!r}")
    upper = max(count, 1)
    if not -1 <= active < upper:
        raise PatchError(f"active={active} is out of range for {count} option(s)")
    return active


@dataclass(frozen=True)
class MenuBinding:
    """A dropdown or button row of options.

    Parameters
    ----------
    options : sequence of MenuOption or Plotly button mappings
        Ordered options.
    kind : {"dropdown", "buttons"}
        Presentation hint for control surfaces.
    active : int
        Index of the last selected option (``-1`` for none).
    name : str
        Optional identifier.
    direction : {"down", "up", "left", "right"}
        Expansion direction hint.
    x, y : float or None
        Placement hint in paper coordinates.
    """

    options: tuple[MenuOption, ...]
    kind: str = "dropdown"
    active: int = 0
    name: str = ""
    direction: str = "down"
    x: Optional[float] = None
    y: Optional[float] = None

    def __post_init__(self) -> None:
        options = _coerce_options(self.options)
        object.__setattr__(self, "options", options)
        if self.kind not in MENU_KINDS:
            raise PatchError(f"menu kind must be one of {MENU_KINDS}, got {self.kind!r}")
        if self.direction not in MENU_DIRECTIONS:
            raise PatchError(f"menu direction must be one of {MENU_DIRECTIONS}, got {self.direction!r}")
        object.__setattr__(self, "active", _coerce_active(self.active, len(options)))

    def with_active(self, index: int) -> "MenuBinding":
        return dataclasses.replace(self, active=index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "active": self.active,
            "direction": self.direction,
            "x": self.x,
            "y": self.y,
            "options": [opt.to_dict() for opt in self.options],
        }

    @classmethod
    def from_value(cls, value: Union["MenuBinding", Mapping[str, Any]]) -> "MenuBinding":
        """Accept a ``MenuBinding``, its ``to_dict`` form, or a Plotly ``updatemenus`` entry."""
        if isinstance(value, MenuBinding):
            return value
        if not isinstance(value, Mapping):
            raise PatchError(f"menu must be a mapping, got {type(value).__name__}")
        options = value.get("options", value.get("buttons", ()))
        return cls(
            options=options,
            kind=value.get("kind", value.get("type", "dropdown")),
            active=value.get("active", 0),
            name=value.get("name", ""),
            direction=value.get("direction", "down"),
            x=value.get("x"),
            y=value.get("y"),
        )


@dataclass(frozen=True)
class SliderBinding:
    """A slider whose steps are options, typically zero-duration ``Animate`` seeks."""

    steps: tuple[MenuOption, ...]
    active: int = 0
    prefix: str = ""
    name: str = ""

    def __post_init__(self) -> None:
        steps = _coerce_options(self.steps)
        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "active", _coerce_active(self.active, len(steps)))

    @property
    def options(self) -> tuple[MenuOption, ...]:
        return self.steps

    def with_active(self, index: int) -> "SliderBinding":
        return dataclasses.replace(self, active=index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "active": self.active,
            "prefix": self.prefix,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def for_frames(cls, frame_names: Sequence[str], *, prefix: str = "", name: str = "") -> "SliderBinding":
        """Return a slider with one scrubbing step per frame, in frame order."""
        steps = [
            MenuOption(label=frame, instruction=Animate(target=frame, transition=TransitionSpec.immediate()))
            for frame in frame_names
        ]
        return cls(steps=tuple(steps), prefix=prefix, name=name)

    @classmethod
    def from_value(cls, value: Union["SliderBinding", Mapping[str, Any]]) -> "SliderBinding":
        """Accept a ``SliderBinding``, its ``to_dict`` form, or a Plotly ``sliders`` entry."""
        if isinstance(value, SliderBinding):
            return value
        if not isinstance(value, Mapping):
            raise PatchError(f"slider must be a mapping, got {type(value).__name__}")
        prefix = value.get("prefix")
        if prefix is None:
            prefix = (value.get("currentvalue") or {}).get("prefix", "")
        return cls(
            steps=value.get("steps", ()),
            active=value.get("active", 0),
            prefix=prefix,
            name=value.get("name", ""),
        )


Binding = Union[MenuBinding, SliderBinding]


def check_instruction(instruction: Instruction, trace_count: int, frame_names: Sequence[str]) -> None:
    """Check an instruction's static shape against a figure's traces and frames.

    Layout halves are not checked here; they are validated against the actual
    layout when applied.

    Raises
    ------
    ShapeMismatchError
        If a positional array has the wrong length.
    IndexOutOfRangeError
        If a trace index does not exist.
    UnknownFrameError
        If an animate target is not a frame of the figure.
    """
    if isinstance(instruction, (Restyle, Update)):
        patch = instruction.patch if isinstance(instruction, Restyle) else instruction.trace_patch
        targets = resolve_trace_indices(instruction.trace_indices, trace_count)
        check_trace_patch_shape(patch, targets, trace_count)
    elif isinstance(instruction, Animate):
        target = instruction.target
        items = target if isinstance(target, tuple) else (() if target is None else (target,))
        for item in items:
            resolve_frame_target(item, frame_names)


def resolve_frame_target(target: Union[str, int], frame_names: Sequence[str]) -> str:
    """Return the frame name addressed by a name or an index.

    Raises
    ------
    UnknownFrameError
        If the name or index is not present.
    """
    if isinstance(target, int) and not isinstance(target, bool):
        if 0 <= target < len(frame_names):
            return frame_names[target]
        raise UnknownFrameError(f"Frame index {target} is out of range for {len(frame_names)} frame(s)")
    if target in frame_names:
        return target
    raise UnknownFrameError(f"Unknown frame: {target!r}")


def validate_bindings(
    menus: Iterable[MenuBinding],
    sliders: Iterable[SliderBinding],
    *,
    trace_count: int,
    frame_names: Sequence[str],
) -> None:
    """Check every option of every binding; see :func:`check_instruction`."""
    for binding in (*menus, *sliders):
        for option in binding.options:
            check_instruction(option.instruction, trace_count, frame_names)


__all__ = [
    "Binding",
    "MENU_KINDS",
    "MenuBinding",
    "MenuOption",
    "SliderBinding",
    "check_instruction",
    "resolve_frame_target",
    "validate_bindings",
]
