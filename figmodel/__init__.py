"""Top-level public API for the ``figmodel`` package.

This module re-exports the figure model, the update protocol, grid
composition, and the notebook control surfaces so users can import from a
single namespace, for example:

>>> from figmodel import Figure, GridComposer, Trace  # doctest: +SKIP

Lower-level building blocks (snapshots, instruction records, the animation
state machine and the Plotly export adapter) are exported as well for
renderers and other integrations.
"""

from .Figure import Figure
from .FigureSnapshot import FigureSnapshot
from .figure_animation import AnimationState, Idle, Interpolated, Showing, Transitioning
from .figure_axes import Axis, Domain, GridSpec, Subplot, subplots
from .figure_controls import ControlError, ControlPanel
from .figure_errors import (
    AxisRefResolutionError,
    FigureModelError,
    IndexOutOfRangeError,
    InvalidGridError,
    PatchError,
    PayloadKindMismatchError,
    ShapeMismatchError,
    UnknownFrameError,
)
from .figure_frames import Frame
from .figure_grid import GridComposer, compose_grid, facet
from .figure_instructions import (
    Animate,
    Instruction,
    Relayout,
    Restyle,
    TransitionSpec,
    Update,
    instruction_from_dict,
)
from .figure_layout import Annotation, Layout
from .figure_legend import LegendPanelManager
from .figure_menu import MenuBinding, MenuOption, SliderBinding
from .figure_options import LAYOUT_PATCH_OPTIONS, TRACE_PATCH_OPTIONS
from .figure_trace import Trace, TraceKind
from .figure_update import RenderDelta, animate, apply_instruction, relayout, restyle, update
from .instruction_queue import InstructionQueue
from .plotly_export import to_plotly_dict, to_plotly_figure

__all__ = [
    "Animate",
    "AnimationState",
    "Annotation",
    "Axis",
    "AxisRefResolutionError",
    "ControlError",
    "ControlPanel",
    "Domain",
    "Figure",
    "FigureModelError",
    "FigureSnapshot",
    "Frame",
    "GridComposer",
    "GridSpec",
    "Idle",
    "IndexOutOfRangeError",
    "Instruction",
    "InstructionQueue",
    "Interpolated",
    "InvalidGridError",
    "LAYOUT_PATCH_OPTIONS",
    "Layout",
    "LegendPanelManager",
    "MenuBinding",
    "MenuOption",
    "PatchError",
    "PayloadKindMismatchError",
    "Relayout",
    "RenderDelta",
    "Restyle",
    "ShapeMismatchError",
    "Showing",
    "SliderBinding",
    "Subplot",
    "TRACE_PATCH_OPTIONS",
    "Trace",
    "TraceKind",
    "Transitioning",
    "TransitionSpec",
    "UnknownFrameError",
    "Update",
    "animate",
    "apply_instruction",
    "compose_grid",
    "facet",
    "instruction_from_dict",
    "relayout",
    "restyle",
    "subplots",
    "to_plotly_dict",
    "to_plotly_figure",
    "update",
]
