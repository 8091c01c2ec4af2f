"""Notebook control surface for menu and slider bindings.

Purpose
-------
:class:`ControlPanel` turns the ``menus`` and ``sliders`` of a figure's layout
into ipywidgets:

- ``kind="dropdown"`` menus become a ``Dropdown``,
- ``kind="buttons"`` menus become a row of ``Button`` widgets,
- sliders become a ``SelectionSlider`` plus a ``Play`` widget.

Every user selection is submitted through an
:class:`~figmodel.instruction_queue.InstructionQueue` as ``select``/``seek``
requests. The core has no UI, so surfacing a rejected option is this module's
job: a failing dropdown option is removed, a failing button or slider step is
disabled, and the error is recorded in :attr:`ControlPanel.errors`.

Gotchas
-------
- Widgets are re-synchronized from committed snapshots. Programmatic widget
  updates are suppressed so they are not echoed back as selections.
- A relayout that replaces ``menus`` or ``sliders`` rebuilds the widgets.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Optional

import ipywidgets as widgets
from IPython.display import display

from .Figure import Figure
from .FigureSnapshot import FigureSnapshot
from .figure_instructions import Animate
from .figure_menu import MenuBinding, SliderBinding
from .figure_options import DEFAULT_FRAME_MS
from .figure_update import RenderDelta
from .instruction_queue import InstructionQueue


@dataclass
class ControlError:
    """A rejected option: which binding, which option, and why."""

    kind: str
    binding_index: int
    option_index: int
    label: str
    error: BaseException


@dataclass
class _MenuControl:
    binding: MenuBinding
    widget: widgets.Widget
    buttons: list[widgets.Button] = field(default_factory=list)
    failed: set[int] = field(default_factory=set)


@dataclass
class _SliderControl:
    binding: SliderBinding
    widget: widgets.Widget
    slider: widgets.SelectionSlider
    play: widgets.Play
    failed: set[int] = field(default_factory=set)


def _play_interval(binding: SliderBinding) -> int:
    for step in binding.steps:
        instruction = step.instruction
        if isinstance(instruction, Animate) and instruction.transition.frame_duration > 0:
            return int(instruction.transition.frame_duration)
    return int(DEFAULT_FRAME_MS)


def _dropdown_value(binding: MenuBinding) -> Optional[int]:
    # Dropdown values must name an existing option; None clears the selection.
    return binding.active if 0 <= binding.active < len(binding.options) else None


class ControlPanel:
    """Widgets for every menu and slider binding of a figure.

    Parameters
    ----------
    figure:
        Figure whose layout bindings are rendered.
    queue:
        Queue used to submit selections; a private queue over ``figure``
        when omitted.
    """

    def __init__(self, figure: Figure, *, queue: Optional[InstructionQueue] = None) -> None:
        self._figure = figure
        # Rejections are recorded in ``errors`` from the futures.
        self._queue = queue if queue is not None else InstructionQueue(figure, on_error=lambda exc, request: None)
        self._menus: list[_MenuControl] = []
        self._sliders: list[_SliderControl] = []
        self._suspended = False
        self.errors: list[ControlError] = []
        self._box = widgets.VBox()
        self._hook_id = figure.on_commit(self._on_commit)
        self._rebuild(figure.snapshot())

    @property
    def widget(self) -> widgets.VBox:
        return self._box

    @property
    def menu_widgets(self) -> list[widgets.Widget]:
        return [control.widget for control in self._menus]

    @property
    def slider_widgets(self) -> list[widgets.SelectionSlider]:
        return [control.slider for control in self._sliders]

    @property
    def play_widgets(self) -> list[widgets.Play]:
        return [control.play for control in self._sliders]

    def close(self) -> None:
        self._figure.remove_hook(self._hook_id)
        self._box.children = ()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _rebuild(self, snapshot: FigureSnapshot) -> None:
        self._menus = [self._build_menu(i, m) for i, m in enumerate(snapshot.layout.menus)]
        self._sliders = [self._build_slider(i, s) for i, s in enumerate(snapshot.layout.sliders)]
        self._box.children = tuple(c.widget for c in self._menus) + tuple(c.widget for c in self._sliders)

    def _build_menu(self, index: int, binding: MenuBinding) -> _MenuControl:
        if binding.kind == "dropdown":
            dropdown = widgets.Dropdown(
                options=[(opt.label, j) for j, opt in enumerate(binding.options)],
                value=_dropdown_value(binding),
                description=binding.name,
            )
            dropdown.observe(lambda change, i=index: self._on_menu_changed(i, change), names="value")
            return _MenuControl(binding=binding, widget=dropdown)

        buttons = []
        for j, opt in enumerate(binding.options):
            button = widgets.Button(description=opt.label)
            button.on_click(lambda _button, i=index, j=j: self._select(i, j))
            buttons.append(button)
        box_type = widgets.VBox if binding.direction in ("down", "up") else widgets.HBox
        control = _MenuControl(binding=binding, widget=box_type(buttons), buttons=buttons)
        self._style_buttons(control)
        return control

    def _build_slider(self, index: int, binding: SliderBinding) -> _SliderControl:
        count = len(binding.steps)
        options = [(step.label, j) for j, step in enumerate(binding.steps)] or [("", 0)]
        slider = widgets.SelectionSlider(
            options=options,
            value=max(binding.active, 0),
            description=binding.prefix,
            continuous_update=False,
            disabled=count == 0,
        )
        play = widgets.Play(
            value=max(binding.active, 0),
            min=0,
            max=max(count - 1, 0),
            step=1,
            interval=_play_interval(binding),
            disabled=count == 0,
        )
        slider.observe(lambda change, i=index: self._on_slider_changed(i, change), names="value")
        play.observe(lambda change, i=index: self._on_slider_changed(i, change), names="value")
        return _SliderControl(binding=binding, widget=widgets.HBox([play, slider]), slider=slider, play=play)

    # ------------------------------------------------------------------
    # User events
    # ------------------------------------------------------------------

    def _on_menu_changed(self, index: int, change: dict[str, Any]) -> None:
        if self._suspended or change.get("new") is None:
            return
        self._select(index, change["new"])

    def _on_slider_changed(self, index: int, change: dict[str, Any]) -> None:
        if self._suspended:
            return
        step = change.get("new")
        if step is None or step in self._sliders[index].failed:
            return
        future = self._queue.seek(step, index)
        future.add_done_callback(lambda f, i=index, j=step: self._on_result(f, "slider", i, j))

    def _select(self, index: int, option_index: int) -> None:
        if option_index in self._menus[index].failed:
            return
        future = self._queue.select(index, option_index)
        future.add_done_callback(lambda f, i=index, j=option_index: self._on_result(f, "menu", i, j))

    def _on_result(self, future: Future, kind: str, index: int, option_index: int) -> None:
        exc = future.exception()
        if exc is None:
            return
        controls = self._menus if kind == "menu" else self._sliders
        if index >= len(controls):
            return
        control = controls[index]
        options = control.binding.options
        label = options[option_index].label if option_index < len(options) else str(option_index)
        self.errors.append(ControlError(kind, index, option_index, label, exc))
        control.failed.add(option_index)
        self._mark_failed(control)

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    def _mark_failed(self, control: Any) -> None:
        self._suspended = True
        try:
            if isinstance(control, _SliderControl):
                labels = [(s.label, j) for j, s in enumerate(control.binding.steps) if j not in control.failed]
                if labels:
                    control.slider.options = labels
                else:
                    control.slider.disabled = True
                    control.play.disabled = True
            elif control.buttons:
                self._style_buttons(control)
            else:
                kept = [(o.label, j) for j, o in enumerate(control.binding.options) if j not in control.failed]
                control.widget.options = kept
                active = control.binding.active
                control.widget.value = active if active in {j for _, j in kept} else None
        finally:
            self._suspended = False

    def _style_buttons(self, control: _MenuControl) -> None:
        for j, button in enumerate(control.buttons):
            button.disabled = j in control.failed
            button.button_style = "info" if j == control.binding.active else ""

    def _on_commit(self, snapshot: FigureSnapshot, delta: RenderDelta) -> None:
        menus = snapshot.layout.menus
        sliders = snapshot.layout.sliders
        same_shape = len(menus) == len(self._menus) and len(sliders) == len(self._sliders)
        if not same_shape or any(
            len(b.options) != len(c.binding.options) for b, c in zip((*menus, *sliders), (*self._menus, *self._sliders))
        ):
            self._rebuild(snapshot)
            return

        self._suspended = True
        try:
            for binding, control in zip(menus, self._menus):
                control.binding = binding
                if control.buttons:
                    self._style_buttons(control)
                elif binding.active not in control.failed:
                    control.widget.value = _dropdown_value(binding)
            for binding, control in zip(sliders, self._sliders):
                control.binding = binding
                if binding.active >= 0 and binding.active not in control.failed:
                    control.slider.value = binding.active
                    control.play.value = binding.active
        finally:
            self._suspended = False

    def _ipython_display_(self, **kwargs: Any) -> None:
        display(self._box)


__all__ = ["ControlError", "ControlPanel"]
