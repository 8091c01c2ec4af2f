"""Legend side-panel manager for per-trace visibility controls.

Purpose
-------
This module defines :class:`LegendPanelManager`, a widget-oriented controller
that renders one legend row per trace of a :class:`~figmodel.Figure.Figure`.
Each row is bound to a trace index and exposes:

- a checkbox toggling the trace between shown (``True``) and
  ``"legendonly"``,
- an ``HTML`` label with the trace name.

Concepts and structure
----------------------
The manager never writes trace state itself. A checkbox change becomes a
``Restyle({"visible": ...}, indices)`` request submitted through an
:class:`~figmodel.instruction_queue.InstructionQueue`, and the rows are
re-synchronized from the committed snapshot in a commit listener.

Architecture notes
------------------
- Traces with ``visible=False`` have no row (Plotly hides their legend entry);
  ``"legendonly"`` traces have an unchecked row.
- Traces sharing a ``legend_group`` toggle together.
- Programmatic checkbox updates during a refresh are suppressed so they are
  not echoed back as new instructions.

Examples
--------
>>> from figmodel import Figure, LegendPanelManager, Trace
>>> fig = Figure([Trace("bar", {"x": ["a"], "y": [1]}, name="counts")])  # doctest: +SKIP
>>> panel = LegendPanelManager(fig)  # doctest: +SKIP
>>> panel.rows[0].toggle.value = False  # doctest: +SKIP
>>> fig.traces[0].visible  # doctest: +SKIP
'legendonly'
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Dict, Optional

import ipywidgets as widgets
from IPython.display import display

from .Figure import Figure
from .FigureSnapshot import FigureSnapshot
from .figure_instructions import Restyle
from .figure_update import RenderDelta
from .instruction_queue import InstructionQueue


@dataclass
class LegendRowModel:
    """Widget and state bundle for one legend row bound to a trace index."""

    trace_index: int
    container: widgets.HBox
    toggle: widgets.Checkbox
    label_widget: widgets.HTML
    is_shown: bool = False


class LegendPanelManager:
    """Manage legend rows and synchronize them with figure commits.

    Parameters
    ----------
    figure:
        Figure whose traces are listed.
    layout_box:
        Container receiving the rows; a new ``VBox`` when omitted.
    queue:
        Queue used to submit visibility changes; a private queue over
        ``figure`` when omitted.
    """

    def __init__(
        self,
        figure: Figure,
        layout_box: Optional[widgets.Box] = None,
        *,
        queue: Optional[InstructionQueue] = None,
    ) -> None:
        self._figure = figure
        self._queue = queue if queue is not None else InstructionQueue(figure)
        self._layout_box = layout_box if layout_box is not None else widgets.VBox()
        self._rows: Dict[int, LegendRowModel] = {}
        self._suspended: set[int] = set()
        self._hook_id = figure.on_commit(self._on_commit)
        self.refresh()

    @property
    def widget(self) -> widgets.Box:
        return self._layout_box

    @property
    def rows(self) -> Dict[int, LegendRowModel]:
        return dict(self._rows)

    @property
    def has_legend(self) -> bool:
        """Return ``True`` when at least one row is shown."""
        return any(row.is_shown for row in self._rows.values())

    def close(self) -> None:
        """Detach from the figure and release the row widgets."""
        self._figure.remove_hook(self._hook_id)
        for row in self._rows.values():
            row.toggle.unobserve_all()
        self._rows.clear()
        self._layout_box.children = ()

    def _on_commit(self, snapshot: FigureSnapshot, delta: RenderDelta) -> None:
        self.refresh(snapshot)

    def refresh(self, snapshot: Optional[FigureSnapshot] = None) -> None:
        """Synchronize row widgets with ``snapshot`` (default: the figure's current one)."""
        snapshot = snapshot if snapshot is not None else self._figure.snapshot()
        for stale in [i for i in self._rows if i >= snapshot.trace_count]:
            self._rows.pop(stale).toggle.unobserve_all()

        shown: list[widgets.Widget] = []
        for index, trace in enumerate(snapshot.traces):
            row = self._rows.get(index)
            if row is None:
                row = self._rows[index] = self._create_row(index)
            self._sync_row_widgets(row=row, name=trace.name, visible=trace.visible)
            row.is_shown = snapshot.layout.showlegend and trace.visible is not False
            if row.is_shown:
                shown.append(row.container)
        desired_children = tuple(shown)
        if self._layout_box.children != desired_children:
            self._layout_box.children = desired_children

    def _create_row(self, index: int) -> LegendRowModel:
        toggle = widgets.Checkbox(
            value=False,
            description="",
            indent=False,
            layout=widgets.Layout(width="28px", min_width="28px", margin="0"),
        )
        label_widget = widgets.HTML(value="", layout=widgets.Layout(margin="0", width="100%"))
        container = widgets.HBox(
            [toggle, label_widget],
            layout=widgets.Layout(width="100%", align_items="center", margin="0"),
        )
        toggle.observe(lambda change, i=index: self._on_toggle_changed(i, change), names="value")
        return LegendRowModel(trace_index=index, container=container, toggle=toggle, label_widget=label_widget)

    def _sync_row_widgets(self, *, row: LegendRowModel, name: str, visible: Any) -> None:
        label = html.escape(name or f"trace {row.trace_index}")
        if row.label_widget.value != label:
            row.label_widget.value = label

        target_value = visible is True
        if row.toggle.value != target_value:
            self._suspended.add(row.trace_index)
            try:
                row.toggle.value = target_value
            finally:
                self._suspended.discard(row.trace_index)

    def _group_indices(self, index: int) -> list[int]:
        traces = self._figure.traces
        group = traces[index].legend_group
        if group is None:
            return [index]
        return [i for i, trace in enumerate(traces) if trace.legend_group == group]

    def _on_toggle_changed(self, index: int, change: Dict[str, Any]) -> None:
        """Submit a visibility restyle for a user checkbox toggle."""
        if change.get("name") != "value":
            return
        if index in self._suspended:
            return
        visible = True if change.get("new") else "legendonly"
        self._queue.submit(Restyle({"visible": visible}, self._group_indices(index)))

    def _ipython_display_(self, **kwargs: Any) -> None:
        display(self._layout_box)


__all__ = ["LegendPanelManager", "LegendRowModel"]
