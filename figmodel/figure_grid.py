"""Grid composition: place traces into a rows × cols arrangement of axis sets.

Purpose
-------
``GridComposer`` partitions the unit canvas into ``rows × cols`` cells
(even split by default, or proportional to column/row weights), creates one
anchored ``x{k}``/``y{k}`` axis pair per cell, and binds every placed trace to
its cell. ``facet`` builds on it: one trace-producing rule replicated once per
category value, each replica placed in the next cell, with shared axes.

Conventions
-----------
- Row 1 is the top row; cell ``(r, c)`` has index ``k = (r - 1) * cols + c``
  and axes ``x{k}``/``y{k}`` (plain ``x``/``y`` for ``k == 1``).
- Cells that hold only axis-less traces (pie, table) get no axes; those
  traces receive the cell rectangle as their ``domain``.
- With zero spacing the cells tile ``[0, 1]²`` exactly: neighbouring cells
  share their boundary value, the first boundary is ``0.0`` and the last is
  ``1.0``.
- Shared axes use ``matches`` on every non-primary axis, pointing at the
  first cell that has axes.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Optional, Union

import numpy as np

from .Figure import Figure
from .InputConvert import InputConvert
from .figure_axes import Axis, Domain, GridSpec, axis_id
from .figure_errors import InvalidGridError
from .figure_frames import Frame
from .figure_layout import Annotation, Layout
from .figure_menu import MenuBinding, SliderBinding
from .figure_trace import Trace


def _positive_int(value: Any, what: str) -> int:
    try:
        n = InputConvert(value, int, truncate=False)
    except ValueError as e:
        raise InvalidGridError(f"{what} must be a positive integer, got {value!r}") from e
    if n < 1:
        raise InvalidGridError(f"{what} must be a positive integer, got {value!r}")
    return n


def _spacing(value: Any, what: str) -> float:
    try:
        s = InputConvert(value, float)
    except ValueError as e:
        raise InvalidGridError(f"{what} must be a finite number, got {value!r}") from e
    if s < 0:
        raise InvalidGridError(f"{what} must be >= 0, got {s}")
    return s


def _weights(weights: Optional[Sequence[Any]], n: int, what: str) -> np.ndarray:
    if weights is None:
        return np.ones(n)
    try:
        values = [InputConvert(w, float) for w in weights]
    except (TypeError, ValueError) as e:
        raise InvalidGridError(f"{what} must be finite numbers, got {weights!r}") from e
    if len(values) != n:
        raise InvalidGridError(f"{what} has {len(values)} entries for {n} cell(s)")
    arr = np.asarray(values, dtype=float)
    if np.any(arr <= 0):
        raise InvalidGridError(f"{what} must all be > 0, got {values!r}")
    return arr


def partition(weights: np.ndarray, spacing: float) -> list[tuple[float, float]]:
    """Split ``[0, 1]`` into ``len(weights)`` intervals separated by ``spacing``.

    Raises
    ------
    InvalidGridError
        If the gaps leave no room for the cells.
    """
    n = len(weights)
    usable = 1.0 - spacing * (n - 1)
    if usable <= 0:
        raise InvalidGridError(f"spacing {spacing} leaves no room for {n} cells")
    edges = np.concatenate(([0.0], np.cumsum(weights)))
    edges = edges / edges[-1] * usable
    intervals = []
    for i in range(n):
        lo = float(edges[i]) + i * spacing
        hi = 1.0 if i == n - 1 else float(edges[i + 1]) + i * spacing
        intervals.append((lo, hi))
    return intervals


class GridComposer:
    """Assign traces to cells of a rows × cols grid and build a ``Figure``.

    Parameters
    ----------
    rows, cols : int
        Grid shape (both >= 1).
    column_widths, row_heights : sequence of float, optional
        Relative weights (any positive scale); even split when omitted.
        ``row_heights[0]`` is the top row.
    shared_x, shared_y : bool, optional
        Make every non-primary x (y) axis match the primary one.
    horizontal_spacing, vertical_spacing : float, optional
        Gap between neighbouring cells, in canvas fractions.

    Raises
    ------
    InvalidGridError
        On a non-positive shape, weights of the wrong length or sign, or
        spacing that leaves no room for the cells.

    Examples
    --------
    >>> from figmodel import GridComposer, Trace
    >>> grid = GridComposer(1, 2)
    >>> grid.add(Trace("bar", {"x": ["a"], "y": [1]}), row=1, col=2)
    0
    >>> grid.build().traces[0].axis_ref
    ('x2', 'y2')
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        *,
        column_widths: Optional[Sequence[float]] = None,
        row_heights: Optional[Sequence[float]] = None,
        shared_x: bool = False,
        shared_y: bool = False,
        horizontal_spacing: float = 0.0,
        vertical_spacing: float = 0.0,
    ) -> None:
        self._rows = _positive_int(rows, "rows")
        self._cols = _positive_int(cols, "cols")
        self._shared_x = bool(shared_x)
        self._shared_y = bool(shared_y)
        self._x_intervals = partition(
            _weights(column_widths, self._cols, "column_widths"),
            _spacing(horizontal_spacing, "horizontal_spacing"),
        )
        # Intervals are computed top-down and flipped so row 1 sits at the top.
        top_down = partition(
            _weights(row_heights, self._rows, "row_heights"),
            _spacing(vertical_spacing, "vertical_spacing"),
        )
        self._y_intervals = [(1.0 - hi, 1.0 - lo) for lo, hi in top_down]
        self._placed: list[tuple[Trace, int, int]] = []

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    def _check_cell(self, row: int, col: int) -> None:
        if not (isinstance(row, int) and isinstance(col, int)) or isinstance(row, bool) or isinstance(col, bool):
            raise InvalidGridError(f"cell must be addressed by integers, got ({row!r}, {col!r})")
        if not (1 <= row <= self._rows and 1 <= col <= self._cols):
            raise InvalidGridError(
                f"Cell ({row}, {col}) is outside the {self._rows}x{self._cols} grid"
            )

    def cell_index(self, row: int, col: int) -> int:
        self._check_cell(row, col)
        return (row - 1) * self._cols + col

    def cell_domain(self, row: int, col: int) -> Domain:
        """Return the canvas rectangle of cell ``(row, col)``."""
        self._check_cell(row, col)
        return Domain(x=self._x_intervals[col - 1], y=self._y_intervals[row - 1])

    def add(self, trace: Union[Trace, Mapping[str, Any]], row: int = 1, col: int = 1) -> int:
        """Place ``trace`` in cell ``(row, col)`` and return its figure index."""
        self._check_cell(row, col)
        if isinstance(trace, Mapping):
            trace = Trace(**trace)
        elif not isinstance(trace, Trace):
            raise TypeError(f"trace must be a Trace or a mapping, got {type(trace).__name__}")
        self._placed.append((trace, row, col))
        return len(self._placed) - 1

    def _cell_axes(self) -> dict[tuple[int, int], Optional[tuple[str, str]]]:
        kinds: dict[tuple[int, int], list[bool]] = {}
        for trace, row, col in self._placed:
            kinds.setdefault((row, col), []).append(trace.kind.axisless)
        out: dict[tuple[int, int], Optional[tuple[str, str]]] = {}
        for row in range(1, self._rows + 1):
            for col in range(1, self._cols + 1):
                flags = kinds.get((row, col), [])
                if flags and all(flags):
                    out[(row, col)] = None
                    continue
                if any(flags):
                    raise InvalidGridError(
                        f"Cell ({row}, {col}) mixes axis-less and axis-bound traces"
                    )
                k = self.cell_index(row, col)
                out[(row, col)] = (axis_id("x", k), axis_id("y", k))
        return out

    def layout(
        self,
        *,
        title: str = "",
        annotations: Iterable[Any] = (),
        menus: Iterable[Any] = (),
        sliders: Iterable[Any] = (),
    ) -> Layout:
        """Return the layout for the current placements."""
        cell_axes = self._cell_axes()
        axes: dict[str, Axis] = {}
        primary: Optional[tuple[str, str]] = None
        for (row, col), ref in cell_axes.items():
            if ref is None:
                continue
            if primary is None:
                primary = ref
            domain = self.cell_domain(row, col)
            x_id, y_id = ref
            axes[x_id] = Axis(
                x_id,
                domain=domain.x,
                anchor=y_id,
                matches=primary[0] if self._shared_x and x_id != primary[0] else None,
            )
            axes[y_id] = Axis(
                y_id,
                domain=domain.y,
                anchor=x_id,
                matches=primary[1] if self._shared_y and y_id != primary[1] else None,
            )
        grid = GridSpec(
            rows=self._rows,
            cols=self._cols,
            cells={cell: self.cell_domain(*cell) for cell in cell_axes},
        )
        return Layout(
            title=title,
            axes=axes,
            annotations=tuple(annotations),
            menus=tuple(menus),
            sliders=tuple(sliders),
            grid=grid,
        )

    def placed_traces(self) -> tuple[Trace, ...]:
        """Return the placed traces bound to their cells, in placement order."""
        cell_axes = self._cell_axes()
        out = []
        for trace, row, col in self._placed:
            ref = cell_axes[(row, col)]
            if ref is None:
                out.append(trace.replace(domain=self.cell_domain(row, col)))
            else:
                out.append(trace.replace(axis_ref=ref))
        return tuple(out)

    def build(
        self,
        *,
        title: Optional[str] = None,
        frames: Iterable[Union[Frame, Mapping[str, Any]]] = (),
        menus: Iterable[Union[MenuBinding, Mapping[str, Any]]] = (),
        sliders: Iterable[Union[SliderBinding, Mapping[str, Any]]] = (),
        annotations: Iterable[Union[Annotation, Mapping[str, Any]]] = (),
    ) -> Figure:
        """Assemble and validate a ``Figure`` from the placements.

        Raises
        ------
        InvalidGridError
            If a cell mixes axis-less and axis-bound traces.
        FigureModelError
            Any assembly validation error (frames, bindings, payloads).
        """
        layout = self.layout(
            title=title or "",
            annotations=annotations,
            menus=menus,
            sliders=sliders,
        )
        return Figure(self.placed_traces(), layout, frames)

    def __repr__(self) -> str:
        return f"GridComposer(rows={self._rows}, cols={self._cols}, traces={len(self._placed)})"


def compose_grid(
    rows: int,
    cols: int,
    assignments: Iterable[Union[Trace, tuple[Any, ...]]],
    **kwargs: Any,
) -> Figure:
    """Build a figure from ``(trace, row, col)`` assignments in one call.

    A bare trace (or a 1-tuple) goes to cell ``(1, 1)``. Keyword arguments
    ``title``, ``frames``, ``menus``, ``sliders`` and ``annotations`` go to
    :meth:`GridComposer.build`; the rest configure the composer.
    """
    build_keys = {"title", "frames", "menus", "sliders", "annotations"}
    build_kwargs = {k: kwargs.pop(k) for k in list(kwargs) if k in build_keys}
    composer = GridComposer(rows, cols, **kwargs)
    for item in assignments:
        if isinstance(item, tuple):
            composer.add(*item)
        else:
            composer.add(item)
    return composer.build(**build_kwargs)


def _group_records(records: Iterable[Any], by: Union[str, Callable[[Any], Any]]) -> dict[Any, list[Any]]:
    key = by if callable(by) else (lambda record: record[by])
    groups: dict[Any, list[Any]] = {}
    for record in records:
        groups.setdefault(key(record), []).append(record)
    return groups


def facet(
    records: Iterable[Any],
    by: Union[str, Callable[[Any], Any]],
    rule: Callable[[Any, list[Any]], Union[Trace, Mapping[str, Any]]],
    *,
    wrap: Optional[int] = None,
    direction: str = "col",
    titles: bool = True,
    title: Optional[str] = None,
    **grid_kwargs: Any,
) -> Figure:
    """Replicate ``rule`` once per category of ``by`` across grid cells.

    Parameters
    ----------
    records : iterable
        Tabular records (typically mappings).
    by : str or callable
        Record key (or key function) whose values define the categories.
        Categories keep first-appearance order.
    rule : callable
        ``rule(category, records_in_category) -> Trace``.
    wrap : int, optional
        Cells per line before wrapping; defaults to one line.
    direction : {"col", "row"}
        ``"col"`` fills successive columns (then wraps to the next row);
        ``"row"`` fills successive rows (then wraps to the next column).
    titles : bool
        Add a ``"by=value"`` annotation above each cell.
    **grid_kwargs
        Forwarded to :class:`GridComposer`; axes are shared unless
        ``shared_x``/``shared_y`` are given.

    Raises
    ------
    InvalidGridError
        If there are no records, ``wrap`` is not positive, or ``direction``
        is unknown.
    """
    if direction not in ("col", "row"):
        raise InvalidGridError(f"direction must be 'col' or 'row', got {direction!r}")
    groups = _group_records(records, by)
    if not groups:
        raise InvalidGridError("facet needs at least one record")
    n = len(groups)
    line = n if wrap is None else min(_positive_int(wrap, "wrap"), n)
    lines = math.ceil(n / line)
    rows, cols = (lines, line) if direction == "col" else (line, lines)

    grid_kwargs.setdefault("shared_x", True)
    grid_kwargs.setdefault("shared_y", True)
    composer = GridComposer(rows, cols, **grid_kwargs)
    label = by if isinstance(by, str) else getattr(by, "__name__", "group")
    annotations = []
    for i, (category, members) in enumerate(groups.items()):
        if direction == "col":
            row, col = i // line + 1, i % line + 1
        else:
            row, col = i % line + 1, i // line + 1
        composer.add(rule(category, members), row=row, col=col)
        if titles:
            cell = composer.cell_domain(row, col)
            annotations.append(
                Annotation(text=f"{label}={category}", x=(cell.x[0] + cell.x[1]) / 2, y=cell.y[1])
            )
    return composer.build(title=title, annotations=annotations)


__all__ = ["GridComposer", "compose_grid", "facet", "partition"]
