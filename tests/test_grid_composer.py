from __future__ import annotations

import itertools

import pytest

from figmodel import (
    Domain,
    Figure,
    GridComposer,
    InvalidGridError,
    Trace,
    compose_grid,
    facet,
    subplots,
)


def _bar(label: str = "a", value: float = 1.0) -> Trace:
    return Trace("bar", {"x": [label], "y": [value]})


def _pie() -> Trace:
    return Trace("pie", {"labels": ["a", "b"], "values": [1, 2]})


def test_scenario_one_row_three_columns() -> None:
    grid = GridComposer(1, 3)
    for col in (1, 2, 3):
        grid.add(_bar(str(col)), row=1, col=col)

    fig = grid.build()

    assert [t.axis_ref for t in fig.traces] == [("x", "y"), ("x2", "y2"), ("x3", "y3")]
    axes = fig.layout.axes
    assert axes["x"].domain == pytest.approx((0.0, 1 / 3))
    assert axes["x2"].domain == pytest.approx((1 / 3, 2 / 3))
    assert axes["x3"].domain == pytest.approx((2 / 3, 1.0))
    for k in ("y", "y2", "y3"):
        assert axes[k].domain == (0.0, 1.0)
    assert axes["x2"].anchor == "y2"
    assert axes["y3"].anchor == "x3"


def test_cells_tile_the_canvas_exactly() -> None:
    grid = GridComposer(2, 3, column_widths=[1, 2, 1], row_heights=[3, 1])
    cells = [grid.cell_domain(r, c) for r in (1, 2) for c in (1, 2, 3)]

    assert sum(cell.area for cell in cells) == pytest.approx(1.0)
    for a, b in itertools.combinations(cells, 2):
        assert not a.overlaps(b)
    assert grid.cell_domain(1, 1).x[0] == 0.0
    assert grid.cell_domain(1, 3).x[1] == 1.0
    assert grid.cell_domain(1, 1).x[1] == grid.cell_domain(1, 2).x[0]
    assert grid.cell_domain(2, 1).y[1] == grid.cell_domain(1, 1).y[0]


def test_row_one_is_the_top_row_and_weights_are_proportional() -> None:
    grid = GridComposer(2, 1, row_heights=[3, 1])

    top = grid.cell_domain(1, 1)
    bottom = grid.cell_domain(2, 1)

    assert top.y == pytest.approx((0.25, 1.0))
    assert bottom.y == pytest.approx((0.0, 0.25))


def test_cell_index_and_axis_ids_follow_row_major_order() -> None:
    grid = GridComposer(2, 2)
    grid.add(_bar(), row=2, col=1)

    fig = grid.build()

    assert grid.cell_index(2, 1) == 3
    assert fig.traces[0].axis_ref == ("x3", "y3")
    assert {"x", "y", "x2", "y2", "x3", "y3", "x4", "y4"} <= set(fig.layout.axes)


def test_traces_default_to_the_first_cell() -> None:
    grid = GridComposer(1, 2)
    grid.add(_bar())

    assert grid.build().traces[0].axis_ref == ("x", "y")


@pytest.mark.parametrize(("row", "col"), [(0, 1), (1, 0), (3, 1), (1, 3), (-1, -1)])
def test_out_of_range_cells_are_rejected(row: int, col: int) -> None:
    grid = GridComposer(2, 2)

    with pytest.raises(InvalidGridError):
        grid.add(_bar(), row=row, col=col)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rows": 0, "cols": 1},
        {"rows": 1, "cols": 1.5},
        {"rows": 1, "cols": 2, "column_widths": [1]},
        {"rows": 1, "cols": 2, "column_widths": [1, 0]},
        {"rows": 1, "cols": 2, "horizontal_spacing": 1.0},
        {"rows": 2, "cols": 1, "vertical_spacing": -0.1},
    ],
)
def test_invalid_grid_configuration_is_rejected(kwargs: dict) -> None:
    with pytest.raises(InvalidGridError):
        GridComposer(**kwargs)


def test_spacing_leaves_gaps_between_cells() -> None:
    grid = GridComposer(1, 2, horizontal_spacing=0.1)

    left, right = grid.cell_domain(1, 1), grid.cell_domain(1, 2)

    assert left.x == pytest.approx((0.0, 0.45))
    assert right.x == pytest.approx((0.55, 1.0))


def test_axisless_traces_get_the_cell_domain_and_no_axes() -> None:
    grid = GridComposer(1, 2)
    grid.add(_bar(), row=1, col=1)
    grid.add(_pie(), row=1, col=2)

    fig = grid.build()

    pie = fig.traces[1]
    assert pie.axis_ref is None
    assert pie.domain == grid.cell_domain(1, 2)
    assert "x2" not in fig.layout.axes
    assert [s.axis_ref for s in subplots(fig.layout.axes)] == [("x", "y")]


def test_mixing_axisless_and_axis_bound_traces_in_one_cell_is_rejected() -> None:
    grid = GridComposer(1, 1)
    grid.add(_bar())
    grid.add(_pie())

    with pytest.raises(InvalidGridError, match="mixes"):
        grid.build()


def test_shared_axes_match_the_primary_axes() -> None:
    grid = GridComposer(1, 3, shared_y=True)

    fig = grid.build()

    assert fig.layout.axes["y"].matches is None
    assert fig.layout.axes["y2"].matches == "y"
    assert fig.layout.axes["y3"].matches == "y"
    assert fig.layout.axes["x2"].matches is None


def test_build_records_the_grid_and_returns_a_figure() -> None:
    grid = GridComposer(2, 2)
    fig = grid.build(title="Dashboard")

    assert isinstance(fig, Figure)
    assert fig.layout.title == "Dashboard"
    assert fig.layout.grid.rows == 2
    assert fig.layout.grid.cells[(2, 2)] == grid.cell_domain(2, 2)


def test_compose_grid_accepts_assignment_tuples() -> None:
    fig = compose_grid(1, 2, [(_bar("a"), 1, 2), _bar("b")], title="Pair")

    assert [t.axis_ref for t in fig.traces] == [("x2", "y2"), ("x", "y")]
    assert fig.layout.title == "Pair"


RECORDS = [
    {"continent": "Asia", "year": 2000, "pop": 3.7},
    {"continent": "Europe", "year": 2000, "pop": 0.7},
    {"continent": "Asia", "year": 2010, "pop": 4.2},
    {"continent": "Africa", "year": 2000, "pop": 0.8},
    {"continent": "Europe", "year": 2010, "pop": 0.74},
]


def _rule(category, rows) -> Trace:
    return Trace("line", {"x": [r["year"] for r in rows], "y": [r["pop"] for r in rows]}, name=category)


def test_facet_replicates_rule_per_category_in_first_appearance_order() -> None:
    fig = facet(RECORDS, "continent", _rule)

    assert [t.name for t in fig.traces] == ["Asia", "Europe", "Africa"]
    assert [t.axis_ref for t in fig.traces] == [("x", "y"), ("x2", "y2"), ("x3", "y3")]
    assert fig.traces[0].payload["y"].tolist() == [3.7, 4.2]
    assert fig.layout.axes["x3"].matches == "x"
    assert [a.text for a in fig.layout.annotations] == [
        "continent=Asia",
        "continent=Europe",
        "continent=Africa",
    ]


def test_facet_wraps_and_preserves_non_overlap() -> None:
    fig = facet(RECORDS, "continent", _rule, wrap=2, titles=False)

    assert fig.layout.grid.rows == 2
    assert fig.layout.grid.cols == 2
    assert fig.traces[2].axis_ref == ("x3", "y3")
    assert fig.layout.annotations == ()
    domains = [Domain(x=s.domain.x, y=s.domain.y) for s in subplots(fig.layout.axes)]
    for a, b in itertools.combinations(domains, 2):
        assert not a.overlaps(b)


def test_facet_along_rows() -> None:
    fig = facet(RECORDS, lambda r: r["year"], _rule, direction="row")

    assert fig.layout.grid.rows == 2
    assert fig.layout.grid.cols == 1
    assert fig.layout.annotations[0].text == "<lambda>=2000"


def test_facet_rejects_empty_input_and_bad_direction() -> None:
    with pytest.raises(InvalidGridError):
        facet([], "continent", _rule)
    with pytest.raises(InvalidGridError):
        facet(RECORDS, "continent", _rule, direction="diagonal")
