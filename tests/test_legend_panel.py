from __future__ import annotations

import ipywidgets as widgets

from figmodel import Figure, LegendPanelManager, Trace


def _figure(**overrides) -> Figure:
    traces = [
        Trace("line", {"x": [0, 1], "y": [0, 1]}, name="alpha"),
        Trace("line", {"x": [0, 1], "y": [1, 0]}, name="beta", legend_group="g"),
        Trace("line", {"x": [0, 1], "y": [2, 2]}, name="gamma", legend_group="g"),
    ]
    for index, changes in overrides.items():
        i = int(index[1:])
        traces[i] = traces[i].replace(**changes)
    return Figure(traces)


def _labels(box: widgets.Box) -> list[str]:
    return [row.children[1].value for row in box.children]


def test_rows_follow_trace_order_and_names() -> None:
    box = widgets.VBox()
    manager = LegendPanelManager(_figure(), box)

    assert _labels(box) == ["alpha", "beta", "gamma"]
    assert manager.has_legend is True
    assert all(row.toggle.value is True for row in manager.rows.values())


def test_toggle_submits_legendonly_and_back() -> None:
    fig = _figure()
    manager = LegendPanelManager(fig)

    manager.rows[0].toggle.value = False
    assert fig.traces[0].visible == "legendonly"
    assert fig.revision == 1

    manager.rows[0].toggle.value = True
    assert fig.traces[0].visible is True
    assert fig.revision == 2


def test_legend_group_toggles_together() -> None:
    fig = _figure()
    manager = LegendPanelManager(fig)

    manager.rows[2].toggle.value = False

    assert [t.visible for t in fig.traces] == [True, "legendonly", "legendonly"]
    assert manager.rows[1].toggle.value is False


def test_commits_from_elsewhere_resync_rows_without_echo() -> None:
    fig = _figure()
    box = widgets.VBox()
    manager = LegendPanelManager(fig, box)

    fig.restyle({"visible": [True, "legendonly", False], "name": ["A", "B", "C"]})

    assert fig.revision == 1
    assert manager.rows[1].toggle.value is False
    assert _labels(box) == ["A", "B"]


def test_hidden_traces_and_disabled_legend_have_no_rows() -> None:
    fig = _figure(t0={"visible": False})
    box = widgets.VBox()
    manager = LegendPanelManager(fig, box)
    assert _labels(box) == ["beta", "gamma"]

    fig.relayout(showlegend=False)

    assert box.children == ()
    assert manager.has_legend is False


def test_labels_are_escaped_and_default_to_index() -> None:
    fig = Figure(
        [
            Trace("bar", {"x": ["a"], "y": [1]}, name="<b>bold</b>"),
            Trace("bar", {"x": ["a"], "y": [2]}),
        ]
    )
    box = widgets.VBox()
    LegendPanelManager(fig, box)

    assert _labels(box) == ["&lt;b&gt;bold&lt;/b&gt;", "trace 1"]


def test_refresh_is_idempotent_for_widget_children() -> None:
    box = widgets.VBox()
    manager = LegendPanelManager(_figure(), box)

    first_children = box.children
    manager.refresh()

    assert box.children is first_children


def test_close_detaches_from_the_figure() -> None:
    fig = _figure()
    box = widgets.VBox()
    manager = LegendPanelManager(fig, box)

    manager.close()
    fig.restyle({"name": "renamed"})

    assert box.children == ()
    assert manager.rows == {}
