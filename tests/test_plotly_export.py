from __future__ import annotations

import plotly.graph_objects as go
import pytest

from figmodel import (
    Figure,
    Frame,
    GridComposer,
    MenuBinding,
    MenuOption,
    Relayout,
    Restyle,
    SliderBinding,
    Trace,
    TraceKind,
    Update,
    to_plotly_dict,
    to_plotly_figure,
)
from figmodel.plotly_export import instruction_to_plotly, trace_to_plotly


@pytest.mark.parametrize(
    ("kind", "payload", "plotly_type", "mode"),
    [
        ("line", {"x": [0, 1], "y": [1, 2]}, "scatter", "lines"),
        ("scatter", {"x": [0, 1], "y": [1, 2]}, "scatter", "markers"),
        ("bar", {"x": ["a"], "y": [1]}, "bar", None),
        ("histogram", {"x": [1, 2, 2]}, "histogram", None),
        ("heatmap", {"z": [[1, 2], [3, 4]]}, "heatmap", None),
    ],
)
def test_trace_kinds_map_to_plotly_types(kind, payload, plotly_type, mode) -> None:
    out = trace_to_plotly(Trace(kind, payload, name="s"))

    assert out["type"] == plotly_type
    assert out.get("mode") == mode
    assert out["name"] == "s"
    assert out["visible"] is True


def test_axisless_traces_export_their_domain() -> None:
    pie = Trace("pie", {"labels": ["a", "b"], "values": [1, 2]}, domain={"x": [0.5, 1], "y": [0, 1]})
    table = Trace("table", {"header": ["k", "v"], "cells": [["a", "b"], [1, 2]]})

    pie_out = trace_to_plotly(pie)
    table_out = trace_to_plotly(table)

    assert pie_out["domain"] == {"x": [0.5, 1.0], "y": [0.0, 1.0]}
    assert "xaxis" not in pie_out
    assert table_out["header"] == {"values": ["k", "v"]}
    assert table_out["cells"] == {"values": [["a", "b"], [1, 2]]}


def test_grid_axes_use_plotly_layout_keys() -> None:
    grid = GridComposer(1, 2)
    grid.add(Trace("bar", {"x": ["a"], "y": [1]}), row=1, col=1)
    grid.add(Trace("line", {"x": [0, 1], "y": [1, 0]}), row=1, col=2)
    fig = grid.build(title="Pair")

    out = to_plotly_dict(fig.snapshot())

    assert out["layout"]["title"] == {"text": "Pair"}
    assert out["layout"]["xaxis2"]["domain"] == [0.5, 1.0]
    assert out["layout"]["xaxis2"]["anchor"] == "y2"
    assert (out["data"][1]["xaxis"], out["data"][1]["yaxis"]) == ("x2", "y2")


def test_displayed_frame_is_exported_as_data_and_frames_keep_base_overlay() -> None:
    fig = Figure(
        [Trace("bar", {"x": ["a", "b"], "y": [0, 0]})],
        frames=[Frame("f1", {0: {"y": [1, 1]}}), Frame("f2", {0: {"y": [2, 2]}})],
    )
    fig.animate("f2", {"transition": {"duration": 0}})

    out = to_plotly_dict(fig.snapshot())

    assert out["data"][0]["y"] == [2, 2]
    assert [f["name"] for f in out["frames"]] == ["f1", "f2"]
    assert out["frames"][0]["data"][0]["y"] == [1, 1]
    assert out["frames"][0]["traces"] == [0]


def test_restyle_visible_lists_are_narrowed_to_addressed_traces() -> None:
    out = instruction_to_plotly(Restyle({"visible": [True, False, "legendonly"], "legend_group": "g"}, [1, 2]))

    assert out == {"method": "restyle", "args": [{"visible": [False, "legendonly"], "legendgroup": "g"}, [1, 2]]}


def test_restyle_kind_and_payload_use_plotly_names() -> None:
    out = instruction_to_plotly(Restyle({"kind": "line", "payload": {"y": [3, 4]}}, [0]))

    assert out["args"][0] == {"type": "scatter", "mode": "lines", "y": [[3, 4]]}


def test_restyled_color_follows_the_addressed_trace_kinds() -> None:
    kinds = (TraceKind.LINE, TraceKind.BAR)

    line_only = instruction_to_plotly(Restyle({"color": "red"}, [0]), kinds)
    mixed = instruction_to_plotly(Restyle({"color": "red"}), kinds)
    to_line = instruction_to_plotly(Restyle({"kind": "line", "color": "red"}, [1]), kinds)

    assert line_only["args"][0] == {"line.color": "red"}
    assert mixed["args"][0] == {"marker.color": "red", "line.color": "red"}
    assert to_line["args"][0]["line.color"] == "red"
    assert "marker.color" not in to_line["args"][0]


def test_color_menu_on_line_traces_exports_line_color() -> None:
    menu = MenuBinding(options=[MenuOption("Red", Restyle({"color": "red"}))])
    fig = Figure([Trace("line", {"x": [0, 1], "y": [1, 2]})], layout={"menus": [menu]})

    button = to_plotly_dict(fig.snapshot())["layout"]["updatemenus"][0]["buttons"][0]

    assert button["args"][0] == {"line.color": "red"}


def test_relayout_and_update_use_plotly_layout_keys() -> None:
    relayout = instruction_to_plotly(Relayout({"x2.title": "Time", "title": "T"}))
    update = instruction_to_plotly(Update({"visible": False}, {"y": {"range": [0, 1]}}))

    assert relayout["args"] == [{"xaxis2.title.text": "Time", "title.text": "T"}]
    assert update["args"] == [{"visible": False}, {"yaxis": {"range": [0, 1]}}, None]


def test_menus_and_sliders_export_as_updatemenus_and_sliders() -> None:
    menu = MenuBinding(
        options=[MenuOption("All", Restyle({"visible": [True, True]})), MenuOption("One", Restyle({"visible": [True, False]}))],
        kind="buttons",
        name="toggle",
    )
    frames = [Frame("a"), Frame("b")]
    fig = Figure(
        [Trace("bar", {"x": ["a"], "y": [1]}), Trace("bar", {"x": ["b"], "y": [2]})],
        layout={"menus": [menu], "sliders": [SliderBinding.for_frames(["a", "b"], prefix="step ")]},
        frames=frames,
    )

    layout = to_plotly_dict(fig.snapshot())["layout"]

    updatemenu = layout["updatemenus"][0]
    assert updatemenu["type"] == "buttons"
    assert updatemenu["name"] == "toggle"
    assert [b["label"] for b in updatemenu["buttons"]] == ["All", "One"]
    assert updatemenu["buttons"][1]["args"] == [{"visible": [True, False]}, None]
    slider = layout["sliders"][0]
    assert slider["currentvalue"] == {"prefix": "step "}
    assert slider["steps"][1]["method"] == "animate"
    assert slider["steps"][1]["args"][0] == ["b"]


def test_plotly_accepts_the_exported_figure() -> None:
    grid = GridComposer(1, 2)
    grid.add(Trace("scatter", {"x": [0, 1], "y": [1, 2], "size": [5, 9]}, color="red"), row=1, col=1)
    grid.add(Trace("pie", {"labels": ["a", "b"], "values": [1, 2]}), row=1, col=2)
    menu = MenuBinding(options=[MenuOption("Hide", Restyle({"visible": "legendonly"}, [0]))])
    fig = grid.build(title="Mixed", menus=[menu])

    plotly_fig = to_plotly_figure(fig.snapshot())

    assert isinstance(plotly_fig, go.Figure)
    assert plotly_fig.layout.title.text == "Mixed"
    assert list(plotly_fig.data[0].marker.size) == [5, 9]
    assert plotly_fig.data[0].marker.color == "red"
    assert plotly_fig.data[1].type == "pie"
    assert isinstance(fig.to_plotly(), go.Figure)
