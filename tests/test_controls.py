from __future__ import annotations

import ipywidgets as widgets

from figmodel import (
    AxisRefResolutionError,
    ControlPanel,
    Figure,
    Frame,
    MenuBinding,
    MenuOption,
    Relayout,
    Restyle,
    SliderBinding,
    Trace,
    TransitionSpec,
)


def _traces() -> list[Trace]:
    return [Trace("bar", {"x": ["a", "b"], "y": [i, i + 1]}, name=f"b{i}") for i in range(2)]


def _dropdown() -> MenuBinding:
    return MenuBinding(
        options=[
            MenuOption("Both", Restyle({"visible": [True, True]})),
            MenuOption("Broken", Relayout({"xaxis": None})),
            MenuOption("Second", Restyle({"visible": [False, True]})),
        ],
        name="Show",
    )


def _buttons() -> MenuBinding:
    return MenuBinding(
        options=[
            MenuOption("Linear", Relayout({"title": "Linear"})),
            MenuOption("Log", Relayout({"title": "Log"})),
        ],
        kind="buttons",
        direction="right",
    )


def test_dropdown_selection_goes_through_the_figure() -> None:
    fig = Figure(_traces(), layout={"menus": [_dropdown()]})
    panel = ControlPanel(fig)
    dropdown = panel.menu_widgets[0]

    assert isinstance(dropdown, widgets.Dropdown)
    assert dropdown.value == 0

    dropdown.value = 2

    assert [t.visible for t in fig.traces] == [False, True]
    assert fig.layout.menus[0].active == 2
    assert panel.errors == []


def test_failing_dropdown_option_is_removed_and_recorded() -> None:
    fig = Figure(_traces(), layout={"menus": [_dropdown()]})
    panel = ControlPanel(fig)
    dropdown = panel.menu_widgets[0]

    dropdown.value = 1

    assert fig.revision == 0
    assert len(panel.errors) == 1
    error = panel.errors[0]
    assert (error.kind, error.binding_index, error.option_index, error.label) == ("menu", 0, 1, "Broken")
    assert isinstance(error.error, AxisRefResolutionError)
    assert [label for label, _ in dropdown.options] == ["Both", "Second"]
    assert dropdown.value == 0


def test_button_click_selects_and_highlights_active() -> None:
    fig = Figure(_traces(), layout={"menus": [_buttons()]})
    panel = ControlPanel(fig)
    row = panel.menu_widgets[0]

    assert isinstance(row, widgets.HBox)
    linear, log = row.children
    log.click()

    assert fig.layout.title == "Log"
    assert log.button_style == "info"
    assert linear.button_style == ""


def test_failing_button_is_disabled() -> None:
    menu = MenuBinding(
        options=[MenuOption("Ok", Relayout({"title": "Ok"})), MenuOption("Drop y", Relayout({"yaxis": None}))],
        kind="buttons",
    )
    fig = Figure(_traces(), layout={"menus": [menu]})
    panel = ControlPanel(fig)
    ok, drop = panel.menu_widgets[0].children

    drop.click()

    assert drop.disabled is True
    assert ok.disabled is False
    assert panel.errors[0].label == "Drop y"


def test_slider_seeks_frames_and_syncs_play() -> None:
    frames = [Frame(str(year), {0: {"y": [year, year]}}) for year in (2000, 2010, 2020)]
    slider = SliderBinding.for_frames([f.name for f in frames], prefix="Year ")
    fig = Figure(_traces(), layout={"sliders": [slider]}, frames=frames)
    panel = ControlPanel(fig)
    widget = panel.slider_widgets[0]
    play = panel.play_widgets[0]

    assert widget.description == "Year "
    assert play.max == 2

    widget.value = 2

    assert fig.animation.displayed_frame == "2020"
    assert fig.layout.sliders[0].active == 2
    assert play.value == 2

    fig.seek(1)
    assert widget.value == 1


def test_relayout_of_menus_rebuilds_widgets() -> None:
    fig = Figure(_traces(), layout={"menus": [_buttons()]})
    panel = ControlPanel(fig)

    fig.relayout(menus=[_buttons(), _dropdown()])

    assert len(panel.menu_widgets) == 2
    assert isinstance(panel.menu_widgets[1], widgets.Dropdown)
    assert panel.widget.children[1] is panel.menu_widgets[1]


def test_empty_slider_is_disabled() -> None:
    fig = Figure(_traces(), layout={"sliders": [SliderBinding(steps=())]})
    panel = ControlPanel(fig)

    assert panel.slider_widgets[0].disabled is True
    assert panel.play_widgets[0].disabled is True


def test_empty_menu_builds_a_dropdown_without_selection() -> None:
    fig = Figure(_traces(), layout={"menus": [MenuBinding(options=[])]})
    panel = ControlPanel(fig)
    dropdown = panel.menu_widgets[0]

    assert fig.layout.menus[0].active == 0
    assert list(dropdown.options) == []
    assert dropdown.value is None

    fig.relayout(title="Still empty")

    assert panel.menu_widgets[0].value is None
    assert panel.errors == []


def test_play_interval_follows_frame_duration() -> None:
    frames = [Frame("a"), Frame("b")]
    steps = [
        MenuOption(name, {"method": "animate", "args": [[name], TransitionSpec(duration=0, frame_duration=250).to_dict()]})
        for name in ("a", "b")
    ]
    fig = Figure(_traces(), layout={"sliders": [SliderBinding(steps=steps)]}, frames=frames)

    assert ControlPanel(fig).play_widgets[0].interval == 250
