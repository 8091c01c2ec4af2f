from __future__ import annotations

import pytest

from figmodel import (
    Figure,
    Frame,
    Idle,
    IndexOutOfRangeError,
    Interpolated,
    PatchError,
    PayloadKindMismatchError,
    Showing,
    Trace,
    Transitioning,
    TransitionSpec,
    UnknownFrameError,
)

YEARS = ["1902", "1908", "1914", "1920", "1926", "1932"]


def _census() -> Figure:
    base = Trace("bar", {"x": ["north", "south"], "y": [0, 0]}, name="population")
    frames = [Frame(year, {0: {"y": [int(year), int(year) + 1]}}) for year in YEARS]
    return Figure([base], frames=frames)


def _shown_y(fig: Figure) -> list:
    return fig.displayed_traces()[0].payload["y"].tolist()


def test_scenario_zero_duration_seek_lands_exactly_on_the_frame() -> None:
    fig = _census()

    fig.animate("1920", TransitionSpec(duration=0))
    fig.animate("1908", TransitionSpec.immediate())

    assert fig.animation.phase == Showing("1908")
    assert _shown_y(fig) == [1908, 1909]
    assert fig.traces[0].payload["y"].tolist() == [0, 0]


def test_displayed_state_does_not_depend_on_the_path_taken() -> None:
    direct = _census()
    detour = _census()

    direct.animate("1914", TransitionSpec.immediate())
    detour.animate("1932", TransitionSpec.immediate())
    detour.animate(0, TransitionSpec.immediate())
    detour.animate("1914", TransitionSpec.immediate())

    assert [t.to_dict() for t in direct.displayed_traces()] == [
        t.to_dict() for t in detour.displayed_traces()
    ]


def test_first_request_shows_the_frame_without_transition() -> None:
    fig = _census()
    assert isinstance(fig.animation.phase, Idle)

    delta = fig.animate("1902")

    assert fig.animation.phase == Showing("1902")
    assert delta.method == "animate"
    assert delta.frame == "1902"
    assert delta.trace_indices == (0,)
    assert delta.transition == TransitionSpec()


def test_transition_advances_with_renderer_clock() -> None:
    fig = _census()
    fig.animate("1902")

    fig.animate("1908", TransitionSpec(duration=500, easing="linear"))
    phase = fig.animation.phase
    assert isinstance(phase, Transitioning)
    assert (phase.origin, phase.target, phase.easing) == ("1902", "1908", "linear")
    assert _shown_y(fig) == [1908, 1909]

    delta = fig.advance(200)
    assert delta.method == "tick"
    assert fig.animation.phase.elapsed == 200
    assert fig.animation.phase.progress == pytest.approx(0.4)

    fig.advance(300)
    assert fig.animation.phase == Showing("1908")


def test_request_mid_transition_interrupts_from_the_interpolated_state() -> None:
    fig = _census()
    fig.animate("1902")
    fig.animate("1908", TransitionSpec(duration=500))
    fig.advance(200)

    fig.animate("1914", TransitionSpec(duration=500))

    phase = fig.animation.phase
    assert isinstance(phase, Transitioning)
    assert phase.target == "1914"
    assert phase.elapsed == 0
    assert phase.origin == Interpolated(origin="1902", target="1908", progress=pytest.approx(0.4))

    fig.advance(500)
    assert fig.animation.phase == Showing("1914")


def test_repeated_interrupts_keep_a_flat_origin() -> None:
    fig = _census()
    fig.animate("1902")
    fig.animate("1908", TransitionSpec(duration=500))
    fig.advance(100)
    fig.animate("1914", TransitionSpec(duration=500))
    fig.advance(250)

    fig.animate("1920", TransitionSpec(duration=500))

    assert fig.animation.phase.origin == Interpolated(origin="1902", target="1914", progress=pytest.approx(0.5))


def test_continuous_scrubbing_with_a_duration_stays_serializable() -> None:
    fig = _census()
    fig.animate("1902")
    for i in range(3000):
        fig.animate(YEARS[i % 2 + 1], TransitionSpec(duration=500))
        fig.advance(1)

    state = fig.to_dict()["animation"]

    assert state["state"] == "transitioning"
    assert state["origin"]["origin"] == "1902"


def test_playlist_dwells_frame_duration_per_frame() -> None:
    fig = _census()

    fig.animate(("1902", "1908", "1914", "1920"), TransitionSpec(duration=0, frame_duration=100))
    assert fig.animation.phase == Showing("1902")
    assert fig.animation.playlist == ("1908", "1914", "1920")

    fig.advance(100)
    assert fig.animation.displayed_frame == "1908"

    fig.advance(250)
    assert fig.animation.phase == Showing("1920", held=50)
    assert fig.animation.playlist == ()


def test_none_target_plays_every_frame_in_order() -> None:
    fig = _census()

    fig.animate(None, TransitionSpec(duration=0, frame_duration=100))

    assert fig.animation.displayed_frame == "1902"
    assert fig.animation.playlist == tuple(YEARS[1:])
    fig.advance(500)
    assert fig.animation.displayed_frame == "1932"


def test_pause_drops_the_playlist_and_settles_the_transition() -> None:
    fig = _census()
    fig.animate(None, TransitionSpec(duration=300, frame_duration=100))
    fig.advance(150)
    assert fig.animation.is_transitioning

    fig.pause()

    assert fig.animation.phase == Showing("1908")
    assert fig.animation.playlist == ()
    fig.advance(10_000)
    assert fig.animation.displayed_frame == "1908"


def test_stop_returns_to_base_traces() -> None:
    fig = _census()
    fig.animate("1926", TransitionSpec.immediate())

    delta = fig.stop()

    assert fig.animation.is_idle
    assert delta.frame is None
    assert delta.trace_indices == (0,)
    assert _shown_y(fig) == [0, 0]


def test_frame_index_targets_resolve_by_position() -> None:
    fig = _census()

    fig.animate(2, TransitionSpec.immediate())

    assert fig.animation.displayed_frame == "1914"


@pytest.mark.parametrize("target", ["1999", 6, -1, ("1902", "nope")])
def test_unknown_frames_are_rejected_without_commit(target) -> None:
    fig = _census()
    fig.animate("1902")
    before = fig.snapshot()

    with pytest.raises(UnknownFrameError):
        fig.animate(target)

    assert fig.snapshot() is before


def test_play_all_without_frames_is_rejected() -> None:
    fig = Figure([Trace("bar", {"x": ["a"], "y": [1]})])

    with pytest.raises(UnknownFrameError):
        fig.animate()


def test_invalid_targets_and_clock_values_are_patch_errors() -> None:
    fig = _census()

    with pytest.raises(PatchError):
        fig.animate(1.5)
    with pytest.raises(PatchError):
        fig.advance(-1)
    with pytest.raises(PatchError):
        TransitionSpec(easing="wobble")


def test_frames_are_validated_when_the_figure_is_built() -> None:
    base = [Trace("bar", {"x": ["a", "b"], "y": [1, 2]})]

    with pytest.raises(IndexOutOfRangeError):
        Figure(base, frames=[Frame("f", {3: {"y": [1, 2]}})])
    with pytest.raises(PayloadKindMismatchError):
        Figure(base, frames=[Frame("f", {0: {"y": [1, 2, 3]}})])
    with pytest.raises(ValueError, match="Duplicate frame name"):
        Figure(base, frames=[Frame("f"), Frame("f")])


def test_frames_accept_mapping_form() -> None:
    fig = Figure(
        [{"kind": "line", "payload": {"x": [0, 1], "y": [0, 0]}}],
        frames=[{"name": "up", "traces": {0: {"y": [1, 2]}}}],
    )

    fig.animate("up", {"transition": {"duration": 0}})

    assert fig.frames[0].trace_indices == (0,)
    assert _shown_y(fig) == [1, 2]


def test_restyle_rejects_payloads_that_break_existing_frames() -> None:
    fig = _census()
    before = fig.snapshot()

    with pytest.raises(PayloadKindMismatchError):
        fig.restyle({"payload": {"x": ["only"], "y": [1]}})

    assert fig.snapshot() is before
