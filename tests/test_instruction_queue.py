from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, wait

import pytest

from figmodel import (
    Figure,
    Frame,
    IndexOutOfRangeError,
    InstructionQueue,
    MenuBinding,
    MenuOption,
    Relayout,
    Restyle,
    SliderBinding,
    Trace,
    TransitionSpec,
)


def _figure() -> Figure:
    traces = [Trace("scatter", {"x": [0, 1], "y": [i, i]}, name=f"p{i}") for i in range(2)]
    frames = [Frame("a", {0: {"y": [5, 5]}}), Frame("b", {0: {"y": [9, 9]}})]
    layout = {
        "menus": [MenuBinding(options=[MenuOption("Hide p1", Restyle({"visible": False}, [1]))])],
        "sliders": [SliderBinding.for_frames(["a", "b"])],
    }
    return Figure(traces, layout=layout, frames=frames)


def test_submit_from_idle_applies_synchronously() -> None:
    fig = _figure()
    queue = InstructionQueue(fig)

    future = queue.submit({"method": "relayout", "args": [{"title": "Queued"}]})

    assert future.done()
    assert future.result().revision == 1
    assert fig.layout.title == "Queued"
    assert queue.pending == 0


def test_reentrant_submit_is_applied_after_the_current_commit() -> None:
    fig = _figure()
    queue = InstructionQueue(fig)
    inner = []

    def _react(snapshot, delta):
        if delta.method == "relayout" and not inner:
            inner.append(queue.submit(Restyle({"name": "renamed"}, [0])))
            inner.append(fig.traces[0].name)
            inner.append(inner[0].done())

    fig.on_commit(_react)
    queue.submit(Relayout({"title": "Outer"}))

    future, name_inside, done_inside = inner
    assert name_inside == "p0"
    assert done_inside is False
    assert future.done()
    assert future.result().revision == 2
    assert fig.traces[0].name == "renamed"


def test_rejected_request_resolves_future_with_error_and_reports() -> None:
    fig = _figure()
    errors = []
    queue = InstructionQueue(fig, on_error=lambda exc, request: errors.append((type(exc), request)))

    future = queue.submit(Restyle({"visible": False}, [7]))
    after = queue.submit(Relayout({"title": "Still works"}))

    assert isinstance(future.exception(), IndexOutOfRangeError)
    assert errors == [(IndexOutOfRangeError, Restyle({"visible": False}, [7]))]
    assert after.result().revision == 1
    assert fig.layout.title == "Still works"


def test_default_error_handler_warns() -> None:
    queue = InstructionQueue(_figure())

    with pytest.warns(UserWarning, match="was rejected"):
        queue.submit(Restyle({"visible": [True]}))


def test_failing_error_handler_is_logged_not_raised(caplog) -> None:
    queue = InstructionQueue(_figure(), on_error=lambda exc, request: 1 / 0)

    future = queue.submit(Restyle({"visible": False}, [9]))

    assert future.exception() is not None
    assert any("error handler" in r.getMessage() for r in caplog.records)


def test_concurrent_submitters_are_serialized() -> None:
    fig = _figure()
    queue = InstructionQueue(fig)
    start = threading.Barrier(8)

    def _worker(worker: int) -> list:
        start.wait()
        return [queue.submit(Relayout({"title": f"w{worker}-{i}"})) for i in range(25)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        batches = [f.result() for f in [pool.submit(_worker, w) for w in range(8)]]
    futures = [future for batch in batches for future in batch]
    wait(futures, timeout=10)

    revisions = sorted(future.result().revision for future in futures)
    assert revisions == list(range(1, 201))
    assert fig.revision == 200


def test_select_seek_and_tick_go_through_the_queue() -> None:
    fig = _figure()
    queue = InstructionQueue(fig)

    queue.select(0, 0)
    queue.seek(1)
    fig.animate("a", TransitionSpec(duration=100))
    tick = queue.tick(40)

    assert fig.traces[1].visible is False
    assert fig.layout.sliders[0].active == 1
    assert tick.result().method == "tick"
    assert fig.animation.phase.elapsed == 40
