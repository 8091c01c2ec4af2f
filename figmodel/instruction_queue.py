"""Serialized mutation queue for a :class:`~figmodel.Figure.Figure`.

A figure applies one instruction at a time. ``InstructionQueue`` turns any
number of callers (widget callbacks, threads, commit listeners that react to
a commit with another instruction) into that single writer: requests are
appended to a FIFO, and whichever caller finds the queue idle drains it.
Requests arriving while a drain is in progress are only queued; they are
applied after the current commit completes, and the caller never waits.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Deque, Optional
import logging
import threading
import warnings

from .Figure import Figure
from .figure_instructions import instruction_from_dict
from .figure_update import RenderDelta

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

ErrorHandler = Callable[[BaseException, Any], Any]


@dataclass
class _QueuedRequest:
    action: Callable[[Figure], RenderDelta]
    request: Any
    future: Future


def warn_on_error(exc: BaseException, request: Any) -> None:
    """Default error handler: surface the rejection as a ``UserWarning``."""
    warnings.warn(f"Instruction {request!r} was rejected: {exc}")


class InstructionQueue:
    """FIFO of figure mutations applied one commit at a time.

    Parameters
    ----------
    figure:
        Figure to mutate.
    on_error:
        Handler called as ``handler(exception, request)`` for every rejected
        request. Defaults to :func:`warn_on_error`.
    """

    def __init__(self, figure: Figure, *, on_error: Optional[ErrorHandler] = None) -> None:
        self._figure = figure
        self._queue: Deque[_QueuedRequest] = deque()
        self._lock = threading.Lock()
        self._draining = False
        self._error_handlers: list[ErrorHandler] = [on_error or warn_on_error]

    @property
    def figure(self) -> Figure:
        return self._figure

    @property
    def pending(self) -> int:
        """Number of requests waiting behind the one being applied."""
        with self._lock:
            return len(self._queue)

    def add_error_handler(self, handler: ErrorHandler) -> None:
        self._error_handlers.append(handler)

    def submit(self, instruction: Any) -> "Future[RenderDelta]":
        """Queue an instruction (or its ``{"method", "args"}`` form)."""
        instruction = instruction_from_dict(instruction)
        return self._enqueue(lambda fig: fig.apply(instruction), instruction)

    def select(self, menu_index: int, option_index: int) -> "Future[RenderDelta]":
        return self._enqueue(
            lambda fig: fig.select(menu_index, option_index), ("select", menu_index, option_index)
        )

    def seek(self, step_index: int, slider_index: int = 0) -> "Future[RenderDelta]":
        return self._enqueue(
            lambda fig: fig.seek(step_index, slider_index), ("seek", slider_index, step_index)
        )

    def tick(self, elapsed_ms: float) -> "Future[RenderDelta]":
        return self._enqueue(lambda fig: fig.advance(elapsed_ms), ("tick", elapsed_ms))

    def _enqueue(self, action: Callable[[Figure], RenderDelta], request: Any) -> "Future[RenderDelta]":
        future: Future = Future()
        with self._lock:
            self._queue.append(_QueuedRequest(action=action, request=request, future=future))
            if self._draining:
                return future
            self._draining = True
        self._drain()
        return future

    def _drain(self) -> None:
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        self._draining = False
                        return
                    item = self._queue.popleft()
                if not item.future.set_running_or_notify_cancel():
                    continue
                try:
                    result = item.action(self._figure)
                except Exception as exc:
                    item.future.set_exception(exc)
                    self._report(exc, item.request)
                else:
                    item.future.set_result(result)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    def _report(self, exc: BaseException, request: Any) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(exc, request)
            except Exception as handler_exc:
                logger.warning("error handler %r failed: %s", handler, handler_exc)

    def __repr__(self) -> str:
        return f"InstructionQueue(figure={self._figure!r}, pending={self.pending})"


__all__ = ["ErrorHandler", "InstructionQueue", "warn_on_error"]
