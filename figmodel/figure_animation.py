"""Animation playback state machine.

States
------
- ``Idle``: no frame shown; the figure displays its base traces.
- ``Showing(frame)``: a frame's overlay is displayed.
- ``Transitioning(origin, target, elapsed)``: the renderer is interpolating
  from ``origin`` towards ``target``; the model already displays ``target``.

Transitions
-----------
- ``Idle -> Showing(f)`` on the first request.
- ``Showing(a) -> Transitioning(a, b, 0)`` on a request for ``b``.
- ``Transitioning -> Showing(b)`` once ``elapsed >= duration``. Elapsed time
  comes from the rendering collaborator's clock through :func:`tick`; this
  module never reads a clock.
- A request issued mid-transition starts ``Transitioning(Interpolated(...),
  new, 0)`` immediately: no queueing, the latest request wins and any pending
  playlist is dropped.
- A zero-duration request (scrubbing) collapses straight to ``Showing``.

Playlists (``Animate`` with several targets, or ``None`` for every frame)
advance one frame each time the current frame has been shown for
``frame_duration`` milliseconds.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .InputConvert import InputConvert
from .figure_errors import PatchError
from .figure_instructions import TransitionSpec


@dataclass(frozen=True)
class Idle:
    def to_dict(self) -> dict[str, Any]:
        return {"state": "idle"}


@dataclass(frozen=True)
class Showing:
    frame: str
    held: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"state": "showing", "frame": self.frame, "held": self.held}


@dataclass(frozen=True)
class Interpolated:
    """An interrupted transition: ``progress`` of the way from ``origin`` to ``target``."""

    origin: Optional[str]
    target: str
    progress: float

    def to_dict(self) -> dict[str, Any]:
        return {"origin": self.origin, "target": self.target, "progress": self.progress}


@dataclass(frozen=True)
class Transitioning:
    origin: Union[str, Interpolated, None]
    target: str
    duration: float
    easing: str
    elapsed: float = 0.0

    @property
    def progress(self) -> float:
        return min(1.0, self.elapsed / self.duration) if self.duration > 0 else 1.0

    def to_dict(self) -> dict[str, Any]:
        origin = self.origin.to_dict() if isinstance(self.origin, Interpolated) else self.origin
        return {
            "state": "transitioning",
            "origin": origin,
            "target": self.target,
            "elapsed": self.elapsed,
            "duration": self.duration,
            "easing": self.easing,
        }


Phase = Union[Idle, Showing, Transitioning]


@dataclass(frozen=True)
class AnimationState:
    """Playback phase plus the remaining playlist and the active timing."""

    phase: Phase = field(default_factory=Idle)
    playlist: tuple[str, ...] = ()
    transition: TransitionSpec = field(default_factory=TransitionSpec)

    @property
    def displayed_frame(self) -> Optional[str]:
        """Name of the frame whose overlay is displayed, or ``None`` for the base traces."""
        if isinstance(self.phase, Showing):
            return self.phase.frame
        if isinstance(self.phase, Transitioning):
            return self.phase.target
        return None

    @property
    def is_idle(self) -> bool:
        return isinstance(self.phase, Idle)

    @property
    def is_transitioning(self) -> bool:
        return isinstance(self.phase, Transitioning)

    def to_dict(self) -> dict[str, Any]:
        return {**self.phase.to_dict(), "playlist": list(self.playlist)}


def _start(phase: Phase, target: str, transition: TransitionSpec) -> Phase:
    if isinstance(phase, Idle) or transition.duration == 0:
        return Showing(target)
    if isinstance(phase, Showing):
        if phase.frame == target:
            return Showing(target)
        return Transitioning(origin=phase.frame, target=target, duration=transition.duration, easing=transition.easing)
    # Earlier interruptions collapse to their origin frame; records never nest.
    origin = phase.origin.origin if isinstance(phase.origin, Interpolated) else phase.origin
    interrupted = Interpolated(origin=origin, target=phase.target, progress=phase.progress)
    return Transitioning(origin=interrupted, target=target, duration=transition.duration, easing=transition.easing)


def request(state: AnimationState, targets: tuple[str, ...], transition: TransitionSpec) -> AnimationState:
    """Return the state after an animate request for resolved frame names.

    An empty ``targets`` tuple pauses: the playlist is dropped and a running
    transition settles on its target.
    """
    if not targets:
        phase = state.phase
        if isinstance(phase, Transitioning):
            phase = Showing(phase.target)
        return AnimationState(phase=phase, playlist=(), transition=transition)
    phase = _start(state.phase, targets[0], transition)
    return AnimationState(phase=phase, playlist=tuple(targets[1:]), transition=transition)


def tick(state: AnimationState, elapsed_ms: Any) -> AnimationState:
    """Advance playback by ``elapsed_ms`` of renderer clock time."""
    try:
        remaining = InputConvert(elapsed_ms, float)
    except ValueError as e:
        raise PatchError(f"elapsed time must be a finite number, got {elapsed_ms!r}") from e
    if remaining < 0:
        raise PatchError(f"elapsed time must be >= 0, got {remaining}")

    phase = state.phase
    playlist = state.playlist
    transition = state.transition
    while True:
        if isinstance(phase, Transitioning):
            need = phase.duration - phase.elapsed
            if remaining < need:
                phase = dataclasses.replace(phase, elapsed=phase.elapsed + remaining)
                break
            remaining -= need
            phase = Showing(phase.target)
        elif isinstance(phase, Showing) and playlist:
            need = transition.frame_duration - phase.held
            if remaining < need:
                phase = dataclasses.replace(phase, held=phase.held + remaining)
                break
            remaining -= need
            phase = _start(phase, playlist[0], transition)
            playlist = playlist[1:]
        else:
            if isinstance(phase, Showing):
                phase = dataclasses.replace(phase, held=phase.held + remaining)
            break
    return AnimationState(phase=phase, playlist=playlist, transition=transition)


def reset() -> AnimationState:
    """Return the idle state (base traces displayed)."""
    return AnimationState()


__all__ = [
    "AnimationState",
    "Idle",
    "Interpolated",
    "Phase",
    "Showing",
    "Transitioning",
    "request",
    "reset",
    "tick",
]
