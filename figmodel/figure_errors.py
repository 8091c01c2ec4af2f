"""Error taxonomy for figure assembly and the update protocol.

Every error derives from :class:`FigureModelError` and from the closest
builtin exception, so callers can catch either the model-specific type or the
generic one (``ValueError``, ``IndexError``, ``KeyError``).

Update-protocol errors are always raised *before* a commit; a figure that
rejects an instruction keeps its previous snapshot untouched.
"""

from __future__ import annotations


class FigureModelError(Exception):
    """Base class for all figure-model failures."""


class ShapeMismatchError(FigureModelError, ValueError):
    """A positional array does not match the number of traces it addresses."""


class IndexOutOfRangeError(FigureModelError, IndexError):
    """A trace index does not exist in the figure."""


class UnknownFrameError(FigureModelError, KeyError):
    """An animate target names a frame that is not in the frame sequence."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class InvalidGridError(FigureModelError, ValueError):
    """A grid cell is out of bounds, or subplot domains overlap."""


class PayloadKindMismatchError(FigureModelError, ValueError):
    """A trace payload is not structurally compatible with its kind."""


class AxisRefResolutionError(FigureModelError, KeyError):
    """A trace references an axis that the layout does not define."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PatchError(FigureModelError, ValueError):
    """A restyle/relayout patch names an unknown field or carries a bad value."""


__all__ = [
    "FigureModelError",
    "ShapeMismatchError",
    "IndexOutOfRangeError",
    "UnknownFrameError",
    "InvalidGridError",
    "PayloadKindMismatchError",
    "AxisRefResolutionError",
    "PatchError",
]
