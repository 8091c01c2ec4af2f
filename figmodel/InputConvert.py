from __future__ import annotations

import math
from typing import Any, Type, TypeVar

import numpy as np

T = TypeVar("T", int, float)


def InputConvert(obj: Any, dest_type: Type[T] = float, truncate: bool = True) -> T:
    """
    Convert `obj` to `dest_type`.

    Supported destination types:
    - float (finite reals only)
    - int

    Rules:
    - If `obj` is a Python or NumPy real number: cast via dest_type(obj).
    - If `obj` is a string: strip it and parse with float().
    - Booleans are rejected; ``True`` is never a valid range bound or duration.

    Truncation Rules (`truncate`):
    - When converting Float -> Int:
        - If `truncate=True`: Truncate decimal part (e.g., 3.9 -> 3).
        - If `truncate=False`: Require exact integer (e.g., 3.0 -> 3, 3.1 -> Error).

    Raises
    ------
    NotImplementedError
        If dest_type is unsupported.
    ValueError
        If conversion fails, the value is not finite, or it violates truncation rules.
    """
    if dest_type not in (float, int):
        raise NotImplementedError(
            f"Unsupported destination type: {dest_type!r}. Only float and int are supported."
        )

    if isinstance(obj, (bool, np.bool_)):
        raise ValueError(f"Could not convert boolean {obj!r} to {dest_type.__name__}.")

    if isinstance(obj, str):
        s = obj.strip()
        if s == "":
            raise ValueError(f"Cannot convert empty string to {dest_type.__name__}.")
        try:
            value = float(s)
        except ValueError as e:
            raise ValueError(f"Could not convert {obj!r} to {dest_type.__name__}.") from e
    else:
        try:
            value = float(obj)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Could not convert {obj!r} to {dest_type.__name__}.") from e

    if not math.isfinite(value):
        raise ValueError(f"Could not convert non-finite {obj!r} to {dest_type.__name__}.")

    if dest_type is float:
        return value  # type: ignore[return-value]

    if not value.is_integer() and not truncate:
        raise ValueError(f"Could not convert {obj!r} to int: value is not an exact integer.")
    return int(value)  # type: ignore[return-value]
