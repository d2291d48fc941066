"""Monotonization of FDR-like sequences.

A q-value or empirical FDR sequence, once ordered from best to worst
confidence, must never decrease as confidence worsens. The kernel walks
from the worst-ranked end towards the best, carrying a running minimum
that starts at 1.0, and caps every value at that minimum. Values above
1.0 are therefore clipped to 1.0 as a side effect.

Missing values (NaN) are skipped and leave the running minimum untouched.

Examples
--------
>>> import numpy as np
>>> from entrapfdr.scoring import monotonize
>>> monotonize(np.array([0.1, 0.3, 0.2, 0.4, 0.5]))
array([0.1, 0.2, 0.2, 0.4, 0.5])
"""

from __future__ import annotations

import numpy as np
from numba import njit


@njit
def _monotonize_kernel(values: np.ndarray) -> None:
    current_min = 1.0
    for i in range(len(values) - 1, -1, -1):
        value = values[i]
        if np.isnan(value):
            continue
        if value > current_min:
            values[i] = current_min
        else:
            current_min = value


def monotonize_inplace(values: np.ndarray) -> np.ndarray:
    """Monotonize a floating-point array in place.

    Parameters
    ----------
    values : np.ndarray
        FDR-like values already arranged in sort order (best first).

    Returns
    -------
    np.ndarray
        The same array, for chaining.

    Raises
    ------
    TypeError
        If the array is not floating point (it could not hold the capped
        values or NaN markers).
    """
    if not isinstance(values, np.ndarray) or values.dtype.kind != "f":
        raise TypeError("monotonize_inplace requires a floating-point NumPy array")
    if len(values) > 0:
        _monotonize_kernel(values)
    return values


def monotonize(values) -> np.ndarray:
    """Return a monotonized float64 copy of ``values`` (input untouched)."""
    result = np.array(values, dtype=np.float64)
    if len(result) > 0:
        _monotonize_kernel(result)
    return result


def monotonize_in_order(values: np.ndarray, sort_order: np.ndarray) -> np.ndarray:
    """Monotonize ``values`` along ``sort_order`` and scatter the result back.

    ``values`` is indexed by entry; ``sort_order[k]`` is the entry ranked
    k-th best. The array is modified in place and returned.
    """
    ordered = values[sort_order].astype(np.float64)
    if len(ordered) > 0:
        _monotonize_kernel(ordered)
    values[sort_order] = ordered
    return values
