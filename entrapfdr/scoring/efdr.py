"""Empirical FDR estimation from paired entrapment sequences.

Entrapment sequences are injected into the library, each paired with one
original sequence through a shared pair id. Since no entrapment can be a
true identification, the rate at which they are reported estimates the
real false discovery rate of the originals.

Two estimators are provided:

**Combined** (count based)::

    EFDR = Nε · (1 + 1/r) / (Nτ + Nε)

**Paired** (uses the score of each entrapment's paired original)::

    EFDR = (Nε + Nεsτ + 2·Nετs) / (Nτ + Nε)

where, at score threshold s, for an entrapment with score e whose paired
original scored o:

- Nεsτ counts entrapments with ``e >= s > o`` (the entrapment clears the
  threshold, its original does not)
- Nετs counts entrapments with ``e > o >= s`` (the entrapment beats its
  original, which itself clears the threshold)

The two cases are checked as ``if / elif`` in that order. Entrapments whose
original was not identified in the same file and channel (complement score
``UNPAIRED_SCORE``) only count towards Nε.

Both estimators rank entries by (q-value ascending, score descending) and
return values in input order *without* monotonization; callers monotonize
along the same order (see ``calculate_efdr_per_file``).

Performance
-----------
- Combined: O(n log n)
- Paired: O(n²), Numba-compiled; ~10k entries per file in well under a
  second

Examples
--------
>>> import numpy as np
>>> from entrapfdr.scoring import calculate_paired_efdr
>>> scores = np.array([10.0, 8.0, 6.0, 4.0])
>>> complement = np.array([-1.0, 6.0, -1.0, -1.0])
>>> is_original = np.array([True, False, True, True])
>>> qvalues = np.array([0.0, 0.01, 0.02, 0.03])
>>> calculate_paired_efdr(scores, complement, is_original, qvalues)
array([0.  , 1.  , 1.  , 0.75])
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np
from numba import njit

from ..data import UNPAIRED_SCORE, IdentificationTable, check_equal_lengths, partition_by_file
from ..exceptions import UnsortedInputWarning
from .monotonize import monotonize_in_order

logger = logging.getLogger(__name__)

# Outcome of classify_entrapment
NOT_COUNTED = 0
ENTRAPMENT_ONLY_ABOVE = 1   # Nεsτ
ENTRAPMENT_WINS_ABOVE = 2   # Nετs


@njit
def classify_entrapment(
    entrapment_score: float, original_score: float, threshold: float
) -> int:
    """Decide which paired count an entrapment adds to at a threshold.

    Returns
    -------
    int
        ENTRAPMENT_ONLY_ABOVE, ENTRAPMENT_WINS_ABOVE or NOT_COUNTED. An
        unpaired entrapment is always NOT_COUNTED.
    """
    if original_score == UNPAIRED_SCORE:
        return NOT_COUNTED

    if entrapment_score >= threshold and threshold > original_score:
        return ENTRAPMENT_ONLY_ABOVE
    elif entrapment_score > original_score and original_score >= threshold:
        return ENTRAPMENT_WINS_ABOVE
    return NOT_COUNTED


@njit
def _combined_efdr_core(
    is_original: np.ndarray, sort_order: np.ndarray, r: float
) -> np.ndarray:
    n = len(sort_order)
    efdr = np.zeros(n, dtype=np.float64)

    n_originals = 0
    n_entrapments = 0
    for i in range(n):
        idx = sort_order[i]
        if is_original[idx]:
            n_originals += 1
        else:
            n_entrapments += 1

        efdr[idx] = min(1.0, n_entrapments * (1.0 + 1.0 / r) / (n_originals + n_entrapments))

    return efdr


@njit
def _paired_efdr_core(
    scores: np.ndarray,
    complement_scores: np.ndarray,
    is_original: np.ndarray,
    sort_order: np.ndarray,
) -> np.ndarray:
    n = len(sort_order)
    efdr = np.zeros(n, dtype=np.float64)

    for i in range(n):
        threshold = scores[sort_order[i]]

        n_originals = 0
        n_entrapments = 0
        n_only_above = 0
        n_wins_above = 0

        # Window is every entry ranked at or above position i
        for j in range(i + 1):
            idx = sort_order[j]
            if is_original[idx]:
                n_originals += 1
            else:
                n_entrapments += 1
                outcome = classify_entrapment(scores[idx], complement_scores[idx], threshold)
                if outcome == ENTRAPMENT_ONLY_ABOVE:
                    n_only_above += 1
                elif outcome == ENTRAPMENT_WINS_ABOVE:
                    n_wins_above += 1

        total = n_originals + n_entrapments
        if total > 0:
            efdr[sort_order[i]] = min(
                1.0, (n_entrapments + n_only_above + 2.0 * n_wins_above) / total
            )

    return efdr


def efdr_sort_order(scores: np.ndarray, qvalues: np.ndarray) -> np.ndarray:
    """Stable order by q-value ascending, then score descending."""
    return np.lexsort((-scores, qvalues))


def _warn_if_unsorted(scores: np.ndarray, sort_order: np.ndarray) -> None:
    # Ranking by q-value must agree with ranking by score
    ordered = scores[sort_order]
    if len(ordered) > 1 and np.any(np.diff(ordered) > 0):
        warnings.warn(
            "Q-values are not properly sorted. This may affect EFDR calculation accuracy.",
            UnsortedInputWarning,
            stacklevel=3,
        )


def _check_ratio(r: float) -> float:
    r = float(r)
    if not r > 0:
        raise ValueError(f"Library to real entrapment ratio must be positive, got {r}")
    return r


def calculate_combined_efdr(
    scores: np.ndarray,
    is_original: np.ndarray,
    qvalues: np.ndarray,
    r: float = 1.0,
) -> np.ndarray:
    """Combined empirical FDR.

    Parameters
    ----------
    scores : np.ndarray
        Scores (higher is better)
    is_original : np.ndarray
        True for originals, False for entrapments
    qvalues : np.ndarray
        Q-values used for ranking
    r : float, default=1.0
        Library to real entrapment ratio

    Returns
    -------
    efdr : np.ndarray
        Values in [0, 1], input order, not monotonized

    Raises
    ------
    InputLengthMismatch
        If the arrays differ in length
    ValueError
        If ``r`` is not positive
    """
    scores = np.asarray(scores, dtype=np.float64)
    is_original = np.asarray(is_original, dtype=np.bool_)
    qvalues = np.asarray(qvalues, dtype=np.float64)
    n = check_equal_lengths(scores=scores, is_original=is_original, qvalues=qvalues)
    r = _check_ratio(r)

    if n == 0:
        return np.array([], dtype=np.float64)

    sort_order = efdr_sort_order(scores, qvalues)
    _warn_if_unsorted(scores, sort_order)
    return _combined_efdr_core(is_original, sort_order, r)


def calculate_paired_efdr(
    scores: np.ndarray,
    complement_scores: np.ndarray,
    is_original: np.ndarray,
    qvalues: np.ndarray,
    r: float = 1.0,
) -> np.ndarray:
    """Paired empirical FDR (O(n²)).

    Parameters
    ----------
    scores : np.ndarray
        Scores (higher is better)
    complement_scores : np.ndarray
        Score of each entry's pair partner in the same file and channel,
        ``UNPAIRED_SCORE`` when the partner was not identified
    is_original : np.ndarray
        True for originals, False for entrapments
    qvalues : np.ndarray
        Q-values used for ranking
    r : float, default=1.0
        Library to real entrapment ratio. Validated for symmetry with
        ``calculate_combined_efdr``; the paired formula does not scale by it.

    Returns
    -------
    efdr : np.ndarray
        Values in [0, 1], input order, not monotonized
    """
    scores = np.asarray(scores, dtype=np.float64)
    complement_scores = np.asarray(complement_scores, dtype=np.float64)
    is_original = np.asarray(is_original, dtype=np.bool_)
    qvalues = np.asarray(qvalues, dtype=np.float64)
    n = check_equal_lengths(
        scores=scores,
        complement_scores=complement_scores,
        is_original=is_original,
        qvalues=qvalues,
    )
    _check_ratio(r)

    if n == 0:
        return np.array([], dtype=np.float64)

    sort_order = efdr_sort_order(scores, qvalues)
    _warn_if_unsorted(scores, sort_order)
    return _paired_efdr_core(scores, complement_scores, is_original, sort_order)


class EFDRMethod:
    """Base class for an EFDR estimator bound to its inputs."""

    def calculate(self) -> np.ndarray:
        raise NotImplementedError


@dataclass
class CombinedEFDR(EFDRMethod):
    scores: np.ndarray
    is_original: np.ndarray
    qvalues: np.ndarray
    r: float = 1.0

    def calculate(self) -> np.ndarray:
        return calculate_combined_efdr(self.scores, self.is_original, self.qvalues, r=self.r)


@dataclass
class PairedEFDR(EFDRMethod):
    scores: np.ndarray
    complement_scores: np.ndarray
    is_original: np.ndarray
    qvalues: np.ndarray
    r: float = 1.0

    def calculate(self) -> np.ndarray:
        return calculate_paired_efdr(
            self.scores, self.complement_scores, self.is_original, self.qvalues, r=self.r
        )


def calculate_efdr(method: EFDRMethod) -> np.ndarray:
    """Run the estimator described by ``method`` (not monotonized)."""
    return method.calculate()


def calculate_efdr_per_file(
    table: IdentificationTable,
    r: float = 1.0,
    qvalue_column: str = "local",
    paired: bool = True,
) -> IdentificationTable:
    """Fill ``combined_efdr`` and ``paired_efdr`` independently per file.

    Each estimator's output is monotonized along its own (q-value, score)
    ranking before being stored. The table must already carry pairing
    labels and q-values; it is modified in place and returned.

    Parameters
    ----------
    table : IdentificationTable
        Identifications with pairing columns and q-values
    r : float, default=1.0
        Library to real entrapment ratio
    qvalue_column : str, default="local"
        "local" or "global"
    paired : bool, default=True
        Also compute the paired estimator (needs complement scores)
    """
    if qvalue_column == "local":
        qvalues = table.local_qvalues
    elif qvalue_column == "global":
        qvalues = table.global_qvalues
    else:
        raise ValueError(f"Unknown q-value column: {qvalue_column}. Use 'local' or 'global'.")

    if qvalues is None:
        raise ValueError(f"Table has no {qvalue_column} q-values; compute q-values first")
    if table.is_original is None or (paired and table.complement_scores is None):
        raise ValueError("Table has no pairing labels; run compute_pairing first")

    n = len(table)
    combined = np.zeros(n, dtype=np.float64)
    paired_values = np.zeros(n, dtype=np.float64) if paired else None

    for file_id, idx in partition_by_file(table.file_ids, n):
        if len(idx) == 0:
            continue
        scores = table.scores[idx]
        file_qvalues = qvalues[idx]
        is_original = table.is_original[idx]
        sort_order = efdr_sort_order(scores, file_qvalues)

        logger.info(f"Processing run: {file_id} ({len(idx):,} entries)")

        file_combined = calculate_combined_efdr(scores, is_original, file_qvalues, r=r)
        monotonize_in_order(file_combined, sort_order)
        combined[idx] = file_combined
        logger.info(f"  Max combined EFDR for this run: {file_combined.max():.4f}")

        if paired:
            file_paired = calculate_paired_efdr(
                scores, table.complement_scores[idx], is_original, file_qvalues, r=r
            )
            monotonize_in_order(file_paired, sort_order)
            paired_values[idx] = file_paired
            logger.info(f"  Max paired EFDR for this run: {file_paired.max():.4f}")

    table.combined_efdr = combined
    table.paired_efdr = paired_values
    return table


def calculate_efdr_statistics(
    is_original: np.ndarray,
    efdr: np.ndarray,
    thresholds: Sequence[float] = (0.01, 0.05, 0.10),
) -> Dict[str, int | float]:
    """Summary counts for an EFDR column.

    Returns
    -------
    dict
        - n_originals / n_entrapments: row counts
        - entrapment_fraction: entrapments / all rows
        - n_originals_efdrXX: originals with EFDR <= XX percent

    Examples
    --------
    >>> stats = calculate_efdr_statistics(np.array([True, False]), np.array([0.0, 1.0]))
    >>> stats["n_originals_efdr01"]
    1
    """
    is_original = np.asarray(is_original, dtype=np.bool_)
    efdr = np.asarray(efdr, dtype=np.float64)
    n = check_equal_lengths(is_original=is_original, efdr=efdr)

    n_originals = int(np.sum(is_original))
    stats = {
        "n_originals": n_originals,
        "n_entrapments": n - n_originals,
        "entrapment_fraction": float((n - n_originals) / n) if n > 0 else 0.0,
    }

    for threshold in thresholds:
        key = f"n_originals_efdr{int(round(threshold * 100)):02d}"
        stats[key] = int(np.sum(is_original & (efdr <= threshold)))

    return stats
