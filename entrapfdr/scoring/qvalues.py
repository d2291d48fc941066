"""Target-decoy q-values (pure NumPy/Numba).

Q-values are computed within a scope:

- **local**: all identifications of one acquisition file
- **global**: the best-scoring identification per (decoy, sequence, charge)
  precursor of that file, broadcast back to every identification sharing
  the precursor

Algorithm
---------
1. Sort by score (descending); on ties targets come before decoys
2. Walk the sorted order counting targets (Nτ) and decoys (Nd)
3. FDR = Nd / Nτ (0 while no target has been seen)
4. Q-value = FDR monotonized from the worst score upwards

Examples
--------
>>> import numpy as np
>>> from entrapfdr.scoring import calculate_target_decoy_fdr
>>> scores = np.array([0.9, 0.8, 0.7])
>>> is_decoy = np.array([False, True, False])
>>> fdr, qvalue = calculate_target_decoy_fdr(scores, is_decoy)
>>> fdr
array([0. , 1. , 0.5])
>>> qvalue
array([0. , 0.5, 0.5])
"""

from __future__ import annotations

import logging

import numpy as np
from numba import njit

from ..data import IdentificationTable, check_equal_lengths, partition_by_file
from .monotonize import _monotonize_kernel

logger = logging.getLogger(__name__)


@njit
def _target_decoy_fdr_core(sorted_is_decoy: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Running decoy/target ratio along an already sorted decoy mask.

    Returns
    -------
    fdr : np.ndarray
        Raw Nd / Nτ per sorted position
    qvalue : np.ndarray
        Monotonized copy of ``fdr``

    Notes
    -----
    No target seen yet (Nτ = 0) gives 0, not NaN.
    """
    n = len(sorted_is_decoy)
    fdr = np.zeros(n, dtype=np.float64)

    n_targets = 0
    n_decoys = 0
    for i in range(n):
        if sorted_is_decoy[i]:
            n_decoys += 1
        else:
            n_targets += 1

        if n_targets > 0:
            fdr[i] = n_decoys / n_targets
        else:
            fdr[i] = 0.0

    qvalue = fdr.copy()
    _monotonize_kernel(qvalue)
    return fdr, qvalue


def target_decoy_sort_order(scores: np.ndarray, is_decoy: np.ndarray) -> np.ndarray:
    """Stable order by score descending, targets before decoys on ties."""
    # lexsort: last key is primary
    return np.lexsort((is_decoy, -scores))


def calculate_target_decoy_fdr(
    scores: np.ndarray, is_decoy: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Calculate raw FDR and q-values using target-decoy competition.

    Parameters
    ----------
    scores : np.ndarray
        Scores (higher is better)
    is_decoy : np.ndarray
        Boolean decoy mask

    Returns
    -------
    fdr : np.ndarray
        Nd / Nτ at each entry's rank, before monotonization (input order)
    qvalue : np.ndarray
        Monotonized q-values (input order)

    Raises
    ------
    InputLengthMismatch
        If ``scores`` and ``is_decoy`` differ in length.
    """
    scores = np.asarray(scores, dtype=np.float64)
    is_decoy = np.asarray(is_decoy, dtype=np.bool_)
    n = check_equal_lengths(scores=scores, is_decoy=is_decoy)

    if n == 0:
        return np.array([], dtype=np.float64), np.array([], dtype=np.float64)

    sort_order = target_decoy_sort_order(scores, is_decoy)
    sorted_fdr, sorted_qvalue = _target_decoy_fdr_core(is_decoy[sort_order])

    fdr = np.empty(n, dtype=np.float64)
    qvalue = np.empty(n, dtype=np.float64)
    fdr[sort_order] = sorted_fdr
    qvalue[sort_order] = sorted_qvalue
    return fdr, qvalue


def compute_qvalues(scores: np.ndarray, is_decoy: np.ndarray) -> np.ndarray:
    """Target-decoy q-values in input order.

    Examples
    --------
    >>> compute_qvalues(np.array([10.0, 9.0, 8.0, 7.0]),
    ...                 np.array([False, False, True, False]))
    array([0.        , 0.        , 0.33333333, 0.33333333])
    """
    _, qvalue = calculate_target_decoy_fdr(scores, is_decoy)
    return qvalue


def compute_global_qvalues(
    sequences: np.ndarray,
    charges: np.ndarray,
    scores: np.ndarray,
    is_decoy: np.ndarray,
) -> np.ndarray:
    """Q-values on the best identification per (decoy, sequence, charge).

    Every identification of a precursor receives the q-value of the
    precursor's best-scoring identification, so all members of a group
    share one identical value.
    """
    scores = np.asarray(scores, dtype=np.float64)
    is_decoy = np.asarray(is_decoy, dtype=np.bool_)
    n = check_equal_lengths(
        sequences=sequences, charges=charges, scores=scores, is_decoy=is_decoy
    )
    if n == 0:
        return np.array([], dtype=np.float64)

    group_of = np.empty(n, dtype=np.int64)
    group_index = {}
    for i in range(n):
        key = (bool(is_decoy[i]), sequences[i], int(charges[i]))
        group_of[i] = group_index.setdefault(key, len(group_index))

    n_groups = len(group_index)
    best_scores = np.full(n_groups, -np.inf, dtype=np.float64)
    np.maximum.at(best_scores, group_of, scores)

    group_is_decoy = np.zeros(n_groups, dtype=np.bool_)
    group_is_decoy[group_of] = is_decoy

    group_qvalues = compute_qvalues(best_scores, group_is_decoy)

    n_decoy_groups = int(np.sum(group_is_decoy))
    logger.debug(
        f"Global q-values: {n_decoy_groups:,} decoys, "
        f"{n_groups - n_decoy_groups:,} targets"
    )
    return group_qvalues[group_of]


def compute_qvalues_per_file(table: IdentificationTable) -> IdentificationTable:
    """Fill ``local_qvalues`` and ``global_qvalues`` independently per file.

    Without file ids the whole table is treated as a single file. The
    table is modified in place and returned.
    """
    n = len(table)
    local_qvalues = np.zeros(n, dtype=np.float64)
    global_qvalues = np.zeros(n, dtype=np.float64)

    partitions = partition_by_file(table.file_ids, n)
    if table.file_ids is None:
        logger.info("No file column found, treating as single file...")
    else:
        logger.info(f"Calculating q-values for {len(partitions):,} files...")

    for file_number, (file_id, idx) in enumerate(partitions, start=1):
        scores = table.scores[idx]
        is_decoy = table.is_decoy[idx]

        local_qvalues[idx] = compute_qvalues(scores, is_decoy)
        global_qvalues[idx] = compute_global_qvalues(
            table.sequences[idx], table.charges[idx], scores, is_decoy
        )

        n_decoys = int(np.sum(is_decoy))
        logger.info(
            f"  File {file_number}/{len(partitions)}: {file_id} "
            f"({len(idx) - n_decoys:,} targets, {n_decoys:,} decoys)"
        )

    table.local_qvalues = local_qvalues
    table.global_qvalues = global_qvalues
    return table
