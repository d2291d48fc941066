"""Protein-group rollup for entrapment analysis.

Identifications are collapsed to their best-scoring representative per
(file, channel, decoy, entrapment, protein) group. The resulting rows are
regular ``IdentificationTable`` rows, so protein groups go through the same
q-value and EFDR code as precursors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Set

import numpy as np

from .data import IdentificationTable, check_equal_lengths, partition_by_file
from .scoring.qvalues import compute_qvalues

logger = logging.getLogger(__name__)


def add_entrapment_flags(sequences: np.ndarray, entrapment_sequences: Set[str]) -> np.ndarray:
    """True for every sequence found in the library's entrapment set."""
    return np.array([seq in entrapment_sequences for seq in sequences], dtype=np.bool_)


@dataclass
class ProteinRollup:
    """Protein-group table plus the source row each group was taken from."""

    table: IdentificationTable
    source_indices: np.ndarray

    def __len__(self) -> int:
        return len(self.table)


def rollup_to_protein_groups(
    table: IdentificationTable, is_entrapment: np.ndarray
) -> ProteinRollup:
    """Keep the best-scoring identification per protein group.

    Groups are keyed by (file, channel, decoy, entrapment, protein). On
    score ties the first identification in table order is kept. Groups are
    emitted in order of first appearance.

    Returns
    -------
    ProteinRollup
        ``table`` has one row per group with ``is_original`` set to the
        inverse of the entrapment flag; ``source_indices`` maps each row
        back to ``table``.
    """
    if table.protein_ids is None:
        raise ValueError("Protein rollup requires protein ids")

    is_entrapment = np.asarray(is_entrapment, dtype=np.bool_)
    n = check_equal_lengths(scores=table.scores, is_entrapment=is_entrapment)

    file_ids = table.file_ids
    best = {}
    for i in range(n):
        key = (
            None if file_ids is None else file_ids[i],
            int(table.channel_ids[i]),
            bool(table.is_decoy[i]),
            bool(is_entrapment[i]),
            table.protein_ids[i],
        )
        current = best.get(key)
        if current is None or table.scores[i] > table.scores[current]:
            best[key] = i

    source_indices = np.fromiter(best.values(), dtype=np.int64, count=len(best))
    groups = table.subset(source_indices)
    groups.is_original = ~is_entrapment[source_indices]
    groups.entrapment_groups = is_entrapment[source_indices].astype(np.int64)

    logger.info(f"Rolled up {n:,} identifications into {len(groups):,} protein groups")
    return ProteinRollup(table=groups, source_indices=source_indices)


def calculate_protein_qvalues_per_run(table: IdentificationTable) -> IdentificationTable:
    """Target-decoy q-values of protein groups, separately for each run.

    Stored in ``local_qvalues``. The table is modified in place and returned.
    """
    n = len(table)
    qvalues = np.zeros(n, dtype=np.float64)

    for file_id, idx in partition_by_file(table.file_ids, n):
        qvalues[idx] = compute_qvalues(table.scores[idx], table.is_decoy[idx])

        n_decoys = int(np.sum(table.is_decoy[idx]))
        logger.info(f"Run {file_id}: N_d {n_decoys:,} N_t {len(idx) - n_decoys:,}")

    table.local_qvalues = qvalues
    return table
