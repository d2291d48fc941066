"""Per-entry pairing labels and complement scores.

An original and its entrapment compete only within one acquisition file
and one multiplexing channel. The same pair seen in two files, or in two
channels of one file, is two independent competitions, so complement
scores are resolved in a fresh scope map per file keyed by
(channel, pair_id).
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import numpy as np

from ..data import UNPAIRED_SCORE, IdentificationTable, SpectralLibrary, partition_by_file
from ..exceptions import MissingLibraryEntry
from .library import (
    PeptideKey,
    build_entrapment_group_index,
    build_library_index,
    peptide_key,
)

logger = logging.getLogger(__name__)

_ORIGINAL = 0
_ENTRAPMENT = 1


def assign_labels(
    table: IdentificationTable,
    pair_id_of: Mapping[PeptideKey, int],
    is_original_of: Mapping[PeptideKey, bool],
    entrapment_group_of: Optional[Mapping[PeptideKey, int]] = None,
) -> IdentificationTable:
    """Attach ``is_original``, ``pair_ids`` and ``entrapment_groups``.

    With ``entrapment_group_of`` each entry carries its library entrapment
    group id; without it originals get 0 and entrapments 1.

    Raises
    ------
    MissingLibraryEntry
        On the first identification whose (sequence, charge) is not in the
        library. Nothing is written to the table in that case.
    """
    n = len(table)
    is_original = np.empty(n, dtype=np.bool_)
    pair_ids = np.empty(n, dtype=np.int64)
    groups = np.empty(n, dtype=np.int64)

    for i in range(n):
        key = peptide_key(table.sequences[i], table.charges[i])
        try:
            pair_ids[i] = pair_id_of[key]
            is_original[i] = is_original_of[key]
            if entrapment_group_of is not None:
                groups[i] = entrapment_group_of[key]
        except KeyError:
            raise MissingLibraryEntry(key[0], key[1]) from None

    if entrapment_group_of is None:
        groups = np.where(is_original, 0, 1).astype(np.int64)

    table.is_original = is_original
    table.pair_ids = pair_ids
    table.entrapment_groups = groups
    return table


def resolve_complement_scores(table: IdentificationTable) -> IdentificationTable:
    """Attach ``complement_scores``: the partner's score in the same scope.

    Within one scope, if several entries hold the same role (e.g. the
    original was identified twice), the last one in table order provides
    the score. Entries without a partner get ``UNPAIRED_SCORE``.
    """
    if table.is_original is None or table.pair_ids is None:
        raise ValueError("Table has no pairing labels; run assign_labels first")

    n = len(table)
    complement_scores = np.full(n, UNPAIRED_SCORE, dtype=np.float64)

    for _, idx in partition_by_file(table.file_ids, n):
        scope_scores = {}

        for i in idx:
            scope = (int(table.channel_ids[i]), int(table.pair_ids[i]))
            slot = scope_scores.get(scope)
            if slot is None:
                slot = [UNPAIRED_SCORE, UNPAIRED_SCORE]
                scope_scores[scope] = slot
            role = _ORIGINAL if table.is_original[i] else _ENTRAPMENT
            slot[role] = table.scores[i]

        for i in idx:
            slot = scope_scores[(int(table.channel_ids[i]), int(table.pair_ids[i]))]
            other = _ENTRAPMENT if table.is_original[i] else _ORIGINAL
            complement_scores[i] = slot[other]

    table.complement_scores = complement_scores
    return table


def compute_pairing(library: SpectralLibrary, table: IdentificationTable) -> IdentificationTable:
    """Label every identification and resolve complement scores.

    Convenience wrapper: builds the library index, assigns labels and
    resolves complement scores. The table is modified in place and returned.
    """
    logger.info(f"Computing pairing for {len(table):,} identifications...")

    pair_id_of, is_original_of = build_library_index(library)
    entrapment_group_of = build_entrapment_group_index(library)
    assign_labels(table, pair_id_of, is_original_of, entrapment_group_of)
    resolve_complement_scores(table)

    n_unpaired = int(np.sum(table.complement_scores == UNPAIRED_SCORE))
    if n_unpaired > 0:
        logger.warning(f"{n_unpaired:,} identifications have no complement pair")

    n_originals = int(np.sum(table.is_original))
    logger.info(
        f"✓ Pairing complete: {n_originals:,} originals, "
        f"{len(table) - n_originals:,} entrapments"
    )
    return table
