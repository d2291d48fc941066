"""Read-only lookup from peptide key to entrapment pair.

The index is built once per analysis from the spectral library and then
shared, unchanged, by every per-file computation.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, NamedTuple, Tuple

from ..data import SpectralLibrary

logger = logging.getLogger(__name__)

PeptideKey = Tuple[str, int]


def peptide_key(sequence: str, charge: int) -> PeptideKey:
    """Join key between identifications and library precursors."""
    return (sequence, int(charge))


class LibraryIndex(NamedTuple):
    """Immutable maps from peptide key to pair id and original flag."""

    pair_id_of: Mapping[PeptideKey, int]
    is_original_of: Mapping[PeptideKey, bool]

    def __contains__(self, key) -> bool:
        return key in self.pair_id_of


def build_library_index(library: SpectralLibrary) -> LibraryIndex:
    """Index library precursors by (sequence, charge).

    If a key occurs more than once, the first occurrence wins and later
    duplicates are ignored.

    Parameters
    ----------
    library : SpectralLibrary
        Library with entrapment group ids (0 = original) and pair ids

    Returns
    -------
    LibraryIndex
        ``(pair_id_of, is_original_of)``; unpacks like a tuple

    Examples
    --------
    >>> lib = SpectralLibrary(["PEPTIDEK", "KEDITPEP"], [2, 2], [0, 1], [7, 7])
    >>> pair_id_of, is_original_of = build_library_index(lib)
    >>> pair_id_of[("KEDITPEP", 2)], is_original_of[("KEDITPEP", 2)]
    (7, False)
    """
    pair_id_of = {}
    is_original_of = {}
    n_duplicates = 0

    for sequence, charge, group_id, pair_id in zip(
        library.sequences, library.charges, library.entrapment_group_ids, library.pair_ids
    ):
        key = peptide_key(sequence, charge)
        if key in pair_id_of:
            n_duplicates += 1
            continue
        pair_id_of[key] = int(pair_id)
        is_original_of[key] = int(group_id) == 0

    if n_duplicates > 0:
        logger.debug(f"Ignored {n_duplicates:,} duplicate library keys (first occurrence kept)")

    return LibraryIndex(MappingProxyType(pair_id_of), MappingProxyType(is_original_of))


def build_entrapment_group_index(library: SpectralLibrary) -> Mapping[PeptideKey, int]:
    """Read-only map from (sequence, charge) to the library's entrapment group id.

    Uses the same first-occurrence rule as ``build_library_index`` so that
    both lookups agree on which duplicate row defines a key.
    """
    group_of = {}
    for sequence, charge, group_id in zip(
        library.sequences, library.charges, library.entrapment_group_ids
    ):
        group_of.setdefault(peptide_key(sequence, charge), int(group_id))
    return MappingProxyType(group_of)
