"""Pairing of identifications with their entrapment counterparts.

- build_library_index: immutable (sequence, charge) → pair lookup
- assign_labels: original/entrapment flag and pair id per identification
- resolve_complement_scores: partner score within file and channel

Examples
--------
>>> from entrapfdr.pairing import compute_pairing
>>> compute_pairing(library, table)
>>> table.complement_scores
"""

from .library import (
    LibraryIndex,
    build_entrapment_group_index,
    build_library_index,
    peptide_key,
)
from .complement import (
    assign_labels,
    compute_pairing,
    resolve_complement_scores,
)

__all__ = [
    "LibraryIndex",
    "build_library_index",
    "build_entrapment_group_index",
    "peptide_key",
    "assign_labels",
    "resolve_complement_scores",
    "compute_pairing",
]
