"""Column-oriented containers for identifications and the spectral library.

Every table is a dataclass of parallel NumPy arrays, one array per column.
Rows are validated once here (equal lengths, fixed dtypes) so the scoring
kernels never need runtime type checks.

Examples
--------
>>> table = IdentificationTable(
...     sequences=["PEPTIDEK", "KEDITPEP"],
...     charges=[2, 2],
...     scores=[0.9, 0.4],
...     is_decoy=[False, False],
...     file_ids=["run1", "run1"],
... )
>>> len(table)
2
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

from .exceptions import InputLengthMismatch

# Complement score of an entry whose pair partner was not identified
UNPAIRED_SCORE = -1.0


def check_equal_lengths(**arrays) -> int:
    """Raise InputLengthMismatch unless all non-None arrays share one length.

    Returns
    -------
    int
        The common length (0 when no arrays were given).
    """
    lengths = {name: len(arr) for name, arr in arrays.items() if arr is not None}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise InputLengthMismatch(f"All input arrays must have the same length ({detail})")
    return next(iter(lengths.values()), 0)


def partition_by_file(
    file_ids: Optional[np.ndarray], n: int
) -> List[Tuple[Optional[str], np.ndarray]]:
    """Split row indices by file, in order of first appearance.

    Indices inside each partition keep their original (input) order.
    Without file ids the whole input is one partition keyed by None.
    """
    if file_ids is None:
        return [(None, np.arange(n, dtype=np.int64))]

    groups = defaultdict(list)
    for i, file_id in enumerate(file_ids):
        groups[file_id].append(i)

    return [(file_id, np.asarray(idx, dtype=np.int64)) for file_id, idx in groups.items()]


def _as_optional(values, dtype) -> Optional[np.ndarray]:
    if values is None:
        return None
    return np.asarray(values, dtype=dtype)


@dataclass
class IdentificationTable:
    """Identifications (PSMs, precursors or protein groups) as parallel arrays.

    The first seven columns come from the loader. The remaining columns are
    derived and filled in place by the pairing, q-value and EFDR steps.
    """

    sequences: np.ndarray
    charges: np.ndarray
    scores: np.ndarray          # higher is better
    is_decoy: np.ndarray
    file_ids: Optional[np.ndarray] = None
    channel_ids: Optional[np.ndarray] = None
    protein_ids: Optional[np.ndarray] = None

    # Derived by the pairing step
    is_original: Optional[np.ndarray] = None
    pair_ids: Optional[np.ndarray] = None
    entrapment_groups: Optional[np.ndarray] = None
    complement_scores: Optional[np.ndarray] = None

    # Derived by the q-value step
    local_qvalues: Optional[np.ndarray] = None
    global_qvalues: Optional[np.ndarray] = None

    # Derived by the EFDR step
    combined_efdr: Optional[np.ndarray] = None
    paired_efdr: Optional[np.ndarray] = None

    def __post_init__(self):
        self.sequences = np.asarray(self.sequences, dtype=object)
        self.charges = np.asarray(self.charges, dtype=np.int64)
        self.scores = np.asarray(self.scores, dtype=np.float64)
        self.is_decoy = np.asarray(self.is_decoy, dtype=np.bool_)
        self.file_ids = _as_optional(self.file_ids, object)
        self.protein_ids = _as_optional(self.protein_ids, object)

        if self.channel_ids is None:
            # Non-multiplexed data: every entry lives in channel 0
            self.channel_ids = np.zeros(len(self.scores), dtype=np.int64)
        else:
            self.channel_ids = np.asarray(self.channel_ids, dtype=np.int64)

        self.is_original = _as_optional(self.is_original, np.bool_)
        self.pair_ids = _as_optional(self.pair_ids, np.int64)
        self.entrapment_groups = _as_optional(self.entrapment_groups, np.int64)
        self.complement_scores = _as_optional(self.complement_scores, np.float64)
        self.local_qvalues = _as_optional(self.local_qvalues, np.float64)
        self.global_qvalues = _as_optional(self.global_qvalues, np.float64)
        self.combined_efdr = _as_optional(self.combined_efdr, np.float64)
        self.paired_efdr = _as_optional(self.paired_efdr, np.float64)

        check_equal_lengths(**{f.name: getattr(self, f.name) for f in fields(self)})

    def __len__(self) -> int:
        return len(self.scores)

    @property
    def has_pairing(self) -> bool:
        return self.is_original is not None and self.complement_scores is not None

    def subset(self, selector) -> "IdentificationTable":
        """Return a new table holding the rows picked by a mask or index array."""
        columns = {}
        for f in fields(self):
            values = getattr(self, f.name)
            columns[f.name] = None if values is None else values[selector]
        return IdentificationTable(**columns)

    def as_dict(self) -> Dict[str, np.ndarray]:
        """Non-empty columns keyed by field name, in declaration order."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class SpectralLibrary:
    """Library precursors with their entrapment group and pair identifier.

    entrapment_group_ids is 0 for originals and >0 for entrapments. An
    original and its entrapment share the same pair_id.
    """

    sequences: np.ndarray
    charges: np.ndarray
    entrapment_group_ids: np.ndarray
    pair_ids: np.ndarray

    def __post_init__(self):
        self.sequences = np.asarray(self.sequences, dtype=object)
        self.charges = np.asarray(self.charges, dtype=np.int64)
        self.entrapment_group_ids = np.asarray(self.entrapment_group_ids, dtype=np.int64)
        self.pair_ids = np.asarray(self.pair_ids, dtype=np.int64)
        check_equal_lengths(
            sequences=self.sequences,
            charges=self.charges,
            entrapment_group_ids=self.entrapment_group_ids,
            pair_ids=self.pair_ids,
        )

    def __len__(self) -> int:
        return len(self.sequences)

    @property
    def n_originals(self) -> int:
        return int(np.sum(self.entrapment_group_ids == 0))

    @property
    def n_entrapments(self) -> int:
        return int(np.sum(self.entrapment_group_ids > 0))

    def entrapment_sequences(self) -> Set[str]:
        """Sequences of all entrapment precursors (charge ignored)."""
        mask = self.entrapment_group_ids > 0
        return set(self.sequences[mask].tolist())
