"""End-to-end entrapment analyses at precursor and protein-group level.

Precursor workflow
------------------
1. Local and global q-values per file (targets and decoys)
2. Optional global, then local q-value filter
3. Remove decoys
4. Pair originals with entrapments (per file and channel)
5. Combined and paired EFDR per file, monotonized
6. Write ``precursor_entrapment_results.tsv``

Protein workflow
----------------
1. Flag identifications of entrapment sequences
2. Roll up to the best identification per protein group
3. Protein q-values per run, optional filter
4. Remove decoys, combined EFDR per run
5. Write ``protein_group_entrapment.tsv``

Examples
--------
>>> from entrapfdr.pipeline import EFDRConfig, run_efdr_analysis
>>> config = EFDRConfig(local_qval_threshold=0.05, output_dir=None)
>>> results = run_efdr_analysis("results.tsv", "library.tsv", config)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from .data import IdentificationTable, SpectralLibrary
from .io import load_results, load_spectral_library, write_results
from .pairing import compute_pairing
from .protein import (
    add_entrapment_flags,
    calculate_protein_qvalues_per_run,
    rollup_to_protein_groups,
)
from .scoring import calculate_efdr_per_file, compute_qvalues_per_file

logger = logging.getLogger(__name__)

PRECURSOR_RESULTS_FILE = "precursor_entrapment_results.tsv"
PROTEIN_RESULTS_FILE = "protein_group_entrapment.tsv"

ResultsInput = Union[IdentificationTable, str, Path, Sequence[Union[str, Path]]]
LibraryInput = Union[SpectralLibrary, str, Path]


@dataclass
class EFDRConfig:
    """Parameters for an entrapment analysis run."""

    # Library to real entrapment ratio
    r_lib: float = 1.0

    # Q-value filters applied before EFDR (>= 1.0 disables the filter)
    global_qval_threshold: float = 1.0
    local_qval_threshold: float = 0.01

    # None skips writing results
    output_dir: Optional[Union[str, Path]] = "efdr_output"

    def __post_init__(self):
        if not self.r_lib > 0:
            raise ValueError(f"r_lib must be positive, got {self.r_lib}")
        for name in ("global_qval_threshold", "local_qval_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value:
                raise ValueError(f"{name} must be non-negative, got {value}")


def _ensure_results(results: ResultsInput) -> IdentificationTable:
    if isinstance(results, IdentificationTable):
        return results
    return load_results(results)


def _ensure_library(library: LibraryInput) -> SpectralLibrary:
    if isinstance(library, SpectralLibrary):
        return library
    return load_spectral_library(library)


def _filter_by_qvalue(
    table: IdentificationTable, qvalues: np.ndarray, threshold: float, label: str
) -> IdentificationTable:
    if threshold >= 1.0:
        return table

    n_before = len(table)
    table = table.subset(qvalues <= threshold)
    logger.info(f"Filtered to {len(table):,}/{n_before:,} entries at {threshold} {label} FDR")
    return table


def _write(table: IdentificationTable, config: EFDRConfig, filename: str) -> None:
    if config.output_dir is not None:
        write_results(table, Path(config.output_dir) / filename)


def run_efdr_analysis(
    results: ResultsInput,
    library: LibraryInput,
    config: Optional[EFDRConfig] = None,
) -> IdentificationTable:
    """Run the precursor-level entrapment analysis.

    Parameters
    ----------
    results : IdentificationTable or path(s)
        Identifications (targets and decoys)
    library : SpectralLibrary or path
        Library defining original/entrapment pairs
    config : EFDRConfig, optional
        Analysis parameters (defaults if omitted)

    Returns
    -------
    IdentificationTable
        Target identifications with pairing, q-value and EFDR columns

    Raises
    ------
    MissingLibraryEntry
        If a retained identification is not in the library
    """
    config = config or EFDRConfig()
    table = _ensure_results(results)
    library = _ensure_library(library)

    compute_qvalues_per_file(table)

    table = _filter_by_qvalue(table, table.global_qvalues, config.global_qval_threshold, "global")
    table = _filter_by_qvalue(table, table.local_qvalues, config.local_qval_threshold, "local")

    table = table.subset(~table.is_decoy)
    logger.info(f"Analyzing {len(table):,} target PSMs")

    compute_pairing(library, table)
    calculate_efdr_per_file(table, r=config.r_lib)

    _write(table, config, PRECURSOR_RESULTS_FILE)
    return table


def run_protein_efdr_analysis(
    results: ResultsInput,
    library: LibraryInput,
    config: Optional[EFDRConfig] = None,
) -> IdentificationTable:
    """Run the protein-group-level entrapment analysis.

    Protein groups carry no library pair, so only the combined estimator
    is computed (``paired_efdr`` stays None). Protein q-values are stored
    in ``local_qvalues`` and filtered with ``local_qval_threshold``.
    """
    config = config or EFDRConfig()
    table = _ensure_results(results)
    library = _ensure_library(library)

    logger.info("Preparing protein-level analysis...")
    is_entrapment = add_entrapment_flags(table.sequences, library.entrapment_sequences())

    proteins = rollup_to_protein_groups(table, is_entrapment).table
    calculate_protein_qvalues_per_run(proteins)

    proteins = _filter_by_qvalue(
        proteins, proteins.local_qvalues, config.local_qval_threshold, "protein"
    )
    proteins = proteins.subset(~proteins.is_decoy)
    logger.info(f"Analyzing {len(proteins):,} target protein groups")

    calculate_efdr_per_file(proteins, r=config.r_lib, paired=False)

    _write(proteins, config, PROTEIN_RESULTS_FILE)
    return proteins
