"""Q-value and empirical FDR calculation.

This module provides the statistical core of entrapment analysis:
- Monotonization of FDR-like sequences
- Target-decoy q-values (local per file, global per precursor)
- Combined and paired empirical FDR from entrapment sequences

Key Features
------------
- Numba-accelerated kernels
- Pure NumPy/Numba implementation (no pandas dependency)
- Every computation is scoped to one acquisition file

Examples
--------
>>> from entrapfdr.scoring import compute_qvalues, calculate_paired_efdr, monotonize
>>>
>>> qvalues = compute_qvalues(scores, is_decoy)
>>> efdr = calculate_paired_efdr(scores, complement_scores, is_original, qvalues)
"""

from .monotonize import (
    monotonize,
    monotonize_in_order,
    monotonize_inplace,
)
from .qvalues import (
    calculate_target_decoy_fdr,
    compute_global_qvalues,
    compute_qvalues,
    compute_qvalues_per_file,
)
from .efdr import (
    CombinedEFDR,
    EFDRMethod,
    PairedEFDR,
    calculate_combined_efdr,
    calculate_efdr,
    calculate_efdr_per_file,
    calculate_efdr_statistics,
    calculate_paired_efdr,
    classify_entrapment,
    efdr_sort_order,
)

__all__ = [
    # Monotonization
    "monotonize",
    "monotonize_inplace",
    "monotonize_in_order",
    # Q-values
    "calculate_target_decoy_fdr",
    "compute_qvalues",
    "compute_global_qvalues",
    "compute_qvalues_per_file",
    # Empirical FDR
    "calculate_combined_efdr",
    "calculate_paired_efdr",
    "calculate_efdr_per_file",
    "calculate_efdr_statistics",
    "classify_entrapment",
    "efdr_sort_order",
    "EFDRMethod",
    "CombinedEFDR",
    "PairedEFDR",
    "calculate_efdr",
]
