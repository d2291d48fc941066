"""entrapfdr - Empirical FDR estimation with paired entrapment sequences.

Entrapment sequences are injected into a spectral library, each paired
with one original sequence. Counting how often they are identified, and
whether they outscore their paired original in the same file and channel,
gives two empirical estimates of the real false discovery rate.

All numeric kernels are Numba-compiled and operate on NumPy arrays.
"""

__version__ = "0.1.0"

from entrapfdr import scoring
from entrapfdr import pairing
from entrapfdr.data import IdentificationTable, SpectralLibrary, UNPAIRED_SCORE
from entrapfdr.exceptions import (
    InputLengthMismatch,
    MissingLibraryEntry,
    UnsortedInputWarning,
)
from entrapfdr.pipeline import EFDRConfig, run_efdr_analysis, run_protein_efdr_analysis

__all__ = [
    "scoring",
    "pairing",
    "IdentificationTable",
    "SpectralLibrary",
    "UNPAIRED_SCORE",
    "MissingLibraryEntry",
    "InputLengthMismatch",
    "UnsortedInputWarning",
    "EFDRConfig",
    "run_efdr_analysis",
    "run_protein_efdr_analysis",
]
