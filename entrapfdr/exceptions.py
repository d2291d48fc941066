"""Exceptions and warnings raised by entrapfdr.

All validation happens at the public entry points. Once inputs pass,
the numeric kernels assume their invariants hold and never re-check.
"""


class MissingLibraryEntry(LookupError):
    """An identification's (sequence, charge) key is absent from the library.

    Fatal: every downstream count would be silently wrong if the entry
    were skipped or guessed.
    """

    def __init__(self, sequence: str, charge: int):
        self.sequence = sequence
        self.charge = charge
        super().__init__(
            f"Sequence not found in library: {sequence} with charge {charge}"
        )


class InputLengthMismatch(ValueError):
    """Parallel input arrays have different lengths."""


class UnsortedInputWarning(UserWarning):
    """Q-values passed to an EFDR estimator disagree with the score order."""
