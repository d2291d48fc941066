"""Pytest configuration for entrapfdr tests.

Shared fixtures: a small paired library and matching identification
tables covering two runs and two channels.
"""

import numpy as np
import pytest

from entrapfdr.data import IdentificationTable, SpectralLibrary


@pytest.fixture
def paired_library():
    """Three original/entrapment pairs (pair ids 100, 200, 300)."""
    return SpectralLibrary(
        sequences=["PEPTIDE1", "EDITPEP1", "PEPTIDE2", "EDITPEP2", "PEPTIDE3", "EDITPEP3"],
        charges=[2, 2, 3, 3, 2, 2],
        entrapment_group_ids=[0, 1, 0, 1, 0, 1],
        pair_ids=[100, 100, 200, 200, 300, 300],
    )


@pytest.fixture
def single_run_results():
    """One run, one channel, six targets and three decoys."""
    return IdentificationTable(
        sequences=["PEPTIDE1", "EDITPEP1", "PEPTIDE2", "EDITPEP2", "PEPTIDE3", "EDITPEP3",
                   "PEPTIDE1", "EDITPEP1", "PEPTIDE2"],
        charges=[2, 2, 3, 3, 2, 2, 2, 2, 3],
        scores=[0.9, 0.8, 0.7, 0.6, 0.85, 0.75, 0.88, 0.78, 0.68],
        is_decoy=[False, False, False, False, False, False, True, True, True],
        file_ids=["run1"] * 9,
        channel_ids=[0] * 9,
        protein_ids=["PROT1", "PROT1", "PROT2", "PROT2", "PROT3", "PROT3",
                     "PROT1", "PROT1", "PROT2"],
    )


@pytest.fixture
def two_run_results():
    """Same pair identified in two runs and two channels with different scores."""
    return IdentificationTable(
        sequences=["PEPTIDE1", "EDITPEP1", "PEPTIDE1", "EDITPEP1",
                   "PEPTIDE1", "EDITPEP1"],
        charges=[2, 2, 2, 2, 2, 2],
        scores=[0.9, 0.8, 0.95, 0.85, 0.5, 0.7],
        is_decoy=[False] * 6,
        file_ids=["run1", "run1", "run1", "run1", "run2", "run2"],
        channel_ids=[0, 0, 1, 1, 0, 0],
    )


@pytest.fixture
def write_tsv():
    """Helper writing a small tab-separated file for I/O tests."""

    def _write(path, header, rows):
        with open(path, "w") as f:
            f.write("\t".join(header) + "\n")
            for row in rows:
                f.write("\t".join(str(v) for v in row) + "\n")
        return path

    return _write


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
