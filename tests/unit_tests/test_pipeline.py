"""End-to-end tests for the precursor and protein analyses and the CLI."""

import numpy as np
import pytest

from entrapfdr.cli import main
from entrapfdr.data import IdentificationTable
from entrapfdr.exceptions import MissingLibraryEntry
from entrapfdr.pipeline import (
    PRECURSOR_RESULTS_FILE,
    PROTEIN_RESULTS_FILE,
    EFDRConfig,
    run_efdr_analysis,
    run_protein_efdr_analysis,
)


class TestEFDRConfig:

    def test_defaults(self):
        config = EFDRConfig()
        assert config.r_lib == 1.0
        assert config.local_qval_threshold == 0.01
        assert config.global_qval_threshold == 1.0

    def test_invalid_ratio(self):
        with pytest.raises(ValueError, match="r_lib"):
            EFDRConfig(r_lib=0.0)

    def test_negative_threshold(self):
        with pytest.raises(ValueError, match="local_qval_threshold"):
            EFDRConfig(local_qval_threshold=-0.1)


class TestPrecursorAnalysis:

    def test_unfiltered(self, single_run_results, paired_library, tmp_path):
        config = EFDRConfig(local_qval_threshold=1.0, output_dir=tmp_path)

        table = run_efdr_analysis(single_run_results, paired_library, config)

        assert len(table) == 6
        assert not np.any(table.is_decoy)
        assert table.has_pairing
        assert np.all((table.combined_efdr >= 0) & (table.combined_efdr <= 1))
        assert np.all((table.paired_efdr >= 0) & (table.paired_efdr <= 1))
        assert (tmp_path / PRECURSOR_RESULTS_FILE).is_file()

    def test_local_filter(self, single_run_results, paired_library):
        config = EFDRConfig(local_qval_threshold=0.0, output_dir=None)

        table = run_efdr_analysis(single_run_results, paired_library, config)

        # Only the target ranked above every decoy passes q = 0
        np.testing.assert_array_equal(table.sequences, ["PEPTIDE1"])
        np.testing.assert_allclose(table.combined_efdr, [0.0])

    def test_everything_filtered(self, paired_library):
        results = IdentificationTable(
            sequences=["PEPTIDE1", "PEPTIDE2"], charges=[2, 3], scores=[0.9, 0.8],
            is_decoy=[True, False], file_ids=["run1", "run1"],
        )
        config = EFDRConfig(local_qval_threshold=0.5, output_dir=None)

        table = run_efdr_analysis(results, paired_library, config)

        assert len(table) == 0
        assert len(table.combined_efdr) == 0

    def test_missing_library_entry(self, paired_library):
        results = IdentificationTable(["UNKNOWN"], [2], [0.9], [False], file_ids=["run1"])
        config = EFDRConfig(local_qval_threshold=1.0, output_dir=None)

        with pytest.raises(MissingLibraryEntry):
            run_efdr_analysis(results, paired_library, config)

    def test_runs_are_independent(self, two_run_results, paired_library):
        config = EFDRConfig(local_qval_threshold=1.0, output_dir=None)

        table = run_efdr_analysis(two_run_results, paired_library, config)

        # run1 ranks .95, .9, .85, .8 -> 0, 0, 1/3, 1/2; run2 entrapment wins -> capped
        np.testing.assert_allclose(
            table.paired_efdr, [0.0, 0.5, 0.0, 1.0 / 3.0, 1.0, 1.0]
        )


class TestProteinAnalysis:

    def test_unfiltered(self, single_run_results, paired_library, tmp_path):
        config = EFDRConfig(local_qval_threshold=1.0, output_dir=tmp_path)

        proteins = run_protein_efdr_analysis(single_run_results, paired_library, config)

        # PROT1..3, each with an original and an entrapment representative
        assert len(proteins) == 6
        assert not np.any(proteins.is_decoy)
        assert proteins.paired_efdr is None
        assert np.all(proteins.combined_efdr <= 1.0)
        assert (tmp_path / PROTEIN_RESULTS_FILE).is_file()

    def test_requires_protein_column(self, two_run_results, paired_library):
        with pytest.raises(ValueError, match="protein"):
            run_protein_efdr_analysis(two_run_results, paired_library,
                                      EFDRConfig(output_dir=None))


@pytest.fixture
def input_files(tmp_path, write_tsv):
    library = write_tsv(
        tmp_path / "library.tsv",
        ["PeptideSequence", "PrecursorCharge", "EntrapmentGroupId", "PrecursorIdx"],
        [["PEPTIDE1", 2, 0, 100], ["EDITPEP1", 2, 1, 100]],
    )
    results = write_tsv(
        tmp_path / "run1.tsv",
        ["stripped_seq", "z", "PredVal", "decoy", "protein"],
        [["PEPTIDE1", 2, 0.9, "false", "PROT1"],
         ["EDITPEP1", 2, 0.8, "false", "PROT1"],
         ["PEPTIDE1", 2, 0.7, "true", "PROT1"]],
    )
    return library, results


class TestCLI:

    def test_precursor(self, input_files, tmp_path, capsys):
        library, results = input_files
        out = tmp_path / "out"

        code = main(["precursor", str(results), "--library", str(library),
                     "--output-dir", str(out), "--local-qval", "1.0"])

        assert code == 0
        assert (out / PRECURSOR_RESULTS_FILE).is_file()
        assert "paired_efdr" in capsys.readouterr().out

    def test_protein(self, input_files, tmp_path):
        library, results = input_files
        out = tmp_path / "out"

        code = main(["protein", str(results), "--library", str(library),
                     "--output-dir", str(out), "--local-qval", "1.0"])

        assert code == 0
        assert (out / PROTEIN_RESULTS_FILE).is_file()

    def test_missing_file(self, input_files, tmp_path, capsys):
        library, _ = input_files

        code = main(["precursor", str(tmp_path / "nope.tsv"), "--library", str(library)])

        assert code == 1
        assert "Error" in capsys.readouterr().err
