"""Tests for TSV loading and writing."""

import csv

import numpy as np
import pytest

from entrapfdr.data import IdentificationTable
from entrapfdr.io import load_results, load_spectral_library, write_results

LIBRARY_HEADER = ["PeptideSequence", "PrecursorCharge", "EntrapmentGroupId", "PrecursorIdx"]
RESULT_HEADER = ["stripped_seq", "z", "PredVal", "decoy", "file_name", "channel", "protein"]


@pytest.fixture
def library_file(tmp_path, write_tsv):
    return write_tsv(
        tmp_path / "library.tsv",
        LIBRARY_HEADER,
        [["PEPTIDE1", 2, 0, 100], ["EDITPEP1", 2, 1, 100],
         ["PEPTIDE2", 3, 0, 200], ["EDITPEP2", 3, 1, 200]],
    )


class TestLoadSpectralLibrary:

    def test_basic(self, library_file):
        library = load_spectral_library(library_file)

        assert len(library) == 4
        np.testing.assert_array_equal(library.charges, [2, 2, 3, 3])
        np.testing.assert_array_equal(library.pair_ids, [100, 100, 200, 200])
        assert library.n_originals == 2
        assert library.n_entrapments == 2
        assert library.entrapment_sequences() == {"EDITPEP1", "EDITPEP2"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_spectral_library(tmp_path / "nope.tsv")

    def test_missing_columns(self, tmp_path, write_tsv):
        path = write_tsv(tmp_path / "lib.tsv", ["PeptideSequence", "PrecursorCharge"],
                         [["PEPTIDE1", 2]])
        with pytest.raises(ValueError, match="EntrapmentGroupId"):
            load_spectral_library(path)


class TestLoadResults:

    def test_single_file(self, tmp_path, write_tsv):
        path = write_tsv(
            tmp_path / "run1.tsv",
            RESULT_HEADER,
            [["PEPTIDE1", 2, 0.9, "false", "run1", 0, "PROT1"],
             ["EDITPEP1", 2, 0.8, "true", "run1", 1, "PROT1"]],
        )

        table = load_results(path)

        assert len(table) == 2
        np.testing.assert_array_equal(table.sequences, ["PEPTIDE1", "EDITPEP1"])
        np.testing.assert_allclose(table.scores, [0.9, 0.8])
        np.testing.assert_array_equal(table.is_decoy, [False, True])
        np.testing.assert_array_equal(table.channel_ids, [0, 1])
        np.testing.assert_array_equal(table.protein_ids, ["PROT1", "PROT1"])

    def test_multiple_files_concatenated(self, tmp_path, write_tsv):
        header = ["stripped_seq", "z", "PredVal", "decoy"]
        a = write_tsv(tmp_path / "a.tsv", header, [["PEPTIDE1", 2, 0.9, 0]])
        b = write_tsv(tmp_path / "b.tsv", header, [["PEPTIDE2", 3, 0.7, 1],
                                                   ["PEPTIDE3", 2, 0.6, 0]])

        table = load_results([a, b])

        assert len(table) == 3
        # No file_name column: file stem is used
        np.testing.assert_array_equal(table.file_ids, ["a", "b", "b"])
        np.testing.assert_array_equal(table.channel_ids, [0, 0, 0])
        assert table.protein_ids is None

    def test_missing_values_replaced(self, tmp_path, write_tsv, caplog):
        path = write_tsv(
            tmp_path / "run.tsv",
            ["stripped_seq", "z", "PredVal", "decoy", "channel"],
            [["PEPTIDE1", 2, "NA", "false", ""], ["PEPTIDE2", 3, 0.5, "true", 2]],
        )

        with caplog.at_level("WARNING"):
            table = load_results(path)

        np.testing.assert_allclose(table.scores, [0.0, 0.5])
        np.testing.assert_array_equal(table.channel_ids, [0, 2])
        assert "missing PredVal" in caplog.text

    def test_missing_file_checked_first(self, tmp_path, write_tsv):
        path = write_tsv(tmp_path / "ok.tsv", ["stripped_seq", "z", "PredVal", "decoy"],
                         [["PEPTIDE1", 2, 0.9, 0]])
        with pytest.raises(FileNotFoundError, match="missing.tsv"):
            load_results([path, tmp_path / "missing.tsv"])

    def test_missing_required_column(self, tmp_path, write_tsv):
        path = write_tsv(tmp_path / "run.tsv", ["stripped_seq", "z", "decoy"],
                         [["PEPTIDE1", 2, 0]])
        with pytest.raises(ValueError, match="PredVal"):
            load_results(path)

    def test_bad_decoy_flag(self, tmp_path, write_tsv):
        path = write_tsv(tmp_path / "run.tsv", ["stripped_seq", "z", "PredVal", "decoy"],
                         [["PEPTIDE1", 2, 0.9, "maybe"]])
        with pytest.raises(ValueError, match="boolean"):
            load_results(path)


class TestWriteResults:

    def test_columns_and_values(self, tmp_path):
        table = IdentificationTable(
            sequences=["PEPTIDE1", "EDITPEP1"],
            charges=[2, 2],
            scores=[0.9, 0.8],
            is_decoy=[False, False],
            file_ids=["run1", "run1"],
            is_original=[True, False],
            combined_efdr=[0.0, 0.5],
        )

        path = write_results(table, tmp_path / "out" / "results.tsv")

        with open(path, newline="") as f:
            rows = list(csv.DictReader(f, delimiter="\t"))

        assert list(rows[0].keys()) == [
            "stripped_seq", "z", "PredVal", "decoy", "file_name", "channel",
            "is_original", "combined_entrapment_fdr",
        ]
        assert rows[0]["is_original"] == "true"
        assert rows[1]["is_original"] == "false"
        assert float(rows[1]["combined_entrapment_fdr"]) == pytest.approx(0.5)

    def test_written_file_loads_back(self, tmp_path, single_run_results):
        path = write_results(single_run_results, tmp_path / "results.tsv")

        table = load_results(path)

        np.testing.assert_array_equal(table.sequences, single_run_results.sequences)
        np.testing.assert_array_equal(table.is_decoy, single_run_results.is_decoy)
        np.testing.assert_array_equal(table.protein_ids, single_run_results.protein_ids)


class TestParquetInput:
    """Parquet files go through the same checks as TSV."""

    @pytest.fixture
    def pd(self):
        pytest.importorskip("pyarrow")
        return pytest.importorskip("pandas")

    def test_results(self, tmp_path, pd):
        path = tmp_path / "run1.parquet"
        pd.DataFrame({
            "stripped_seq": ["PEPTIDE1", "EDITPEP1", "PEPTIDE2"],
            "z": [2, 2, 3],
            "PredVal": [0.9, None, 0.7],
            "decoy": [False, False, True],
            "channel": [0, 1, 0],
        }).to_parquet(path)

        table = load_results(path)

        np.testing.assert_array_equal(table.sequences, ["PEPTIDE1", "EDITPEP1", "PEPTIDE2"])
        np.testing.assert_array_equal(table.charges, [2, 2, 3])
        # Null score takes the default
        np.testing.assert_allclose(table.scores, [0.9, 0.0, 0.7])
        np.testing.assert_array_equal(table.is_decoy, [False, False, True])
        np.testing.assert_array_equal(table.channel_ids, [0, 1, 0])
        np.testing.assert_array_equal(table.file_ids, ["run1"] * 3)

    def test_mixed_with_tsv(self, tmp_path, pd, write_tsv):
        parquet = tmp_path / "a.parquet"
        pd.DataFrame({
            "stripped_seq": ["PEPTIDE1"], "z": [2], "PredVal": [0.9], "decoy": [False],
        }).to_parquet(parquet)
        tsv = write_tsv(tmp_path / "b.tsv", ["stripped_seq", "z", "PredVal", "decoy"],
                        [["PEPTIDE2", 3, 0.7, "true"]])

        table = load_results([parquet, tsv])

        np.testing.assert_array_equal(table.file_ids, ["a", "b"])
        np.testing.assert_array_equal(table.is_decoy, [False, True])

    def test_library(self, tmp_path, pd):
        path = tmp_path / "library.parquet"
        pd.DataFrame({
            "PeptideSequence": ["PEPTIDE1", "EDITPEP1"],
            "PrecursorCharge": [2, 2],
            "EntrapmentGroupId": [0, 1],
            "PrecursorIdx": [100, 100],
        }).to_parquet(path)

        library = load_spectral_library(path)

        np.testing.assert_array_equal(library.pair_ids, [100, 100])
        assert library.entrapment_sequences() == {"EDITPEP1"}

    def test_missing_column(self, tmp_path, pd):
        path = tmp_path / "run.parquet"
        pd.DataFrame({"stripped_seq": ["PEPTIDE1"], "z": [2], "decoy": [False]}).to_parquet(path)

        with pytest.raises(ValueError, match="PredVal"):
            load_results(path)

    def test_written_results_from_parquet(self, tmp_path, pd):
        path = tmp_path / "run1.parquet"
        pd.DataFrame({
            "stripped_seq": ["PEPTIDE1", "EDITPEP1"],
            "z": [2, 2],
            "PredVal": [0.9, 0.8],
            "decoy": [False, False],
        }).to_parquet(path)

        out = write_results(load_results(path), tmp_path / "out.tsv")

        assert load_results(out).sequences.tolist() == ["PEPTIDE1", "EDITPEP1"]
