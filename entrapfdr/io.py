"""Readers and writers for identifications and libraries.

Inputs are tab-separated text, or Parquet when the file ends in ``.parquet``
(read through pandas, installed with the ``parquet`` extra). Both formats go
through the same column checks and missing-value defaults. Results are
always written as TSV.

Expected result columns:
- stripped_seq: peptide sequence without modifications
- z: charge state
- PredVal: score (higher is better)
- decoy: decoy flag
- file_name: source run (optional, defaults to the file's stem)
- channel: multiplexing channel (optional, defaults to 0)
- protein: protein group (optional, needed for protein-level analysis)

Expected library columns:
- PeptideSequence, PrecursorCharge, EntrapmentGroupId (0 = original),
  PrecursorIdx (pair identifier)
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .data import IdentificationTable, SpectralLibrary

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

REQUIRED_RESULT_COLUMNS = ["stripped_seq", "z", "PredVal", "decoy"]
REQUIRED_LIBRARY_COLUMNS = ["PeptideSequence", "PrecursorCharge", "EntrapmentGroupId", "PrecursorIdx"]

PARQUET_SUFFIXES = {".parquet", ".pq"}

# IdentificationTable field -> output column
RESULT_COLUMN_NAMES = {
    "sequences": "stripped_seq",
    "charges": "z",
    "scores": "PredVal",
    "is_decoy": "decoy",
    "file_ids": "file_name",
    "channel_ids": "channel",
    "protein_ids": "protein",
    "is_original": "is_original",
    "pair_ids": "pair_id",
    "entrapment_groups": "entrap_label",
    "complement_scores": "complement_score",
    "local_qvalues": "local_qvalue",
    "global_qvalues": "global_qvalue",
    "combined_efdr": "combined_entrapment_fdr",
    "paired_efdr": "paired_entrapment_fdr",
}

_MISSING = {"", "NA", "NaN", "nan", "missing"}
_TRUE = {"true", "t", "1", "yes"}
_FALSE = {"false", "f", "0", "no"}


def _is_missing(value) -> bool:
    return value is None or value.strip() in _MISSING


def _parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def _read_tsv(path: Path) -> tuple[List[str], List[Dict[str, Optional[str]]]]:
    with open(path, "r", newline="") as f:
        reader = csv.DictReader(f, delimiter="\t")
        fieldnames = list(reader.fieldnames or [])
        rows = list(reader)
    return fieldnames, rows


def _read_parquet(path: Path) -> tuple[List[str], List[Dict[str, Optional[str]]]]:
    """Read a Parquet file into the same text rows the TSV reader yields.

    Null cells become None so they take the usual missing-value defaults.
    """
    import pandas as pd

    df = pd.read_parquet(path)
    fieldnames = [str(col) for col in df.columns]
    rows = [
        {
            name: None if pd.isna(value) else str(value)
            for name, value in zip(fieldnames, record)
        }
        for record in df.itertuples(index=False, name=None)
    ]
    return fieldnames, rows


def _read_table(path: Path) -> tuple[List[str], List[Dict[str, Optional[str]]]]:
    if path.suffix.lower() in PARQUET_SUFFIXES:
        return _read_parquet(path)
    return _read_tsv(path)


def _check_columns(fieldnames: List[str], required: List[str], path: Path) -> None:
    missing = [col for col in required if col not in fieldnames]
    if missing:
        raise ValueError(f"Missing required columns in {path.name}: {', '.join(missing)}")


def _column(rows, name, parse, default, path: Path) -> list:
    values = []
    n_missing = 0
    for row in rows:
        raw = row.get(name)
        if _is_missing(raw):
            n_missing += 1
            values.append(default)
        else:
            values.append(parse(raw))
    if n_missing > 0:
        logger.warning(
            f"Found {n_missing:,} missing {name} values in {path.name}, replacing with {default!r}"
        )
    return values


def load_spectral_library(path: PathLike) -> SpectralLibrary:
    """Load a spectral library from a TSV or Parquet file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    ValueError
        If required columns are missing
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Library file not found: {path}")

    logger.info(f"Loading spectral library from: {path.name}")
    fieldnames, rows = _read_table(path)
    _check_columns(fieldnames, REQUIRED_LIBRARY_COLUMNS, path)

    library = SpectralLibrary(
        sequences=[row["PeptideSequence"] for row in rows],
        charges=_column(rows, "PrecursorCharge", lambda v: int(float(v)), 0, path),
        entrapment_group_ids=[int(row["EntrapmentGroupId"]) for row in rows],
        pair_ids=[int(row["PrecursorIdx"]) for row in rows],
    )

    logger.info(
        f"✓ Library loaded: {library.n_originals:,} targets, "
        f"{library.n_entrapments:,} entrapments"
    )
    return library


def load_results(paths: Union[PathLike, Sequence[PathLike]]) -> IdentificationTable:
    """Load and combine one or more TSV or Parquet result files.

    Raises
    ------
    FileNotFoundError
        If any file does not exist (checked before reading anything)
    ValueError
        If a file lacks a required column
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    paths = [Path(p) for p in paths]

    for path in paths:
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

    columns = {name: [] for name in ("sequences", "charges", "scores", "is_decoy",
                                     "file_ids", "channel_ids", "protein_ids")}
    has_protein = True

    for i, path in enumerate(paths, start=1):
        logger.info(f"Loading file {i}/{len(paths)}: {path.name}")
        fieldnames, rows = _read_table(path)
        _check_columns(fieldnames, REQUIRED_RESULT_COLUMNS, path)

        columns["sequences"].extend(_column(rows, "stripped_seq", str.strip, "", path))
        columns["charges"].extend(_column(rows, "z", lambda v: int(float(v)), 0, path))
        columns["scores"].extend(_column(rows, "PredVal", float, 0.0, path))
        columns["is_decoy"].extend(_column(rows, "decoy", _parse_bool, False, path))

        if "file_name" in fieldnames:
            columns["file_ids"].extend(_column(rows, "file_name", str.strip, "", path))
        else:
            columns["file_ids"].extend([path.stem] * len(rows))

        if "channel" in fieldnames:
            columns["channel_ids"].extend(_column(rows, "channel", lambda v: int(float(v)), 0, path))
        else:
            logger.info(f"No channel column detected in {path.name}, adding dummy channel 0")
            columns["channel_ids"].extend([0] * len(rows))

        if "protein" in fieldnames:
            columns["protein_ids"].extend(_column(rows, "protein", str.strip, "", path))
        else:
            has_protein = False

    if not has_protein:
        columns["protein_ids"] = None

    table = IdentificationTable(**columns)
    logger.info(f"✓ Loaded {len(table):,} total PSMs")
    return table


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def write_results(table: IdentificationTable, path: PathLike) -> Path:
    """Write every populated column of ``table`` to a TSV file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    columns = table.as_dict()
    header = [RESULT_COLUMN_NAMES[name] for name in columns]
    values = [np.asarray(col).tolist() for col in columns.values()]

    with open(path, "w", newline="") as f:
        writer = csv.writer(f, delimiter="\t")
        writer.writerow(header)
        for row in zip(*values):
            writer.writerow([_format_value(v) for v in row])

    logger.info(f"✓ Results saved to: {path}")
    return path
