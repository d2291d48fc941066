"""Command-line entry point.

Usage::

    entrapfdr precursor results_run1.tsv results_run2.tsv --library library.tsv
    entrapfdr protein results.tsv --library library.tsv --local-qval 0.05
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .exceptions import MissingLibraryEntry
from .pipeline import EFDRConfig, run_efdr_analysis, run_protein_efdr_analysis
from .scoring import calculate_efdr_statistics


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="entrapfdr",
        description="Empirical FDR estimation with paired entrapment sequences",
    )
    parser.add_argument("level", choices=["precursor", "protein"], help="Analysis level")
    parser.add_argument("results", nargs="+", help="TSV or Parquet result file(s)")
    parser.add_argument("--library", required=True, help="TSV or Parquet spectral library")
    parser.add_argument("--output-dir", default="efdr_output", help="Output directory")
    parser.add_argument("--r-lib", type=float, default=1.0,
                        help="Library to real entrapment ratio (default: 1.0)")
    parser.add_argument("--local-qval", type=float, default=0.01,
                        help="Local q-value threshold (default: 0.01)")
    parser.add_argument("--global-qval", type=float, default=1.0,
                        help="Global q-value threshold (default: 1.0 = no filter)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = EFDRConfig(
            r_lib=args.r_lib,
            global_qval_threshold=args.global_qval,
            local_qval_threshold=args.local_qval,
            output_dir=args.output_dir,
        )
        if args.level == "precursor":
            table = run_efdr_analysis(args.results, args.library, config)
        else:
            table = run_protein_efdr_analysis(args.results, args.library, config)
    except (FileNotFoundError, ValueError, MissingLibraryEntry) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print("=" * 60)
    print(f"Entrapment analysis ({args.level})")
    print("=" * 60)
    for column in ("combined_efdr", "paired_efdr"):
        values = getattr(table, column)
        if values is None:
            continue
        stats = calculate_efdr_statistics(table.is_original, values)
        print(f"{column}:")
        print(f"  Originals:   {stats['n_originals']:,}")
        print(f"  Entrapments: {stats['n_entrapments']:,}")
        print(f"  At 1% EFDR:  {stats['n_originals_efdr01']:,}")
        print(f"  At 5% EFDR:  {stats['n_originals_efdr05']:,}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
