"""Load one normalization stage into a database through SQLAlchemy.

Usage is intentionally minimal:

1. Point --url at any SQLAlchemy database (a local SQLite file by default).
2. Run this script with a CSV file, or with `sample` for the built-in dataset.
3. If any of the stage's tables already exist, nothing happens.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from tabular_3nf_normalizer import (
    CONFIG,
    SAMPLE_ROWS,
    STAGES,
    NormalizationPipeline,
    NormalizationResult,
    SqlClient,
    SqlEmitter,
    read_csv_rows,
)


DEFAULT_URL = "sqlite:///normalized.db"
DEFAULT_STAGE = "3nf"


def existing_tables(client: SqlClient, result: NormalizationResult, stage: str) -> List[str]:
    return [t.name for t in result.stage(stage) if client.table_exists(t.name)]


def load(client: SqlClient, result: NormalizationResult, stage: str) -> int:
    """Create and fill the stage's tables; returns the number of statements run (0 when skipped)."""
    present = existing_tables(client, result, stage)
    if present:
        print(f"Tables already present ({', '.join(present)}); nothing to do.")
        return 0

    statements = SqlEmitter(result).statements(stage)
    if not statements:
        print(f"Stage {stage} has no tables; nothing to do.")
        return 0

    print(f"Loading {len(result.stage(stage))} tables for stage {stage}...", flush=True)
    executed = client.execute_statements(statements)
    print(f"Loading complete. {executed} statements executed.")
    return executed


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Normalize a flat CSV and load one stage into a database.")
    parser.add_argument("source", help="CSV file with a header row, or 'sample' for the built-in TV dataset.")
    parser.add_argument("--url", default=DEFAULT_URL, help="SQLAlchemy URL of the target (default: %(default)s)")
    parser.add_argument("--stage", default=DEFAULT_STAGE, choices=STAGES, help="Stage to load (default: %(default)s)")
    parser.add_argument("--name", help="Dataset name used for table naming (default: file stem)")
    parser.add_argument("--max-rows", type=int, default=CONFIG["SAMPLING"]["MAX_ROWS"], help="Analyse only the first N rows.")

    args = parser.parse_args(argv)
    if args.source == "sample":
        rows = [dict(r) for r in SAMPLE_ROWS]
        name = args.name or "tv_sample"
    else:
        rows = read_csv_rows(Path(args.source), args.max_rows)
        name = args.name or Path(args.source).stem

    result = NormalizationPipeline(name).run(rows)
    for warning in result.warnings:
        print(f"[WARN] {warning}")

    client = SqlClient(args.url)
    try:
        load(client, result, args.stage)
    except SQLAlchemyError as exc:
        print(
            "[ERROR] Could not load the generated SQL. Check the URL, the driver installation and that the chosen",
            "primary keys are unique in the exported rows.",
        )
        print(f"Details: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
