"""
Tabular 3NF normalizer: FD mining, key discovery and staged decomposition.

The tool takes one flat table (a CSV file or a table reachable through a
SQLAlchemy URL), mines the functional dependencies that hold in its rows,
picks candidate keys and decomposes the relation stage by stage
(UNF -> 1NF -> 2NF -> 3NF). Each stage can be exported as CREATE/INSERT SQL.

Everything tunable lives in the CONFIG constant below; the command line only
rewrites it. The analysis core is pure: it never prints and never touches the
filesystem. Anything worth telling the user ends up in
`NormalizationResult.warnings` and is echoed by the runner.

Mining and key search are bounded on purpose (pair determinants only, keys of
at most three columns) so that real datasets stay tractable. The FD set is
an approximation drawn from the rows at hand, not a minimal cover.
"""
from __future__ import annotations

import argparse
import csv
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import reduce
from itertools import combinations
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine


# --------------------------------------------------------------------------------------
# Configuration
# --------------------------------------------------------------------------------------
CONFIG: Dict[str, Any] = {
    "SOURCES": [
        {
            "name": "tv_dataset",
            "kind": "csv",
            "path": "data/tv_dataset.csv",
        },
        # {
        #     "name": "orders",
        #     "kind": "sql",
        #     "sqlalchemy_url": "sqlite:///orders.db",
        #     "table": "orders_flat",
        # },
    ],
    "LIMITS": {
        "MAX_KEY_SIZE": 3,
        # Upper bound on two-column determinants tested (pruned pairs count too).
        "PAIR_LIMIT": 50,
        "TRY_PAIRS": True,
        # Pairs whose distinct combinations exceed this share of rows are skipped.
        "PAIR_PRUNE_RATIO": 0.95,
    },
    "SAMPLING": {
        # None analyses every row; otherwise only the first MAX_ROWS rows are read.
        "MAX_ROWS": None,
    },
    "ATOMICITY": {
        "SEPARATORS": (",", ";", "|"),
    },
    "SQL": {
        "COLUMN_TYPE": "VARCHAR",
        "INSERT_ROW_LIMIT": 5,
    },
    "OUTPUT": {
        "BASE_PATH": "output",
        "STAGES": ("unf", "1nf", "2nf", "3nf"),
    },
}

STAGES: Tuple[str, ...] = ("unf", "1nf", "2nf", "3nf")

Row = Dict[str, Optional[str]]

SAMPLE_ROWS: List[Row] = [
    {"channel": "HBO", "show": "Game of Thrones", "genre": "Drama", "network": "HBO", "day": "Sunday"},
    {"channel": "Netflix", "show": "Stranger Things", "genre": "Drama", "network": "Netflix", "day": "Friday"},
]

PLAIN_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# --------------------------------------------------------------------------------------
# Utility helpers
# --------------------------------------------------------------------------------------
def quote_ident(name: str) -> str:
    """Quote an identifier with ANSI double quotes unless it is a plain name.

    Embedded double quotes are escaped by doubling them (`"` -> `""`).
    """
    if PLAIN_IDENT_RE.match(name):
        return name
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def quote_literal(value: Optional[Any]) -> str:
    return "'" + ("" if value is None else str(value)).replace("'", "''") + "'"


def cell(row: Row, column: str) -> Optional[str]:
    """Value of `column` in `row`, stringified; missing cells come back as None."""
    value = row.get(column)
    return None if value is None else str(value)


def dedup_key(row: Row, columns: Sequence[str]) -> Tuple[str, ...]:
    # Missing and NULL cells both collapse to the empty string here.
    return tuple("" if row.get(c) is None else str(row.get(c)) for c in columns)


def unique_rows(rows: Iterable[Row], columns: Sequence[str]) -> List[Row]:
    """Project `rows` onto `columns`, keeping the first row seen per distinct key."""
    seen: Dict[Tuple[str, ...], Row] = {}
    for row in rows:
        key = dedup_key(row, columns)
        if key not in seen:
            seen[key] = {c: row.get(c) for c in columns}
    return list(seen.values())


def ordered_union(*groups: Iterable[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for name in group:
            if name not in merged:
                merged.append(name)
    return merged


# --------------------------------------------------------------------------------------
# Data containers
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class FunctionalDependency:
    lhs: Tuple[str, ...]
    rhs: str

    def __post_init__(self) -> None:
        if not self.lhs:
            raise ValueError("functional dependency needs at least one determinant column")
        if self.rhs in self.lhs:
            raise ValueError(f"dependent column {self.rhs!r} also appears in determinant {self.lhs}")

    @property
    def identity(self) -> Tuple[frozenset, str]:
        return frozenset(self.lhs), self.rhs

    def __str__(self) -> str:
        return f"{{{', '.join(self.lhs)}}} -> {self.rhs}"


@dataclass
class Table:
    name: str
    columns: List[str]
    rows: List[Row] = field(default_factory=list)

    @classmethod
    def project(cls, name: str, columns: Sequence[str], rows: Iterable[Row]) -> "Table":
        cols = list(columns)
        return cls(name=name, columns=cols, rows=unique_rows(rows, cols))

    def without_column(self, column: str) -> "Table":
        remaining = [c for c in self.columns if c != column]
        return Table.project(self.name, remaining, self.rows)


@dataclass
class DependencyClassification:
    full: List[FunctionalDependency] = field(default_factory=list)
    partial: List[FunctionalDependency] = field(default_factory=list)
    transitive: List[FunctionalDependency] = field(default_factory=list)


@dataclass
class NormalizationResult:
    unf: List[Table]
    first_nf: List[Table]
    second_nf: List[Table]
    third_nf: List[Table]
    dependencies: List[FunctionalDependency]
    candidate_keys: List[Tuple[str, ...]]
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls, warning: str) -> "NormalizationResult":
        return cls(unf=[], first_nf=[], second_nf=[], third_nf=[], dependencies=[], candidate_keys=[], warnings=[warning])

    def stage(self, name: str) -> List[Table]:
        stages = {"unf": self.unf, "1nf": self.first_nf, "2nf": self.second_nf, "3nf": self.third_nf}
        if name not in stages:
            raise ValueError(f"unknown stage {name!r}; expected one of {', '.join(STAGES)}")
        return stages[name]


# --------------------------------------------------------------------------------------
# Closure engine
# --------------------------------------------------------------------------------------
def closure(attributes: Iterable[str], fds: Sequence[FunctionalDependency]) -> Set[str]:
    """Smallest superset of `attributes` closed under `fds`.

    Passes over the FD list repeat until one pass adds nothing, so the number of
    passes is bounded by the number of attributes that can still be added.
    """
    closed = set(attributes)
    changed = True
    while changed:
        changed = False
        for fd in fds:
            if fd.rhs not in closed and closed.issuperset(fd.lhs):
                closed.add(fd.rhs)
                changed = True
    return closed


def is_superkey(candidate: Iterable[str], columns: Iterable[str], fds: Sequence[FunctionalDependency]) -> bool:
    return closure(candidate, fds).issuperset(columns)


# --------------------------------------------------------------------------------------
# FD mining
# --------------------------------------------------------------------------------------
class FDMiner:
    """Finds single- and pair-determinant FDs that no row contradicts."""

    def __init__(
        self,
        rows: Sequence[Row],
        columns: Sequence[str],
        limit_pairs: Optional[int] = None,
        prune_ratio: Optional[float] = None,
    ) -> None:
        limits = CONFIG["LIMITS"]
        self.rows = rows
        self.columns = list(columns)
        self.limit_pairs = limits["PAIR_LIMIT"] if limit_pairs is None else limit_pairs
        self.prune_ratio = limits["PAIR_PRUNE_RATIO"] if prune_ratio is None else prune_ratio

    def holds(self, lhs: Sequence[str], rhs: str) -> bool:
        # The first value seen per determinant is the reference; any other value refutes.
        seen: Dict[Tuple[Optional[str], ...], Optional[str]] = {}
        for row in self.rows:
            key = tuple(cell(row, c) for c in lhs)
            value = cell(row, rhs)
            if key in seen:
                if seen[key] != value:
                    return False
            else:
                seen[key] = value
        return True

    def distinct_count(self, columns: Sequence[str]) -> int:
        return len({tuple(cell(row, c) for c in columns) for row in self.rows})

    def single_attribute_fds(self) -> List[FunctionalDependency]:
        fds: List[FunctionalDependency] = []
        if not self.rows:
            return fds
        for a in self.columns:
            for b in self.columns:
                if a != b and self.holds((a,), b):
                    fds.append(FunctionalDependency(lhs=(a,), rhs=b))
        return fds

    def pair_attribute_fds(self) -> List[FunctionalDependency]:
        fds: List[FunctionalDependency] = []
        if not self.rows:
            return fds
        # Low-cardinality columns first: their pairs are the likeliest determinants.
        cardinality = {c: self.distinct_count((c,)) for c in self.columns}
        ordered = sorted(self.columns, key=lambda c: cardinality[c])
        row_count = max(1, len(self.rows))

        tested = 0
        for a, b in combinations(ordered, 2):
            if tested >= self.limit_pairs:
                break
            tested += 1
            if self.distinct_count((a, b)) / row_count > self.prune_ratio:
                continue
            for rhs in self.columns:
                if rhs in (a, b):
                    continue
                if self.holds((a, b), rhs):
                    fds.append(FunctionalDependency(lhs=(a, b), rhs=rhs))
        return fds

    def discover(self, try_pairs: Optional[bool] = None) -> List[FunctionalDependency]:
        if try_pairs is None:
            try_pairs = CONFIG["LIMITS"]["TRY_PAIRS"]
        found = self.single_attribute_fds()
        if not try_pairs:
            return found
        seen = {fd.identity for fd in found}
        for fd in self.pair_attribute_fds():
            if fd.identity not in seen:
                found.append(fd)
                seen.add(fd.identity)
        return found


# --------------------------------------------------------------------------------------
# Key discovery
# --------------------------------------------------------------------------------------
class KeyFinder:
    """Searches column combinations by increasing size for minimal candidate keys.

    A combination qualifies when its projection is unique in the sampled rows
    or, failing that, when its closure under the mined FDs spans every column.
    The search stops at the first size that yields any key, so only the
    smallest keys are reported.
    """

    def __init__(
        self,
        columns: Sequence[str],
        fds: Sequence[FunctionalDependency],
        rows: Optional[Sequence[Row]] = None,
        max_size: Optional[int] = None,
    ) -> None:
        self.columns = list(columns)
        self.fds = list(fds)
        self.rows = rows
        self.max_size = CONFIG["LIMITS"]["MAX_KEY_SIZE"] if max_size is None else max_size

    def is_unique(self, candidate: Sequence[str]) -> bool:
        if self.rows is None:
            return False
        seen: Set[Tuple[str, ...]] = set()
        for row in self.rows:
            key = dedup_key(row, candidate)
            if key in seen:
                return False
            seen.add(key)
        return True

    def find_candidates(self) -> List[Tuple[str, ...]]:
        found: List[Tuple[str, ...]] = []
        for size in range(1, min(self.max_size, len(self.columns)) + 1):
            for candidate in combinations(self.columns, size):
                if any(set(key).issubset(candidate) for key in found):
                    continue
                if self.is_unique(candidate) or is_superkey(candidate, self.columns, self.fds):
                    found.append(candidate)
            if found:
                break
        return found


# --------------------------------------------------------------------------------------
# Dependency classification
# --------------------------------------------------------------------------------------
class DependencyClassifier:
    """Splits mined FDs into full, partial and transitive relative to the keys."""

    def __init__(self, fds: Sequence[FunctionalDependency], candidate_keys: Sequence[Sequence[str]]) -> None:
        self.fds = list(fds)
        self.candidate_keys = [tuple(k) for k in candidate_keys]

    def classify(self) -> DependencyClassification:
        result = DependencyClassification()
        key_closures = [closure(key, self.fds) for key in self.candidate_keys]

        for fd in self.fds:
            lhs = set(fd.lhs)
            containing = [key for key in self.candidate_keys if lhs.issubset(key)]
            if containing:
                if any(len(key) == len(lhs) for key in containing):
                    result.full.append(fd)
                else:
                    result.partial.append(fd)
                continue
            # Not inside any key: transitive when a key reaches the LHS but not the RHS.
            if any(lhs.issubset(cl) and fd.rhs not in cl for cl in key_closures):
                result.transitive.append(fd)
            else:
                result.full.append(fd)
        return result


# --------------------------------------------------------------------------------------
# Atomicity check
# --------------------------------------------------------------------------------------
def find_multivalued_columns(
    rows: Sequence[Row], columns: Sequence[str], separators: Optional[Sequence[str]] = None
) -> List[str]:
    """Columns holding at least one value that looks like a delimited list."""
    if separators is None:
        separators = CONFIG["ATOMICITY"]["SEPARATORS"]
    flagged: List[str] = []
    for column in columns:
        for row in rows:
            value = cell(row, column)
            if value and any(sep in value for sep in separators):
                flagged.append(column)
                break
    return flagged


# --------------------------------------------------------------------------------------
# Normalization pipeline
# --------------------------------------------------------------------------------------
def carve_table(fd: FunctionalDependency, rows: Sequence[Row], suffix: str) -> Table:
    name = f"tbl_{'_'.join(fd.lhs)}_{fd.rhs}_{suffix}"
    return Table.project(name, ordered_union(fd.lhs, [fd.rhs]), rows)


def build_second_nf(
    dataset_name: str, columns: Sequence[str], rows: Sequence[Row], partial: Sequence[FunctionalDependency]
) -> List[Table]:
    main_columns = list(columns)
    carved: List[Table] = []
    for fd in partial:
        carved.append(carve_table(fd, rows, "partial"))
        if fd.rhs in main_columns:
            main_columns.remove(fd.rhs)
    main = Table.project(f"{dataset_name}_main", main_columns, rows)
    return [main] + carved


def migrate_transitive(tables: List[Table], fd: FunctionalDependency, rows: Sequence[Row]) -> List[Table]:
    """One 3NF step: strip `fd.rhs` from every table so far, then add its own table."""
    migrated: List[Table] = []
    for table in tables:
        if fd.rhs not in table.columns:
            migrated.append(table)
            continue
        reduced = table.without_column(fd.rhs)
        if reduced.columns:
            migrated.append(reduced)
    return migrated + [carve_table(fd, rows, "transitive")]


def build_third_nf(
    second_nf: Sequence[Table], transitive: Sequence[FunctionalDependency], rows: Sequence[Row]
) -> List[Table]:
    # Each step sees the tables left by the previous one, so FD order matters.
    return reduce(lambda tables, fd: migrate_transitive(tables, fd, rows), transitive, list(second_nf))


class NormalizationPipeline:
    """Runs mining, key search, classification and decomposition for one dataset."""

    def __init__(
        self,
        dataset_name: str = "dataset",
        max_key_size: Optional[int] = None,
        limit_pairs: Optional[int] = None,
        try_pairs: Optional[bool] = None,
    ) -> None:
        self.dataset_name = dataset_name
        self.max_key_size = max_key_size
        self.limit_pairs = limit_pairs
        self.try_pairs = try_pairs

    def run(self, rows: Sequence[Row]) -> NormalizationResult:
        if not rows:
            return NormalizationResult.empty("empty dataset")

        warnings: List[str] = []
        columns = list(rows[0].keys())
        # Rows missing a column get NULL there; extra keys are dropped.
        rows = [{c: row.get(c) for c in columns} for row in rows]

        for column in find_multivalued_columns(rows, columns):
            warnings.append(f"column '{column}' holds delimited values; 1NF assumes atomic values")

        fds = FDMiner(rows, columns, limit_pairs=self.limit_pairs).discover(try_pairs=self.try_pairs)
        candidate_keys = KeyFinder(columns, fds, rows, max_size=self.max_key_size).find_candidates()
        if not candidate_keys:
            warnings.append("no candidate key found within size limit")

        classification = DependencyClassifier(fds, candidate_keys).classify()

        unf = [Table(name=self.dataset_name, columns=list(columns), rows=rows)]
        first_nf = list(unf)
        second_nf = build_second_nf(self.dataset_name, columns, rows, classification.partial)
        third_nf = build_third_nf(second_nf, classification.transitive, rows)

        return NormalizationResult(
            unf=unf,
            first_nf=first_nf,
            second_nf=second_nf,
            third_nf=third_nf,
            dependencies=fds,
            candidate_keys=candidate_keys,
            warnings=warnings,
        )


def analyze_and_normalize(rows: Sequence[Row], dataset_name: str = "dataset") -> NormalizationResult:
    return NormalizationPipeline(dataset_name).run(rows)


# --------------------------------------------------------------------------------------
# SQL emitter
# --------------------------------------------------------------------------------------
class SqlEmitter:
    """Renders one stage of a result as CREATE TABLE plus sample INSERT statements."""

    def __init__(
        self,
        result: NormalizationResult,
        column_type: Optional[str] = None,
        insert_row_limit: Optional[int] = None,
    ) -> None:
        cfg = CONFIG["SQL"]
        self.result = result
        self.column_type = cfg["COLUMN_TYPE"] if column_type is None else column_type
        self.insert_row_limit = cfg["INSERT_ROW_LIMIT"] if insert_row_limit is None else insert_row_limit

    def primary_key(self, table: Table) -> List[str]:
        for key in self.result.candidate_keys:
            if all(c in table.columns for c in key):
                return list(key)
        return table.columns[:1]

    def create_statement(self, table: Table) -> str:
        columns = ", ".join(f"{quote_ident(c)} {self.column_type}" for c in table.columns)
        pk = ", ".join(quote_ident(c) for c in self.primary_key(table))
        return f"CREATE TABLE {quote_ident(table.name)} ({columns}, PRIMARY KEY ({pk}));"

    def insert_statements(self, table: Table) -> List[str]:
        column_list = ", ".join(quote_ident(c) for c in table.columns)
        statements = []
        for row in table.rows[: self.insert_row_limit]:
            values = ", ".join(quote_literal(row.get(c)) for c in table.columns)
            statements.append(f"INSERT INTO {quote_ident(table.name)} ({column_list}) VALUES ({values});")
        return statements

    def statements(self, stage: str) -> List[str]:
        statements: List[str] = []
        for table in self.result.stage(stage):
            statements.append(self.create_statement(table))
            statements.extend(self.insert_statements(table))
        return statements

    def generate(self, stage: str) -> str:
        statements = self.statements(stage)
        if not statements:
            return "-- No tables to export\n"
        return "".join(f"{s}\n" for s in statements)


def generate_sql(result: NormalizationResult, stage: str) -> str:
    return SqlEmitter(result).generate(stage)


# --------------------------------------------------------------------------------------
# Ingestion
# --------------------------------------------------------------------------------------
def read_csv_rows(path: Path, max_rows: Optional[int] = None) -> List[Row]:
    """Header-based CSV reader. Short lines give NULL cells, surplus cells are dropped."""
    rows: List[Row] = []
    with Path(path).open(newline="", encoding="utf-8-sig") as fh:
        for record in csv.DictReader(fh):
            if max_rows is not None and len(rows) >= max_rows:
                break
            rows.append({k: v for k, v in record.items() if k is not None})
    return rows


class SqlClient:
    """Thin wrapper around SQLAlchemy for reading source tables and loading output."""

    def __init__(self, url: str) -> None:
        self.engine: Engine = create_engine(url, future=True)

    def fetch_rows(self, table: str, limit: Optional[int] = None) -> List[Row]:
        sql = f"SELECT * FROM {quote_ident(table)}"
        rows: List[Row] = []
        with self.engine.connect() as conn:
            result = conn.execute(text(sql))
            keys = list(result.keys())
            for record in result:
                if limit is not None and len(rows) >= limit:
                    break
                rows.append({k: (None if v is None else str(v)) for k, v in zip(keys, record)})
        return rows

    def table_exists(self, name: str) -> bool:
        return inspect(self.engine).has_table(name)

    def execute_statements(self, statements: Sequence[str]) -> int:
        """Run the statements in one transaction; returns how many were executed."""
        executed = 0
        with self.engine.begin() as conn:
            for statement in statements:
                if statement.lstrip().startswith("--"):
                    continue
                conn.exec_driver_sql(statement)
                executed += 1
        return executed


def load_source_rows(source: Dict[str, Any], max_rows: Optional[int] = None) -> List[Row]:
    kind = source.get("kind")
    if kind == "csv":
        return read_csv_rows(Path(source["path"]), max_rows)
    if kind == "sql":
        return SqlClient(source["sqlalchemy_url"]).fetch_rows(source["table"], max_rows)
    if kind == "sample":
        return [dict(r) for r in SAMPLE_ROWS]
    raise ValueError(f"unknown source kind {kind!r} for source {source.get('name')!r}")


# --------------------------------------------------------------------------------------
# Serialization
# --------------------------------------------------------------------------------------
def table_to_dict(table: Table) -> Dict[str, Any]:
    return {"name": table.name, "columns": list(table.columns), "rows": table.rows}


def fd_to_dict(fd: FunctionalDependency) -> Dict[str, Any]:
    return {"lhs": list(fd.lhs), "rhs": fd.rhs}


def result_to_dict(result: NormalizationResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for stage in STAGES:
        payload[stage] = {"tables": [table_to_dict(t) for t in result.stage(stage)]}
    payload["dependencies"] = [fd_to_dict(fd) for fd in result.dependencies]
    payload["candidateKeys"] = [list(k) for k in result.candidate_keys]
    payload["warnings"] = list(result.warnings)
    return payload


# --------------------------------------------------------------------------------------
# Artifact writer
# --------------------------------------------------------------------------------------
class ArtifactWriter:
    """Handles filesystem output for both machine-readable and human-readable artifacts."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.manifest: Dict[str, Any] = {"sources": []}
        self.summary_rows: List[List[Any]] = []

    def source_folder(self, source: str) -> Path:
        return self.base_path / f"source_{source}"

    def write_json(self, path: Path, obj: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(obj, indent=2, default=str))

    def write_sql(self, path: Path, sql: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(sql)

    def append_manifest(self, entry: Dict[str, Any]) -> None:
        self.manifest["sources"].append(entry)

    def finalize(self) -> None:
        (self.base_path / "manifest.json").write_text(json.dumps(self.manifest, indent=2, default=str))
        with (self.base_path / "summary.csv").open("w", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerow(["source", "row_count", "columns", "dependencies", "candidate_keys", "tables_3nf", "warnings"])
            for row in self.summary_rows:
                writer.writerow(row)

    def write_report(self, path: Path, name: str, row_count: int, result: NormalizationResult) -> None:
        classification = DependencyClassifier(result.dependencies, result.candidate_keys).classify()
        lines = [
            f"# Normalization Report: {name}",
            "",
            "## Dataset",
            f"- Rows analysed: {row_count}",
            "- Columns: " + (", ".join(result.unf[0].columns) if result.unf else "(none)"),
            "",
            "## Candidate Keys",
        ]
        if result.candidate_keys:
            for key in result.candidate_keys:
                lines.append(f"- ({', '.join(key)})")
        else:
            lines.append("- None found within the size limit.")
        lines.append("")
        lines.append("## Functional Dependencies")
        for label, fds in (
            ("Full", classification.full),
            ("Partial", classification.partial),
            ("Transitive", classification.transitive),
        ):
            lines.append(f"### {label} ({len(fds)})")
            for fd in fds:
                lines.append(f"- {fd}")
        lines.append("")
        lines.append("## Stages")
        for stage in STAGES:
            tables = result.stage(stage)
            lines.append(f"### {stage.upper()} ({len(tables)} tables)")
            for table in tables:
                lines.append(f"- {table.name}: {', '.join(table.columns)} ({len(table.rows)} rows)")
        lines.append("")
        lines.append("## Warnings")
        if result.warnings:
            for warning in result.warnings:
                lines.append(f"- {warning}")
        else:
            lines.append("- None.")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines))


# --------------------------------------------------------------------------------------
# Runner
# --------------------------------------------------------------------------------------
class Runner:
    """Orchestrates normalization across configured sources."""

    def __init__(self) -> None:
        ts = datetime.now(timezone.utc).strftime("run_%Y%m%d_%H%M%S")
        self.output_root = Path(CONFIG["OUTPUT"]["BASE_PATH"]) / ts
        self.writer = ArtifactWriter(self.output_root)

    def run(self) -> None:
        max_rows = CONFIG["SAMPLING"]["MAX_ROWS"]
        limits = CONFIG["LIMITS"]
        for source in CONFIG["SOURCES"]:
            name = source["name"]
            print(f"[INFO] Normalizing source {name}")
            try:
                rows = load_source_rows(source, max_rows)
                if max_rows is not None and len(rows) >= max_rows:
                    print(f"[WARN] {name}: analysis limited to the first {max_rows} rows")
                pipeline = NormalizationPipeline(
                    name,
                    max_key_size=limits["MAX_KEY_SIZE"],
                    limit_pairs=limits["PAIR_LIMIT"],
                    try_pairs=limits["TRY_PAIRS"],
                )
                result = pipeline.run(rows)
                for warning in result.warnings:
                    print(f"[WARN] {name}: {warning}")

                folder = self.writer.source_folder(name)
                self.writer.write_json(folder / "result.json", result_to_dict(result))
                emitter = SqlEmitter(result)
                for stage in CONFIG["OUTPUT"]["STAGES"]:
                    self.writer.write_sql(folder / f"schema_{stage}.sql", emitter.generate(stage))
                self.writer.write_report(folder / "report.md", name, len(rows), result)
                self.writer.append_manifest({"source": name, "kind": source.get("kind"), "row_count": len(rows)})
                self.writer.summary_rows.append(
                    [
                        name,
                        len(rows),
                        len(result.unf[0].columns) if result.unf else 0,
                        len(result.dependencies),
                        len(result.candidate_keys),
                        len(result.third_nf),
                        len(result.warnings),
                    ]
                )
            except Exception as exc:
                print(f"[ERROR] Failed normalizing {name}: {exc}")
                self.writer.append_manifest({"source": name, "kind": source.get("kind"), "error": str(exc)})
        self.writer.finalize()
        print(f"[INFO] Run complete. Artifacts at {self.output_root}")


def _configure_from_args(args: argparse.Namespace) -> None:
    """Rewrite CONFIG from command line flags; sources given on the CLI replace the defaults."""
    sources: List[Dict[str, Any]] = []
    if args.mode == "sample":
        sources.append({"name": "tv_sample", "kind": "sample"})
    for path in args.csv or []:
        sources.append({"name": args.name or Path(path).stem, "kind": "csv", "path": path})
    if args.url:
        if not args.table:
            raise SystemExit("--table is required together with --url")
        sources.append({"name": args.name or args.table, "kind": "sql", "sqlalchemy_url": args.url, "table": args.table})
    if sources:
        CONFIG["SOURCES"] = sources

    if args.max_rows is not None:
        CONFIG["SAMPLING"]["MAX_ROWS"] = args.max_rows
    if args.max_key_size is not None:
        CONFIG["LIMITS"]["MAX_KEY_SIZE"] = args.max_key_size
    if args.pair_limit is not None:
        CONFIG["LIMITS"]["PAIR_LIMIT"] = args.pair_limit
    if args.no_pairs:
        CONFIG["LIMITS"]["TRY_PAIRS"] = False
    if args.output:
        CONFIG["OUTPUT"]["BASE_PATH"] = args.output


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Infer FDs from a flat table and decompose it up to 3NF.")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["sample"],
        help="Use 'sample' to normalize the built-in two-row TV dataset.",
    )
    parser.add_argument("--csv", action="append", help="CSV file with a header row (repeatable).")
    parser.add_argument("--url", help="SQLAlchemy URL of a database holding the source table.")
    parser.add_argument("--table", help="Source table name when --url is given.")
    parser.add_argument("--name", help="Dataset name used for table naming (default: file stem or table).")
    parser.add_argument("--max-rows", type=int, help="Analyse only the first N rows.")
    parser.add_argument("--max-key-size", type=int, help="Largest candidate key size searched.")
    parser.add_argument("--pair-limit", type=int, help="Maximum number of column pairs tested as determinants.")
    parser.add_argument("--no-pairs", action="store_true", help="Mine single-column determinants only.")
    parser.add_argument("--output", help="Base directory for run artifacts (default: output).")
    return parser.parse_args(argv)


if __name__ == "__main__":
    _configure_from_args(_parse_args())
    Runner().run()
