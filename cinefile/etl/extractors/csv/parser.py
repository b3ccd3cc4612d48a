"""Ranked-list CSV parser.

Reads the ranked movie lists bundled with the catalog into ImportRow
records. Three layouts are supported; columns are located by header
name first and by fixed position when the header does not name them.
Parsing is best effort: unusable rows are skipped, never fatal.
"""

import csv
import io
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from pydantic import ValidationError

from cinefile.catalog.schemas import ImportRow

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class ParseError(ValueError):
    """Raised for a CSV row that cannot be turned into an ImportRow."""

    pass


class NotFoundError(FileNotFoundError):
    """Raised when a list resource or manifest file does not exist."""

    pass


# =============================================================================
# FORMATS
# =============================================================================


class CSVFormat(StrEnum):
    """Known ranked-list layouts (manifest `type` values)."""

    NYT21 = "csv-nyt21"
    AFI = "csv-afi"
    TSPDT = "csv-tspdt"


@dataclass(frozen=True)
class ColumnLayout:
    """Fallback positions for each column of a format.

    Attributes:
        rank: Rank column index.
        title: Title column index.
        year: Year column index.
        director: Director column index, None when the format has none.
        runtime: Runtime column index, None when the format has none.
    """

    rank: int
    title: int
    year: int
    director: int | None = None
    runtime: int | None = None


FALLBACK_LAYOUTS: dict[CSVFormat, ColumnLayout] = {
    CSVFormat.NYT21: ColumnLayout(rank=0, title=1, year=2),
    CSVFormat.AFI: ColumnLayout(rank=1, title=2, year=3),
    CSVFormat.TSPDT: ColumnLayout(rank=0, title=1, year=3, director=2, runtime=4),
}

HEADER_ALIASES: dict[str, frozenset[str]] = {
    "rank": frozenset({"rank", "pos", "position", "#", "no", "no."}),
    "title": frozenset({"title", "film", "movie"}),
    "year": frozenset({"year", "release year"}),
    "director": frozenset({"director", "directors", "director(s)"}),
    "runtime": frozenset({"mins", "minutes", "runtime"}),
}


# =============================================================================
# PARSING
# =============================================================================


def resolve_layout(header: list[str], fmt: CSVFormat) -> ColumnLayout:
    """Locate columns by header name with positional fallback.

    Args:
        header: Header cells.
        fmt: Source format.

    Returns:
        Column positions for this file.
    """
    fallback = FALLBACK_LAYOUTS[fmt]
    positions: dict[str, int] = {}
    for index, cell in enumerate(header):
        name = cell.strip().lstrip("\ufeff").lower()
        for column, aliases in HEADER_ALIASES.items():
            if name in aliases and column not in positions:
                positions[column] = index

    has_extras = fallback.director is not None
    return ColumnLayout(
        rank=positions.get("rank", fallback.rank),
        title=positions.get("title", fallback.title),
        year=positions.get("year", fallback.year),
        director=positions.get("director", fallback.director) if has_extras else None,
        runtime=positions.get("runtime", fallback.runtime) if has_extras else None,
    )


def parse_row(fields: list[str], layout: ColumnLayout) -> ImportRow:
    """Convert one CSV record into an ImportRow.

    Args:
        fields: Trimmed cells.
        layout: Column positions.

    Returns:
        Parsed row.

    Raises:
        ParseError: If a required column is missing or not an integer.
    """
    required = max(layout.rank, layout.title, layout.year)
    if len(fields) <= required:
        raise ParseError(f"expected at least {required + 1} columns, got {len(fields)}")

    rank = _parse_int(fields[layout.rank], "rank")
    year = _parse_int(fields[layout.year], "year")

    director = _optional_cell(fields, layout.director)
    runtime_cell = _optional_cell(fields, layout.runtime)
    runtime = int(runtime_cell) if runtime_cell and runtime_cell.isdigit() else None

    try:
        return ImportRow(
            rank=rank,
            title=fields[layout.title],
            year=year,
            director=director,
            runtime_minutes=runtime,
        )
    except ValidationError as e:
        raise ParseError(f"invalid row: {e.error_count()} errors") from e


def parse_rows(text: str, fmt: CSVFormat | str) -> list[ImportRow]:
    """Parse a ranked list into import rows.

    The first non-blank record is the header and is always skipped.
    Unparsable rows are logged at DEBUG and dropped.

    Args:
        text: Raw CSV text.
        fmt: Source format.

    Returns:
        Rows in input order.
    """
    fmt = CSVFormat(fmt)
    records = [
        [cell.strip() for cell in record]
        for record in csv.reader(io.StringIO(text))
        if any(cell.strip() for cell in record)
    ]
    if not records:
        return []

    header, body = records[0], records[1:]
    layout = resolve_layout(header, fmt)

    rows: list[ImportRow] = []
    skipped = 0
    for line_number, fields in enumerate(body, start=2):
        try:
            rows.append(parse_row(fields, layout))
        except ParseError as e:
            skipped += 1
            logger.debug("Skipping %s record %d: %s", fmt.value, line_number, e)

    if skipped:
        logger.info("Parsed %d rows (%d skipped) from %s list", len(rows), skipped, fmt.value)
    return rows


def resolve_resource(path: Path) -> Path:
    """Find a resource with or without its .csv extension.

    Raises:
        NotFoundError: If neither variant exists.
    """
    if path.is_file():
        return path
    with_suffix = path.with_name(f"{path.name}.csv")
    if with_suffix.is_file():
        return with_suffix
    raise NotFoundError(f"List resource not found: {path}")


def load_rows(path: Path | str, fmt: CSVFormat | str) -> list[ImportRow]:
    """Read and parse a ranked list file.

    Args:
        path: CSV file, extension optional.
        fmt: Source format.

    Returns:
        Parsed rows.

    Raises:
        NotFoundError: If the file does not exist.
    """
    resource = resolve_resource(Path(path))
    text = resource.read_text(encoding="utf-8-sig")
    rows = parse_rows(text, fmt)
    logger.debug("Loaded %d rows from %s", len(rows), resource.name)
    return rows


# =============================================================================
# HELPERS
# =============================================================================


def _parse_int(value: str, column: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ParseError(f"non-integer {column}: {value!r}") from e


def _optional_cell(fields: list[str], index: int | None) -> str | None:
    if index is None or index >= len(fields):
        return None
    return fields[index] or None
