"""Ranked-list CSV parsing."""

from cinefile.etl.extractors.csv.parser import (
    CSVFormat,
    NotFoundError,
    ParseError,
    load_rows,
    parse_rows,
)

__all__ = ["CSVFormat", "NotFoundError", "ParseError", "load_rows", "parse_rows"]
