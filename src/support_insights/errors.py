from __future__ import annotations
from typing import List, Optional


class SupportInsightsError(Exception):
    """Base class for every failure raised by the pipeline."""


class MissingInputError(SupportInsightsError):
    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"All files are required for analysis (missing: {', '.join(self.missing)})")


class InputReadError(SupportInsightsError):
    """A CSV path exists but could not be read, e.g. it is a directory or unreadable."""

    def __init__(self, table: str, path: str, reason: str):
        self.table = table
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read {table} data from {path}: {reason}")


class ParseError(SupportInsightsError):
    """
    A CSV table could not be decoded.
    row/column are 1-based positions in the raw file (None when unknown).
    """

    def __init__(self, table: str, detail: str, row: Optional[int] = None, column: Optional[int] = None):
        self.table = table
        self.detail = detail
        self.row = row
        self.column = column
        where = []
        if row is not None:
            where.append(f"row {row}")
        if column is not None:
            where.append(f"column {column}")
        loc = f" at {', '.join(where)}" if where else ""
        super().__init__(f"Could not parse {table} data{loc}: {detail}")


class DegenerateAggregateError(SupportInsightsError):
    """A mean or ratio was requested over zero qualifying rows."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"no qualifying rows for {what}")
