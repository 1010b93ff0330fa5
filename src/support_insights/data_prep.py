from __future__ import annotations
import csv
import io
import logging
import os
import re
from typing import Any, Iterator, List, Optional, Union

import numpy as np
import pandas as pd

from .errors import InputReadError, MissingInputError, ParseError
from .models import ACCOUNT_ID, TableSchema, local_column
from .progress import ProgressLog

logger = logging.getLogger(__name__)

CsvSource = Union[str, bytes, bytearray, io.IOBase, os.PathLike, Any]

# pandas tokenizer messages we can pull a position out of
_FIELDS_RX = re.compile(r"Expected (\d+) fields in line (\d+), saw (\d+)")
_ROW_RX = re.compile(r"(?:row|line) (\d+)")
_INVISIBLE_RX = r"[\u200b\u200e\ufeff]"


def read_source(path: Union[str, os.PathLike], name: Optional[str] = None) -> bytes:
    """Raw bytes of a CSV file on disk. Not found -> MissingInputError, any other OS error -> InputReadError."""
    path = os.path.expanduser(os.fspath(path))
    name = name or os.path.splitext(os.path.basename(path))[0]
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except FileNotFoundError as e:
        raise MissingInputError([name]) from e
    except OSError as e:
        raise InputReadError(name, path, e.strerror or str(e)) from e


def _read_text(data: CsvSource, name: str) -> str:
    if isinstance(data, os.PathLike):
        data = read_source(data, name)
    if hasattr(data, "read"):
        data = data.read()
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(name, f"not valid UTF-8 ({e.reason} at byte {e.start})") from e
    if not isinstance(data, str):
        raise TypeError(f"{name}: expected CSV text, bytes, a path or a file-like object, got {type(data).__name__}")
    return data.lstrip("\ufeff")


def _parse_error(name: str, err: Exception) -> ParseError:
    msg = str(err).strip()
    m = _FIELDS_RX.search(msg)
    if m:
        expected, line, saw = (int(g) for g in m.groups())
        return ParseError(name, f"expected {expected} fields, saw {saw}", row=line, column=expected + 1)
    m = _ROW_RX.search(msg)
    return ParseError(name, msg, row=int(m.group(1)) if m else None)


def _check_field_counts(text: str, name: str) -> None:
    # pandas pads short rows with NaN and can swallow a long first row as an index
    reader = csv.reader(io.StringIO(text))
    header: Optional[List[str]] = None
    try:
        for fields in reader:
            if not fields or (len(fields) == 1 and not fields[0].strip()):
                continue
            if header is None:
                header = fields
                continue
            if len(fields) != len(header):
                column = min(len(fields), len(header)) + 1
                raise ParseError(name, f"expected {len(header)} fields, saw {len(fields)}",
                                 row=reader.line_num, column=column)
    except csv.Error as e:
        raise ParseError(name, str(e), row=reader.line_num) from e


def parse_csv(data: CsvSource, name: str = "table", progress: Optional[ProgressLog] = None) -> pd.DataFrame:
    """
    Decode one CSV export (text, bytes, a path or an uploaded file object).
      - header row gives the column names
      - values are type-inferred; the account id always stays text
      - blank lines skipped, only empty cells count as missing
    Raises ParseError with row/column on any row whose field count differs
    from the header's, or when the tokenizer gives up.
    """
    text = _read_text(data, name)
    _check_field_counts(text, name)
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype={ACCOUNT_ID: "string"},
            skip_blank_lines=True,
            keep_default_na=False,
            na_values=[""],
        )
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()
    except pd.errors.ParserError as e:
        err = _parse_error(name, e)
        logger.debug("tokenizer error for %s: %s", name, e)
        raise err from e

    df.columns = [str(c).strip() for c in df.columns]
    if progress is not None:
        progress.emit(f"Parsed {len(df)} {name} records")
    return df


def load_csv(path: Union[str, os.PathLike], name: Optional[str] = None,
             progress: Optional[ProgressLog] = None) -> pd.DataFrame:
    name = name or os.path.splitext(os.path.basename(os.fspath(path)))[0]
    return parse_csv(read_source(path, name), name=name, progress=progress)


def _clean_text(col: pd.Series) -> pd.Series:
    # strip zero-width/BOM residue
    return (col.astype("string")
               .str.strip()
               .str.replace(_INVISIBLE_RX, "", regex=True))


def _parse_timestamps(col: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(col):
        if getattr(col.dt, "tz", None) is None:
            return col.dt.tz_localize("UTC")
        return col.dt.tz_convert("UTC")
    ts = pd.to_datetime(_clean_text(col), errors="coerce", utc=True, format="mixed")
    # empty / all-missing input can come back untyped
    return ts if pd.api.types.is_datetime64_any_dtype(ts) else ts.astype("datetime64[ns, UTC]")


def _wall_clock(v: Any) -> Any:
    if v is None or v is pd.NA:
        return pd.NaT
    try:
        ts = pd.Timestamp(v)
    except (TypeError, ValueError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def _wall_clock_timestamps(col: pd.Series) -> pd.Series:
    """Naive timestamps as written, i.e. in the offset each value carries."""
    if pd.api.types.is_datetime64_any_dtype(col):
        if getattr(col.dt, "tz", None) is None:
            return col
        return col.dt.tz_localize(None)
    values = [_wall_clock(v) for v in _clean_text(col).astype(object)]
    return pd.Series(pd.to_datetime(values, errors="coerce"), index=col.index, dtype="datetime64[ns]")


def prepare_table(df: pd.DataFrame, schema: TableSchema) -> pd.DataFrame:
    """
    Typed copy of a parsed table.
    Timestamps are converted to UTC for arithmetic; each one also gets a
    `<column>_LOCAL` twin holding the wall-clock time in its own offset,
    which is what calendar filters read.
    Absent contract columns are added as all-missing (NA / NaT) so downstream
    code filters them out instead of failing on a KeyError.
    """
    out = df.copy()
    for col in schema.text_columns:
        if col in out.columns:
            out[col] = out[col].astype("string")
        else:
            logger.info("%s table has no %s column; treating it as missing", schema.name, col)
            out[col] = pd.Series(pd.NA, index=out.index, dtype="string")
    for col in schema.timestamp_columns:
        local = local_column(col)
        if col in out.columns:
            if local not in out.columns:
                out[local] = _wall_clock_timestamps(out[col])
            out[col] = _parse_timestamps(out[col])
        else:
            logger.info("%s table has no %s column; treating it as missing", schema.name, col)
            out[col] = pd.Series(pd.NaT, index=out.index, dtype="datetime64[ns, UTC]")
            out[local] = pd.Series(pd.NaT, index=out.index, dtype="datetime64[ns]")
    return out


def iter_records(df: pd.DataFrame, schema: TableSchema) -> Iterator[Any]:
    """Yield the schema's record dataclass for every row, in file order."""
    for row in df.to_dict("records"):
        yield schema.record_type.from_row(row)


def _as_timestamp(v: Any) -> Optional[pd.Timestamp]:
    if v is None:
        return None
    if isinstance(v, str):
        v = re.sub(_INVISIBLE_RX, "", v).strip()
        if not v:
            return None
    try:
        ts = pd.to_datetime(v, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    return None if pd.isna(ts) else ts


def duration_days(created_at: Any, solved_at: Any) -> Optional[float]:
    """
    Elapsed days between two timestamps, or None if either is missing/unparsable.
    solved before created gives a negative value.
    """
    created = _as_timestamp(created_at)
    solved = _as_timestamp(solved_at)
    if created is None or solved is None:
        return None
    return float((solved - created) / np.timedelta64(1, "D"))


def durations_days(created: pd.Series, solved: pd.Series) -> pd.Series:
    # NaT on either side -> NaN
    delta = _parse_timestamps(solved) - _parse_timestamps(created)
    return (delta / np.timedelta64(1, "D")).astype(float).rename("tts_days")
