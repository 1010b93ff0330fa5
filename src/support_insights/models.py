from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

import pandas as pd

# column names of the CSV exports
ACCOUNT_ID = "AUTH_ACCOUNT_ID"
JURISDICTION = "JURISDICTION"
CREATED_AT = "CREATED_AT"
SOLVED_AT = "SOLVED_AT"
STATUS = "STATUS"
CONTACT_REASON = "CONTACT_REASON_VALUE"

# derived by prepare_table: wall-clock twin of a timestamp column
LOCAL_SUFFIX = "_LOCAL"


def local_column(col: str) -> str:
    return col + LOCAL_SUFFIX


def _present(v: Any) -> Any:
    # pandas NA / NaN / NaT -> None
    if v is None:
        return None
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        return v
    return v


def _text(v: Any) -> Optional[str]:
    v = _present(v)
    return None if v is None else str(v)


def _when(v: Any) -> Optional[datetime]:
    v = _present(v)
    if v is None:
        return None
    ts = pd.to_datetime(v, errors="coerce", utc=True)
    return None if pd.isna(ts) else ts.to_pydatetime()


@dataclass(frozen=True)
class PersonalRecord:
    account_id: Optional[str]
    jurisdiction: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PersonalRecord":
        return cls(
            account_id=_text(row.get(ACCOUNT_ID)),
            jurisdiction=_text(row.get(JURISDICTION)),
        )


@dataclass(frozen=True)
class TicketRecord:
    account_id: Optional[str]
    created_at: Optional[datetime] = None
    solved_at: Optional[datetime] = None
    status: Optional[str] = None
    contact_reason: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TicketRecord":
        return cls(
            account_id=_text(row.get(ACCOUNT_ID)),
            created_at=_when(row.get(CREATED_AT)),
            solved_at=_when(row.get(SOLVED_AT)),
            status=_text(row.get(STATUS)),
            contact_reason=_text(row.get(CONTACT_REASON)),
        )


@dataclass(frozen=True)
class ComplaintRecord:
    account_id: Optional[str]
    created_at: Optional[datetime] = None
    solved_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ComplaintRecord":
        return cls(
            account_id=_text(row.get(ACCOUNT_ID)),
            created_at=_when(row.get(CREATED_AT)),
            solved_at=_when(row.get(SOLVED_AT)),
        )


@dataclass(frozen=True)
class TableSchema:
    """
    Column contract of one CSV export:
      name              human label used in logs / errors
      text_columns      read as pandas "string" (account id first)
      timestamp_columns parsed to UTC datetimes (plus a naive <col>_LOCAL twin)
    """
    name: str
    text_columns: Tuple[str, ...]
    timestamp_columns: Tuple[str, ...]
    record_type: Type[Any]


PERSONAL = TableSchema("personal", (ACCOUNT_ID, JURISDICTION), (), PersonalRecord)
TICKETS = TableSchema("tickets", (ACCOUNT_ID, STATUS, CONTACT_REASON), (CREATED_AT, SOLVED_AT), TicketRecord)
COMPLAINTS = TableSchema("complaints", (ACCOUNT_ID,), (CREATED_AT, SOLVED_AT), ComplaintRecord)


@dataclass(frozen=True)
class AnalysisResult:
    metric_value: Optional[float]
    selected_option: str
    explanation: str

    @property
    def computable(self) -> bool:
        return self.metric_value is not None


@dataclass
class AnalysisReport:
    results: Dict[str, AnalysisResult]
    events: List[Any] = field(default_factory=list)
    # prepared tables the answers were computed from (set by run_pipeline)
    tables: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False, compare=False)

    def __getitem__(self, key: str) -> AnalysisResult:
        return self.results[key]

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "question": q,
                "metric_value": r.metric_value,
                "selected_option": r.selected_option,
                "explanation": r.explanation,
            }
            for q, r in self.results.items()
        ]
        return pd.DataFrame(rows, columns=["question", "metric_value", "selected_option", "explanation"])
