from __future__ import annotations
from typing import Set

import pandas as pd

from .models import ACCOUNT_ID, CONTACT_REASON, JURISDICTION


def as_mask(s: pd.Series) -> pd.Series:
    # nullable booleans (NA from missing cells) -> plain bool, NA counts as no match
    return s.fillna(False).astype(bool)


def _ids(df: pd.DataFrame, mask: pd.Series) -> Set[str]:
    return set(df.loc[as_mask(mask), ACCOUNT_ID].dropna().astype(str))


def jurisdiction_cohort(personal: pd.DataFrame, code: str) -> Set[str]:
    """Account ids whose JURISDICTION equals `code` exactly."""
    return _ids(personal, personal[JURISDICTION].eq(code))


def contact_reason_cohort(tickets: pd.DataFrame, substring: str) -> Set[str]:
    """Account ids with at least one ticket whose contact reason contains `substring` (any case)."""
    hit = tickets[CONTACT_REASON].astype("string").str.contains(substring, case=False, regex=False, na=False)
    return _ids(tickets, hit)


def in_cohort(df: pd.DataFrame, cohort: Set[str]) -> pd.Series:
    return as_mask(df[ACCOUNT_ID].isin(cohort))
