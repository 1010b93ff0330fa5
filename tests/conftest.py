import matplotlib

matplotlib.use("Agg")

import pytest

from support_insights.data_prep import parse_csv, prepare_table
from support_insights.models import COMPLAINTS, PERSONAL, TICKETS
from support_insights.progress import ProgressLog


PERSONAL_CSV = """AUTH_ACCOUNT_ID,JURISDICTION
A1,DE
A2,FR
"""

TICKETS_CSV = """AUTH_ACCOUNT_ID,CREATED_AT,SOLVED_AT,STATUS,CONTACT_REASON_VALUE
A1,2024-08-01T00:00:00Z,2024-08-04T00:00:00Z,closed,interest rate question
"""

COMPLAINTS_CSV = """AUTH_ACCOUNT_ID,CREATED_AT,SOLVED_AT
"""


def make_tables(personal_csv, tickets_csv, complaints_csv):
    return (
        prepare_table(parse_csv(personal_csv, "personal"), PERSONAL),
        prepare_table(parse_csv(tickets_csv, "tickets"), TICKETS),
        prepare_table(parse_csv(complaints_csv, "complaints"), COMPLAINTS),
    )


@pytest.fixture
def canonical_csv():
    return PERSONAL_CSV, TICKETS_CSV, COMPLAINTS_CSV


@pytest.fixture
def canonical_tables():
    return make_tables(PERSONAL_CSV, TICKETS_CSV, COMPLAINTS_CSV)


@pytest.fixture
def progress():
    return ProgressLog(clock=lambda: "12:00:00")


@pytest.fixture
def csv_files(tmp_path, canonical_csv):
    paths = {}
    for name, text in zip(("personal", "tickets", "complaints"), canonical_csv):
        p = tmp_path / f"{name}.csv"
        p.write_text(text, encoding="utf-8")
        paths[name] = str(p)
    return paths


@pytest.fixture
def tables_from():
    return make_tables
