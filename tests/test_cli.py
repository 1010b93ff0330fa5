import os

import pandas as pd
import pytest

from support_insights.cli import EXIT_FAILED, EXIT_MISSING, EXIT_OK, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("SUPPORT_INSIGHTS_"):
            monkeypatch.delenv(key)


def _args(paths, *extra):
    return ["--personal", paths["personal"], "--tickets", paths["tickets"],
            "--complaints", paths["complaints"], *extra]


def test_end_to_end(csv_files, tmp_path, capsys):
    out_dir = tmp_path / "out"
    code = main(_args(csv_files, "--out-dir", str(out_dir), "--plot"))
    assert code == EXIT_OK

    printed = capsys.readouterr().out
    assert "Uploaded personal data file: personal.csv" in printed
    assert "Results ready for review" in printed
    assert "Q1 | German August TTS (days)" in printed
    assert "not computable" in printed

    table = pd.read_csv(out_dir / "results.csv")
    assert table["question"].tolist() == ["Q1", "Q2", "Q3"]
    assert table.loc[0, "metric_value"] == 3.0
    assert (out_dir / "q1_tts_distribution.png").exists()
    assert (out_dir / "results_summary.png").exists()


def test_paths_from_environment(csv_files, monkeypatch, capsys):
    monkeypatch.setenv("SUPPORT_INSIGHTS_PERSONAL_CSV", csv_files["personal"])
    monkeypatch.setenv("SUPPORT_INSIGHTS_TICKETS_CSV", csv_files["tickets"])
    monkeypatch.setenv("SUPPORT_INSIGHTS_COMPLAINTS_CSV", csv_files["complaints"])
    assert main([]) == EXIT_OK


def test_preview_prints_records(csv_files, capsys):
    assert main(_args(csv_files, "--preview", "1")) == EXIT_OK
    printed = capsys.readouterr().out
    assert "-- personal (first 1)" in printed
    assert "PersonalRecord(account_id='A1', jurisdiction='DE')" in printed
    assert "account_id='A2'" not in printed


def test_missing_input(csv_files, capsys):
    code = main(["--personal", csv_files["personal"], "--tickets", csv_files["tickets"]])
    assert code == EXIT_MISSING
    assert "Error during analysis" in capsys.readouterr().out


def test_parse_error(csv_files, tmp_path, capsys):
    bad = tmp_path / "bad.csv"
    bad.write_text("AUTH_ACCOUNT_ID,JURISDICTION\nA1,DE\nA2,FR,x,y\n", encoding="utf-8")
    paths = dict(csv_files, personal=str(bad))
    assert main(_args(paths)) == EXIT_FAILED
    assert "row 3" in capsys.readouterr().out


def test_unreadable_path(csv_files, tmp_path, capsys):
    folder = tmp_path / "not_a_file"
    folder.mkdir()
    paths = dict(csv_files, tickets=str(folder))
    assert main(_args(paths)) == EXIT_FAILED
    printed = capsys.readouterr().out
    assert "Error during analysis: Could not read tickets data" in printed
    assert "Q1 |" not in printed


def test_report_events_without_out_dir(csv_files, capsys):
    assert main(_args(csv_files)) == EXIT_OK
    lines = capsys.readouterr().out.splitlines()
    messages = [ln.split("] ", 1)[1] for ln in lines if ln.startswith("[")]
    assert messages[:3] == [
        "Uploaded personal data file: personal.csv",
        "Uploaded tickets data file: tickets.csv",
        "Uploaded complaints data file: complaints.csv",
    ]
    assert messages[-3:] == ["Analysis completed successfully!", "Generating final report...", "Results ready for review"]
    assert messages.count("Initializing customer service data analysis...") == 1
