from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import Settings, setup_logging
from .data_prep import iter_records
from .errors import MissingInputError, SupportInsightsError
from .metrics import SLA_DAYS, run_pipeline, select_german_august_tickets
from .models import COMPLAINTS, PERSONAL, TICKETS, AnalysisReport
from .progress import ProgressLog
from . import viz

logger = logging.getLogger(__name__)

# EXIT_FAILED: unreadable or malformed input
EXIT_OK, EXIT_FAILED, EXIT_MISSING = 0, 1, 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="support-insights",
        description="Answer the customer-service case study questions from three CSV exports.",
    )
    p.add_argument("--personal", help="personal data CSV (AUTH_ACCOUNT_ID, JURISDICTION)")
    p.add_argument("--tickets", help="tickets CSV (AUTH_ACCOUNT_ID, CREATED_AT, SOLVED_AT, STATUS, CONTACT_REASON_VALUE)")
    p.add_argument("--complaints", help="complaints CSV (AUTH_ACCOUNT_ID, CREATED_AT, SOLVED_AT)")
    p.add_argument("--out-dir", help="write results.csv (and figures with --plot) here")
    p.add_argument("--plot", action="store_true", help="also save the TTS histogram and result cards")
    p.add_argument("--preview", type=int, default=0, metavar="N", help="print the first N typed records per table")
    p.add_argument("--log-level", help="logging level (default: WARNING)")
    return p


def _print_results(report: AnalysisReport) -> None:
    print()
    for q, r in report.results.items():
        title = viz.QUESTION_TITLES.get(q, q)
        value = "not computable" if r.metric_value is None else r.metric_value
        print(f"{q} | {title}")
        print(f"   value:  {value}")
        print(f"   answer: {r.selected_option}")
        print(f"   {r.explanation}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env().override(
        personal_csv=args.personal,
        tickets_csv=args.tickets,
        complaints_csv=args.complaints,
        out_dir=args.out_dir,
        log_level=args.log_level,
    )
    setup_logging(settings.log_level)

    progress = ProgressLog()
    paths = {"personal": settings.personal_csv, "tickets": settings.tickets_csv, "complaints": settings.complaints_csv}
    for kind, path in paths.items():
        if path:
            progress.upload(kind, os.path.basename(path))

    sources = {k: Path(v) if v else None for k, v in paths.items()}
    try:
        report = run_pipeline(sources["personal"], sources["tickets"], sources["complaints"], progress)
    except SupportInsightsError as e:
        # run_pipeline already logged "Error during analysis"
        for ev in progress:
            print(ev)
        return EXIT_MISSING if isinstance(e, MissingInputError) else EXIT_FAILED

    if args.preview > 0:
        for s in (PERSONAL, TICKETS, COMPLAINTS):
            print(f"-- {s.name} (first {args.preview})")
            for i, rec in enumerate(iter_records(report.tables[s.name], s)):
                if i >= args.preview:
                    break
                print(f"   {rec}")

    if settings.out_dir:
        viz.save_results_table(report, os.path.join(settings.out_dir, "results.csv"))
        if args.plot:
            selected = select_german_august_tickets(report.tables["personal"], report.tables["tickets"])
            viz.plot_tts_distribution(selected, os.path.join(settings.out_dir, "q1_tts_distribution.png"),
                                      sla_days=SLA_DAYS)
            viz.plot_results_summary(report, os.path.join(settings.out_dir, "results_summary.png"))
        logger.info("wrote report files to %s", settings.out_dir)
    elif args.plot:
        logger.warning("--plot needs --out-dir; skipping figures")

    for ev in report.events:
        print(ev)
    _print_results(report)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
