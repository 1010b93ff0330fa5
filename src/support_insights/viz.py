from __future__ import annotations
import os, textwrap
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib import gridspec

from .models import AnalysisReport

QUESTION_TITLES = {
    "Q1": "German August TTS (days)",
    "Q2": "Interest Complaints SLA (%)",
    "Q3": "French Transfer Complaints",
}


def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)

def _wrap(s: str, width: int) -> str:
    s = (s or "").strip()
    return "\n".join(textwrap.wrap(s, width=width)) if s else ""

def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = out_path
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved


def plot_tts_distribution(
    selected: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    bins: int = 30,
    sla_days: Optional[float] = None,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Histogram of per-ticket TTS for the Q1 selection
    (metrics.select_german_august_tickets), with the mean marked.
    Optional `sla_days` draws the SLA threshold for comparison.
    """
    if "tts_days" not in selected.columns:
        raise ValueError("selected is missing column: tts_days")

    tts = selected["tts_days"].dropna().to_numpy(dtype=float)
    fig, ax = plt.subplots(figsize=(10, 4))
    if tts.size:
        ax.hist(tts, bins=min(bins, max(1, tts.size)), alpha=0.8)
        mean = float(np.mean(tts))
        ax.axvline(mean, linestyle="--", linewidth=1.5, color="black", label=f"mean = {mean:.3f} d")
    else:
        ax.text(0.5, 0.5, "no closed tickets with a solve time", ha="center", va="center", transform=ax.transAxes)
    if sla_days is not None:
        ax.axvline(sla_days, linestyle=":", linewidth=1.2, color="red", label=f"SLA = {sla_days:g} d")
    ax.set_title(f"Time to solution, German closed tickets (n={tts.size})")
    ax.set_xlabel("TTS (days)")
    ax.set_ylabel("Tickets")
    if ax.get_legend_handles_labels()[0]:
        ax.legend()
    fig.tight_layout()
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_results_summary(
    report: AnalysisReport,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    wrap_explanation: int = 60,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """One card per question: value, chosen option and the wrapped explanation."""
    results = report.results
    if not results:
        raise ValueError("report has no results to plot")

    fig = plt.figure(figsize=(4.2 * len(results), 3.2))
    gs = gridspec.GridSpec(1, len(results), wspace=0.12)
    first_ax = None
    for i, (q, r) in enumerate(results.items()):
        ax = fig.add_subplot(gs[0, i]); ax.axis("off")
        first_ax = first_ax or ax
        value = "n/a" if r.metric_value is None else (
            f"{r.metric_value:.3f}" if isinstance(r.metric_value, float) else str(r.metric_value))
        ax.text(0.0, 0.95, f"{q}: {QUESTION_TITLES.get(q, q)}", fontsize=10, weight="bold", va="top", ha="left")
        ax.text(0.0, 0.72, value, fontsize=20, va="top", ha="left",
                color="black" if r.computable else "gray")
        ax.text(0.0, 0.48, f"Answer: {r.selected_option}", fontsize=10, va="top", ha="left")
        ax.text(0.0, 0.36, _wrap(r.explanation, wrap_explanation), fontsize=8, va="top", ha="left")
    saved = _finish(fig, out_path, show)
    return fig, first_ax, saved


def save_results_table(report: AnalysisReport, out_csv_path: Optional[str] = None) -> pd.DataFrame:
    """Save (and return) the three answers as a flat table."""
    table = report.to_frame()
    if out_csv_path:
        _ensure_dir(out_csv_path)
        table.to_csv(out_csv_path, index=False)
    return table
