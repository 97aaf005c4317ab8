"""
Session report: summary JSON -> report.html + reps-by-exercise plot.
"""
from __future__ import annotations

import html
import json
import logging
import os
from typing import Any

from .classifier import SUPPORTED_EXERCISES

logger = logging.getLogger(__name__)

_FEEDBACK_TIPS = {
    "squat_leaning_forward": "Keep your chest up and sit back into your hips.",
    "pushup_hips_sagging": "Brace your core so shoulders, hips and knees stay in one line.",
    "curl_elbow_drift": "Pin your elbows to your sides through the whole curl.",
    "curl_body_swing": "Lower the weight if you need to swing to finish a rep.",
    "press_leaning_back": "Squeeze glutes and abs to avoid arching your back.",
}


def write_session_summary(summary: dict[str, Any], output_dir: str, filename: str = "session_summary.json") -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path


def load_session_summary(summary_path: str) -> dict[str, Any]:
    with open(summary_path) as f:
        return json.load(f)


def build_report_html(summary: dict[str, Any], source: str = "live") -> str:
    counts: dict[str, int] = summary.get("counts", {})
    feedback_counts: dict[str, int] = summary.get("feedback_counts", {})
    feedback: list[dict[str, Any]] = summary.get("feedback", [])
    total = summary.get("total_reps", sum(counts.values()))

    lines = [
        "<!DOCTYPE html>",
        "<html><head><meta charset='utf-8'><title>Workout Report</title></head><body>",
        "<h1>Workout Report</h1>",
        f"<p><b>Source:</b> {html.escape(source)}</p>",
        f"<p><b>Frames processed:</b> {summary.get('frames', 0)}</p>",
        f"<p><b>Total reps:</b> {total}</p>",
        "<h2>Reps by exercise</h2>",
        "<table border='1'><tr><th>Exercise</th><th>Reps</th></tr>",
    ]
    for ex in SUPPORTED_EXERCISES:
        lines.append(f"<tr><td>{ex.value}</td><td>{counts.get(ex.value, 0)}</td></tr>")
    lines.append("</table>")

    lines.append("<h2>Form feedback</h2>")
    if not feedback_counts:
        lines.append("<p>No form issues detected. Nice work!</p>")
    else:
        lines.append("<table border='1'><tr><th>Issue</th><th>Times flagged</th><th>Tip</th></tr>")
        for code, n in sorted(feedback_counts.items(), key=lambda kv: -kv[1]):
            tip = _FEEDBACK_TIPS.get(code, "")
            lines.append(f"<tr><td>{html.escape(code)}</td><td>{n}</td><td>{html.escape(tip)}</td></tr>")
        lines.append("</table>")

    if feedback:
        lines.append("<h3>Timeline</h3><ul>")
        for ev in feedback:
            t_sec = (ev.get("timestamp_ms") or 0) / 1000.0
            lines.append(f"<li>{t_sec:.1f}s: {html.escape(ev.get('message', ''))}</li>")
        lines.append("</ul>")
    lines.append("</body></html>")
    return "\n".join(lines)


def run_session_report(summary_path: str, output_dir: str, source: str = "live") -> str:
    """
    Load session_summary.json, write report.html and (optionally) a plot.
    Returns the report path.
    """
    os.makedirs(output_dir, exist_ok=True)
    summary = load_session_summary(summary_path)
    logger.info(
        "report input: source=%s summary_path=%s total_reps=%s counts=%s",
        source, summary_path, summary.get("total_reps"), summary.get("counts"),
    )
    report_path = os.path.join(output_dir, "report.html")
    with open(report_path, "w") as f:
        f.write(build_report_html(summary, source))

    counts = summary.get("counts", {})
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        if any(counts.values()):
            labels = [ex.value for ex in SUPPORTED_EXERCISES]
            values = [counts.get(label, 0) for label in labels]
            plt.figure(figsize=(6, 4))
            plt.bar(labels, values)
            plt.ylabel("Reps")
            plt.title("Reps by exercise")
            plt.tight_layout()
            plt.savefig(os.path.join(output_dir, "reps_by_exercise.png"), dpi=100)
            plt.close()
    except Exception as e:
        logger.warning("could not write reps_by_exercise.png: %s", e)

    logger.info("report written: %s", report_path)
    return report_path
