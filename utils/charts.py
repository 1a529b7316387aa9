"""Report charts rendered with matplotlib and embedded as base64 PNGs."""

import io
import base64
from pathlib import Path
from typing import Dict, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from heuristics.catalog import get_heuristic
from utils.scoring import SEVERITY_COLORS, Severity


def setup_style():
    """Light report style to match the HTML templates."""
    plt.style.use('default')
    plt.rcParams.update({
        'figure.facecolor': '#ffffff',
        'axes.facecolor': '#f8fafc',
        'axes.edgecolor': '#cbd5e1',
        'axes.labelcolor': '#0f172a',
        'text.color': '#0f172a',
        'xtick.color': '#475569',
        'ytick.color': '#475569',
        'grid.color': '#e2e8f0',
        'font.family': 'sans-serif',
        'font.sans-serif': ['Inter', 'Arial', 'DejaVu Sans'],
        'font.size': 10,
        'axes.titlesize': 14,
        'axes.labelsize': 11,
    })


def _finish(fig, output_path: Optional[str]) -> str:
    """Save to output_path when given, and return the chart as a data URI."""
    buffer = io.BytesIO()
    fig.savefig(buffer, format='png', bbox_inches='tight', dpi=120)
    if output_path:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(buffer.getvalue())
    plt.close(fig)
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode('utf-8')


def create_severity_chart(severity_counts: Dict[str, int], output_path: Optional[str] = None) -> str:
    """Horizontal bar chart of violation counts per severity."""
    setup_style()
    severities = [Severity.HIGH, Severity.MEDIUM, Severity.LOW]
    labels = [s.value.title() for s in severities]
    counts = [severity_counts.get(s.value, 0) for s in severities]
    colors = [SEVERITY_COLORS[s] for s in severities]

    fig, ax = plt.subplots(figsize=(6, 2.8))
    bars = ax.barh(labels, counts, color=colors)
    ax.invert_yaxis()
    ax.set_xlabel('Violations')
    ax.set_title('Violations by Severity', pad=12)
    ax.xaxis.get_major_locator().set_params(integer=True)
    for bar, count in zip(bars, counts):
        ax.text(bar.get_width() + 0.1, bar.get_y() + bar.get_height() / 2, str(count), va='center')
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    return _finish(fig, output_path)


def create_category_chart(category_scores: Dict[str, int], output_path: Optional[str] = None) -> str:
    """
    Radar chart of per-heuristic scores.

    Needs at least three categories to draw a polygon; returns "" otherwise.
    """
    if len(category_scores) < 3:
        return ""
    setup_style()

    labels = []
    for heuristic_id in category_scores:
        heuristic = get_heuristic(heuristic_id)
        name = heuristic.label if heuristic else heuristic_id
        # wrap long labels
        if len(name) > 18 and ' ' in name:
            parts = name.split(' ')
            mid = len(parts) // 2
            name = " ".join(parts[:mid]) + "\n" + " ".join(parts[mid:])
        labels.append(name)

    values = np.array(list(category_scores.values()), dtype=float)
    values = np.concatenate((values, [values[0]]))
    angles = np.linspace(0, 2 * np.pi, len(labels), endpoint=False)
    angles = np.concatenate((angles, [angles[0]]))

    fig, ax = plt.subplots(figsize=(7, 7), subplot_kw=dict(polar=True))
    ax.plot(angles, values, 'o-', linewidth=2, color='#2563eb', markerfacecolor='#ffffff')
    ax.fill(angles, values, alpha=0.2, color='#3b82f6')
    ax.set_thetagrids(angles[:-1] * 180 / np.pi, labels)
    ax.grid(color='#94a3b8', alpha=0.4, linestyle='--')
    ax.set_ylim(0, 100)
    ax.set_title('Score by Heuristic', y=1.08)
    return _finish(fig, output_path)
