# foodlink/services/charts.py
import matplotlib
matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt
from io import BytesIO
from typing import List

from foodlink.schemas import GroupTotal


def plot_group_totals_png(groups: List[GroupTotal], title: str, limit: int = 10) -> BytesIO:
    """
    Bar chart of total kg per group (store or volunteer), largest first.
    Returns a BytesIO PNG buffer.
    """
    top = groups[:limit]
    labels = [g.name for g in top] or ["No data"]
    values = [g.total for g in top] or [0]

    fig = plt.figure(figsize=(8, 4.5))
    plt.bar(labels, values)
    plt.title(title)
    plt.ylabel("kg")
    plt.xticks(rotation=30, ha="right")
    plt.tight_layout()

    buf = BytesIO()
    fig.savefig(buf, format="png")
    plt.close(fig)
    buf.seek(0)
    return buf
