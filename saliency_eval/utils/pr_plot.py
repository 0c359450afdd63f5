import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402


def save_pr_curve_png(out_path: str, precision: np.ndarray, recall: np.ndarray, title: str = "Precision - Recall"):
    """
    Line plot of precision against recall. Bins where either value is NaN
    carry no data and are left out.
    """
    p = np.asarray(precision, dtype=np.float64)
    r = np.asarray(recall, dtype=np.float64)
    keep = np.isfinite(p) & np.isfinite(r)

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    fig, ax = plt.subplots(figsize=(5, 5))
    ax.plot(r[keep], p[keep], "-")
    ax.set_xlabel("Recall")
    ax.set_ylabel("Precision")
    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.05)
    ax.set_title(title)
    ax.grid(True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=100, bbox_inches="tight")
    plt.close(fig)
