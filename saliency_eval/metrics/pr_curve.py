"""
Binned precision/recall accumulator.

Each bin ``i`` stands for the decision "salient iff the score falls in bin i
or any higher bin". One ``add`` call turns a score map and its binary mask
into a precision and a recall value per bin and adds them to running sums, so
the final curve is an average over images rather than over pixels.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

N_BINS = 256
F_BETA2 = 0.3
EPS = 1e-10


class PRCurveStat:
    def __init__(self, n_bins: int = N_BINS):
        self.n_bins = n_bins
        self.precision_sum = np.zeros(n_bins, dtype=np.float64)
        self.recall_sum = np.zeros(n_bins, dtype=np.float64)
        self.sample_count = 0

    def _histograms(self, sal: np.ndarray, gt: np.ndarray):
        # Fresh per call, never shared between callers.
        s = np.clip(np.asarray(sal, dtype=np.float64).ravel(), 0.0, 1.0)
        fg = np.asarray(gt).ravel() > 0.5
        bins = np.floor(s * (self.n_bins - 1)).astype(np.int64)
        count_all = np.bincount(bins, minlength=self.n_bins)
        count_gt = np.bincount(bins[fg], minlength=self.n_bins)
        return count_gt, count_all, int(fg.sum())

    def cumulative_counts(self, sal: np.ndarray, gt: np.ndarray):
        """
        Per-bin (true positives, predicted positives, total foreground) when
        everything in that bin or above is predicted salient.
        """
        if np.shape(sal) != np.shape(gt):
            raise ValueError(f"shape mismatch: saliency {np.shape(sal)} vs gt {np.shape(gt)}")
        count_gt, count_all, total_gt = self._histograms(sal, gt)
        cum_tp = np.cumsum(count_gt[::-1])[::-1]
        cum_pred = np.cumsum(count_all[::-1])[::-1]
        return cum_tp, cum_pred, total_gt

    def add(self, sal: np.ndarray, gt: np.ndarray) -> "PRCurveStat":
        cum_tp, cum_pred, total_gt = self.cumulative_counts(sal, gt)
        self.precision_sum += cum_tp / (cum_pred + EPS)
        self.recall_sum += cum_tp / (total_gt + EPS)
        self.sample_count += 1
        return self

    def precision(self) -> np.ndarray:
        if self.sample_count == 0:
            return np.full(self.n_bins, np.nan)
        return self.precision_sum / self.sample_count

    def recall(self) -> np.ndarray:
        if self.sample_count == 0:
            return np.full(self.n_bins, np.nan)
        return self.recall_sum / self.sample_count

    def f_measure(self, beta2: float = F_BETA2) -> np.ndarray:
        """No epsilon here: a bin with p == r == 0 is NaN and means "no data"."""
        p = self.precision()
        r = self.recall()
        with np.errstate(divide="ignore", invalid="ignore"):
            return (1 + beta2) * p * r / (beta2 * p + r)

    def thresholds(self) -> np.ndarray:
        return np.arange(self.n_bins, dtype=np.float64) / (self.n_bins - 1)

    def merge(self, other: "PRCurveStat") -> "PRCurveStat":
        if other.n_bins != self.n_bins:
            raise ValueError(f"cannot merge {other.n_bins} bins into {self.n_bins}")
        self.precision_sum += other.precision_sum
        self.recall_sum += other.recall_sum
        self.sample_count += other.sample_count
        return self

    def copy(self) -> "PRCurveStat":
        out = PRCurveStat(self.n_bins)
        return out.merge(self)

    def __add__(self, other: "PRCurveStat") -> "PRCurveStat":
        return self.copy().merge(other)

    def __iadd__(self, other: "PRCurveStat") -> "PRCurveStat":
        return self.merge(other)

    def to_frame(self, beta2: float = F_BETA2) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "bin": np.arange(self.n_bins),
                "threshold": self.thresholds(),
                "precision": self.precision(),
                "recall": self.recall(),
                "f_measure": self.f_measure(beta2),
            }
        )
