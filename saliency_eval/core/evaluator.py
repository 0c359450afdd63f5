from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from saliency_eval.core.errors import DegenerateInputError, EmptyDatasetError, LoadError, ShapeMismatchError
from saliency_eval.core.interfaces import SaliencyDataset, SaliencyModel
from saliency_eval.metrics.metrics import adaptive_prf, mae
from saliency_eval.metrics.pr_curve import F_BETA2, N_BINS, PRCurveStat


@dataclass
class EvaluationResult:
    mae: float
    precision: float
    recall: float
    fmeasure: float
    max_fmeasure: float
    image_count: int
    precision_curve: np.ndarray = field(repr=False)
    recall_curve: np.ndarray = field(repr=False)
    fmeasure_curve: np.ndarray = field(repr=False)

    def as_row(self) -> Dict[str, Any]:
        return {
            "n_images": self.image_count,
            "MAE": self.mae,
            "precision": self.precision,
            "recall": self.recall,
            "F_measure": self.fmeasure,
            "max_F_measure": self.max_fmeasure,
        }


class Evaluator:
    """
    Running sums of per-image MAE and adaptive-threshold precision / recall /
    F-measure, plus one PR-curve accumulator.

    Partial evaluators built over disjoint index ranges combine with ``merge``;
    the result does not depend on merge order.
    """

    def __init__(self, beta2: float = F_BETA2, n_bins: int = N_BINS, keep_rows: bool = True):
        self.beta2 = beta2
        self.keep_rows = keep_rows
        self.mae_sum = 0.0
        self.precision_sum = 0.0
        self.recall_sum = 0.0
        self.fmeasure_sum = 0.0
        self.image_count = 0
        self.stat = PRCurveStat(n_bins)
        self.rows: List[Dict[str, Any]] = []
        self.skipped: List[Dict[str, Any]] = []

    def add_maps(self, sal: np.ndarray, gt: np.ndarray, image_id: str = "", index: int = -1):
        # Everything that can fail runs before any accumulator changes.
        try:
            t, p, r, f = adaptive_prf(sal, gt, beta2=self.beta2)
        except DegenerateInputError as e:
            raise DegenerateInputError(image_id, index, e.detail) from e
        err = mae(sal, gt)
        single = PRCurveStat(self.stat.n_bins).add(sal, gt)

        self.stat.merge(single)
        self.mae_sum += err
        self.precision_sum += p
        self.recall_sum += r
        self.fmeasure_sum += f
        self.image_count += 1
        if self.keep_rows:
            self.rows.append(
                {
                    "index": index,
                    "image_id": image_id,
                    "MAE": err,
                    "threshold": t,
                    "precision": p,
                    "recall": r,
                    "F_measure": f,
                }
            )

    def evaluate(self, dataset: SaliencyDataset, index: int, model: SaliencyModel):
        image_id = dataset.name_of(index)
        img = dataset.image(index)
        gt = dataset.ground_truth(index)
        try:
            sal = model.saliency(img, image_id=image_id)
        except LoadError as e:
            if e.index >= 0:
                raise
            raise LoadError(image_id, index, e.path, e.reason) from e
        if sal.shape != gt.shape:
            raise ShapeMismatchError(image_id, index, sal.shape, gt.shape)
        self.add_maps(sal, gt, image_id=image_id, index=index)

    def record_skip(self, index: int, image_id: str, error: Exception):
        self.skipped.append(
            {"index": index, "image_id": image_id, "error": type(error).__name__, "message": str(error)}
        )

    def merge(self, other: "Evaluator") -> "Evaluator":
        self.mae_sum += other.mae_sum
        self.precision_sum += other.precision_sum
        self.recall_sum += other.recall_sum
        self.fmeasure_sum += other.fmeasure_sum
        self.image_count += other.image_count
        self.stat.merge(other.stat)
        self.rows.extend(other.rows)
        self.skipped.extend(other.skipped)
        return self

    def summary(self) -> EvaluationResult:
        if self.image_count == 0:
            raise EmptyDatasetError("no images were evaluated; cannot normalize metrics")
        n = self.image_count
        f_curve = self.stat.f_measure(self.beta2)
        finite = f_curve[np.isfinite(f_curve)]
        return EvaluationResult(
            mae=self.mae_sum / n,
            precision=self.precision_sum / n,
            recall=self.recall_sum / n,
            fmeasure=self.fmeasure_sum / n,
            max_fmeasure=float(finite.max()) if finite.size else float("nan"),
            image_count=n,
            precision_curve=self.stat.precision(),
            recall_curve=self.stat.recall(),
            fmeasure_curve=f_curve,
        )

    def per_image_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.rows)
        if not df.empty:
            df = df.sort_values("index").reset_index(drop=True)
        return df
