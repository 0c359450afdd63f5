import numpy as np

from saliency_eval.core.errors import DegenerateInputError
from saliency_eval.metrics.pr_curve import EPS, F_BETA2

SHRINK = 1.2
MAX_SHRINK_STEPS = 64


def mae(sal: np.ndarray, gt: np.ndarray) -> float:
    if sal.shape != gt.shape:
        raise ValueError(f"shape mismatch: saliency {sal.shape} vs gt {gt.shape}")
    diff = np.abs(sal.astype(np.float64) - gt.astype(np.float64))
    return float(diff.sum() / diff.size)


def f_measure(p: float, r: float, beta2: float = F_BETA2, eps: float = EPS) -> float:
    return float((1 + beta2) * p * r / (beta2 * p + r + eps))


def adaptive_threshold(
    sal: np.ndarray, shrink: float = SHRINK, max_steps: int = MAX_SHRINK_STEPS
) -> float:
    """
    Twice the mean score, divided by ``shrink`` until at least one pixel lies
    strictly above it.

    ``max_steps`` bounds the number of divisions. With the default shrink a
    map with positive mean needs at most four, since its peak is at least its
    mean and 2 / 1.2**4 < 1; a smaller budget can still run out.
    """
    s = sal.astype(np.float64)
    t = 2.0 * float(s.mean())
    if not np.isfinite(t) or t <= 0.0:
        raise DegenerateInputError(detail=f"mean score is {t / 2.0!r}")
    peak = float(s.max())
    steps = 0
    while not peak > t:
        if steps == max_steps:
            raise DegenerateInputError(detail=f"no pixel above threshold after {max_steps} shrink steps")
        t /= shrink
        steps += 1
    return t


def adaptive_prf(sal: np.ndarray, gt: np.ndarray, beta2: float = F_BETA2, eps: float = EPS):
    """Returns (threshold, precision, recall, f_measure) at the adaptive threshold."""
    if sal.shape != gt.shape:
        raise ValueError(f"shape mismatch: saliency {sal.shape} vs gt {gt.shape}")
    t = adaptive_threshold(sal)
    pred = sal > t
    fg = gt > 0.5
    tp = float(np.count_nonzero(pred & fg))
    p = tp / (np.count_nonzero(pred) + eps)
    r = tp / (np.count_nonzero(fg) + eps)
    return t, p, r, f_measure(p, r, beta2, eps)
