from typing import Tuple

import numpy as np

from saliency_eval.core.interfaces import SaliencyModel
from saliency_eval.core.registry import register


@register("model", "center_bias")
class CenterBias(SaliencyModel):
    """
    Image-independent Gaussian prior centred on the frame.

    Built directly at the image resolution with a peak of 1, so no resize or
    rescale happens afterwards. ``sigma_ratio`` is relative to the half-extent
    of each axis, which keeps the blob elliptical on non-square images.
    """

    def __init__(self, device: str = "cpu", sigma_ratio: float = 0.25):
        self.name = "center_bias"
        self.device = device
        self.sigma_ratio = sigma_ratio

    def preprocess(self, image_np: np.ndarray) -> Tuple[int, int]:
        return image_np.shape[:2]

    def predict(self, model_input: Tuple[int, int]) -> np.ndarray:
        H, W = model_input
        y = np.linspace(-1, 1, H)[:, None] if H > 1 else np.zeros((1, 1))
        x = np.linspace(-1, 1, W)[None, :] if W > 1 else np.zeros((1, 1))
        r2 = x**2 + y**2
        return np.exp(-0.5 * r2 / self.sigma_ratio**2).astype(np.float32)

    def postprocess(self, pred_map: np.ndarray, target_hw: Tuple[int, int]) -> np.ndarray:
        return np.clip(pred_map, 0.0, 1.0)
