import os
from typing import Optional, Tuple

import cv2
import numpy as np

from saliency_eval.core.errors import LoadError
from saliency_eval.core.interfaces import SaliencyModel
from saliency_eval.core.registry import register
from saliency_eval.utils.image_ops import resize_map_bilinear


@register("model", "precomputed")
class PrecomputedMaps(SaliencyModel):
    """
    Reads saliency maps saved by another tool instead of computing them.

    ``maps_dir/<image_id><ext>``: 8-bit grayscale images are scaled by 1/255,
    ``.npy`` arrays are used as-is. Values are clipped into [0, 1].
    """

    def __init__(self, maps_dir: str, ext: str = ".png", device: str = "cpu", name: str = "precomputed"):
        self.name = name
        self.device = device
        self.maps_dir = maps_dir
        self.ext = ext if ext.startswith(".") else "." + ext

    def path_for(self, image_id: str) -> str:
        return os.path.join(self.maps_dir, image_id + self.ext)

    def preprocess(self, image_np: np.ndarray, image_id: Optional[str] = None) -> str:
        if image_id is None:
            raise ValueError("PrecomputedMaps needs the image id to find its map")
        return image_id

    def predict(self, model_input: str) -> np.ndarray:
        image_id = model_input
        path = self.path_for(image_id)
        if self.ext.lower() == ".npy":
            if not os.path.exists(path):
                raise LoadError(image_id, -1, path, "missing")
            return np.load(path).astype(np.float32)
        m = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
        if m is None:
            raise LoadError(image_id, -1, path)
        return m.astype(np.float32) / 255.0

    def postprocess(self, pred_map: np.ndarray, target_hw: Tuple[int, int]) -> np.ndarray:
        # Saved maps keep their own scale; only the size is adapted.
        return np.clip(resize_map_bilinear(pred_map, target_hw), 0.0, 1.0)

    def saliency(self, image_np: np.ndarray, image_id: Optional[str] = None) -> np.ndarray:
        H, W = image_np.shape[:2]
        return self.postprocess(self.predict(self.preprocess(image_np, image_id)), (H, W))
