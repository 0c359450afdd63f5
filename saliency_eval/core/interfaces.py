from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class DatasetEntry:
    image_ref: str
    ground_truth_ref: str
    name: str


class SaliencyModel(ABC):
    name: str
    requires_size: Optional[Tuple[int, int]] = None  # (H, W) or None
    device: str = "cpu"

    @abstractmethod
    def preprocess(self, image_np: np.ndarray) -> Any:
        ...

    @abstractmethod
    def predict(self, model_input: Any) -> np.ndarray:
        """Returns (H_m, W_m) float32 map"""
        ...

    def postprocess(self, pred_map: np.ndarray, target_hw: Tuple[int, int]) -> np.ndarray:
        from saliency_eval.utils.image_ops import normalize_unit, resize_map_bilinear

        out = resize_map_bilinear(pred_map, target_hw)
        return normalize_unit(out)

    def saliency(self, image_np: np.ndarray, image_id: Optional[str] = None) -> np.ndarray:
        """(H, W) float32 map in [0, 1] at the resolution of ``image_np``."""
        H, W = image_np.shape[:2]
        inp = self.preprocess(image_np)
        return self.postprocess(self.predict(inp), (H, W))


class SaliencyDataset(ABC):
    """
    Indexed catalog of (image, ground-truth mask) pairs.

    - image(i): np.ndarray(H, W, 3) uint8 RGB
    - ground_truth(i): np.ndarray(H, W) float32, values in {0, 1}
    - name(i): str identifier derived from the mask file stem
    """

    name: str
    split: str

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def entry(self, i: int) -> DatasetEntry:
        ...

    @abstractmethod
    def image(self, i: int) -> np.ndarray:
        ...

    @abstractmethod
    def ground_truth(self, i: int) -> np.ndarray:
        ...

    def name_of(self, i: int) -> str:
        return self.entry(i).name

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[DatasetEntry]:
        for i in range(self.size()):
            yield self.entry(i)
