from typing import List, Optional, Sequence

import numpy as np

from saliency_eval.core.interfaces import DatasetEntry, SaliencyDataset
from saliency_eval.core.registry import register
from saliency_eval.utils.image_ops import binarize_mask, to_rgb_uint8


@register("dataset", "arrays")
class ArrayDataset(SaliencyDataset):
    """In-memory catalog; masks go through the same binarization as files."""

    def __init__(
        self,
        images: Sequence[np.ndarray],
        masks: Sequence[np.ndarray],
        names: Optional[Sequence[str]] = None,
        split: str = "test",
    ):
        if len(images) != len(masks):
            raise ValueError(f"{len(images)} images but {len(masks)} masks")
        self.name = "arrays"
        self.split = split
        self.images = [to_rgb_uint8(np.asarray(im)) for im in images]
        self.masks = [binarize_mask(np.asarray(m)) for m in masks]
        if names is None:
            names = [f"{i:04d}" for i in range(len(images))]
        self.entries: List[DatasetEntry] = [
            DatasetEntry(image_ref=f"<memory:{n}>", ground_truth_ref=f"<memory:{n}>", name=str(n))
            for n in names
        ]

    def size(self) -> int:
        return len(self.entries)

    def entry(self, i: int) -> DatasetEntry:
        return self.entries[i]

    def image(self, i: int) -> np.ndarray:
        return self.images[i]

    def ground_truth(self, i: int) -> np.ndarray:
        return self.masks[i]
