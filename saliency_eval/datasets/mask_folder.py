import os
from typing import List

import cv2
import numpy as np

from saliency_eval.core.errors import LoadError
from saliency_eval.core.interfaces import DatasetEntry, SaliencyDataset
from saliency_eval.core.registry import register
from saliency_eval.utils.image_ops import binarize_mask, to_rgb_uint8


def _norm_ext(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith(".") else "." + ext


@register("dataset", "mask_folder")
class MaskFolderDataset(SaliencyDataset):
    """
    Paired image / binary-mask folders.

    Expected layout:
      gt_dir/<stem><gt_ext>         (grayscale mask, > 127 is foreground)
      image_dir/<stem><image_ext>   (RGB image)

    Only the mask folder is scanned. Image paths are derived from the mask stem
    and are not checked here; a missing image raises LoadError when loaded.
    """

    def __init__(
        self,
        gt_dir: str,
        image_dir: str,
        gt_ext: str = ".bmp",
        image_ext: str = ".jpg",
        split: str = "test",
        name: str = "mask_folder",
    ):
        self.name = name
        self.split = split
        self.gt_dir = gt_dir
        self.image_dir = image_dir
        self.gt_ext = _norm_ext(gt_ext)
        self.image_ext = _norm_ext(image_ext)

        if not os.path.isdir(gt_dir):
            raise FileNotFoundError(f"Ground-truth directory not found: {gt_dir}")

        self.entries: List[DatasetEntry] = []
        # Sorted so per-image CSVs are reproducible; metrics do not depend on it.
        for fname in sorted(os.listdir(gt_dir)):
            stem, ext = os.path.splitext(fname)
            if not stem or ext.lower() != self.gt_ext:
                continue
            self.entries.append(
                DatasetEntry(
                    image_ref=os.path.join(image_dir, stem + self.image_ext),
                    ground_truth_ref=os.path.join(gt_dir, fname),
                    name=stem,
                )
            )

    def size(self) -> int:
        return len(self.entries)

    def entry(self, i: int) -> DatasetEntry:
        return self.entries[i]

    def image(self, i: int) -> np.ndarray:
        e = self.entries[i]
        img = cv2.imread(e.image_ref, cv2.IMREAD_COLOR)
        if img is None:
            raise LoadError(e.name, i, e.image_ref)
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        return to_rgb_uint8(img)

    def ground_truth(self, i: int) -> np.ndarray:
        e = self.entries[i]
        m = cv2.imread(e.ground_truth_ref, cv2.IMREAD_GRAYSCALE)
        if m is None:
            raise LoadError(e.name, i, e.ground_truth_ref)
        return binarize_mask(m)
