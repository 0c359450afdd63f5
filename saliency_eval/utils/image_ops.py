import cv2
import numpy as np


def to_rgb_uint8(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        img = np.repeat(img[..., None], 3, axis=2)
    assert img.ndim == 3 and img.shape[2] in (3, 4)
    if img.shape[2] == 4:
        img = img[..., :3]
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    return img


def resize_exact(img: np.ndarray, hw: tuple[int, int], interp=cv2.INTER_LINEAR) -> np.ndarray:
    H, W = hw
    return cv2.resize(img, (W, H), interpolation=interp)


def resize_map_bilinear(map_f: np.ndarray, hw: tuple[int, int]) -> np.ndarray:
    m = map_f.astype(np.float32)
    if m.shape == tuple(hw):
        return m
    return resize_exact(m, hw, cv2.INTER_LINEAR)


def normalize_unit(m: np.ndarray, eps: float = 1e-8) -> np.ndarray:
    """Min-max scale into [0, 1]; a constant map becomes all zeros."""
    m = np.asarray(m, dtype=np.float32)
    lo = float(m.min())
    span = float(m.max()) - lo
    if span < eps:
        return np.zeros_like(m, dtype=np.float32)
    return ((m - lo) / span).astype(np.float32)


def binarize_mask(mask: np.ndarray) -> np.ndarray:
    """
    Turn a loaded ground-truth mask into float32 {0, 1}.

    uint8 masks use the 8-bit midpoint (> 127), float masks use > 0.5.
    """
    if mask.ndim == 3:
        mask = mask[..., 0]
    if mask.dtype == np.uint8:
        return (mask > 127).astype(np.float32)
    return (mask.astype(np.float32) > 0.5).astype(np.float32)
