import cv2
import numpy as np
import pytest

from saliency_eval.core.errors import LoadError
from saliency_eval.datasets.arrays import ArrayDataset
from saliency_eval.datasets.mask_folder import MaskFolderDataset


def _write_pair(root, stem, mask, with_image=True):
    H, W = mask.shape
    cv2.imwrite(str(root / "gt" / f"{stem}.bmp"), mask)
    if with_image:
        img = np.full((H, W, 3), 200, np.uint8)
        cv2.imwrite(str(root / "images" / f"{stem}.jpg"), img)


def test_mask_folder_catalog(tmp_path):
    (tmp_path / "gt").mkdir()
    (tmp_path / "images").mkdir()
    mask = np.zeros((20, 30), np.uint8)
    mask[:10] = 200
    mask[10:12] = 127  # exactly the midpoint is background
    _write_pair(tmp_path, "b", mask)
    _write_pair(tmp_path, "a", mask)
    (tmp_path / "gt" / "notes.txt").write_text("ignore me")

    ds = MaskFolderDataset(gt_dir=str(tmp_path / "gt"), image_dir=str(tmp_path / "images"))
    assert ds.size() == 2 and len(ds) == 2
    assert sorted(ds.name_of(i) for i in range(ds.size())) == ["a", "b"]

    gt = ds.ground_truth(0)
    assert gt.shape == (20, 30)
    assert gt.dtype == np.float32
    assert set(np.unique(gt)) == {0.0, 1.0}
    assert gt[:10].all() and not gt[10:].any()

    img = ds.image(0)
    assert img.shape == (20, 30, 3) and img.dtype == np.uint8

    entry = ds.entry(0)
    assert entry.image_ref.endswith(f"{entry.name}.jpg")
    assert [e.name for e in ds] == [ds.name_of(i) for i in range(ds.size())]


def test_missing_image_surfaces_on_load(tmp_path):
    (tmp_path / "gt").mkdir()
    (tmp_path / "images").mkdir()
    _write_pair(tmp_path, "lonely", np.full((8, 8), 255, np.uint8), with_image=False)

    ds = MaskFolderDataset(gt_dir=str(tmp_path / "gt"), image_dir=str(tmp_path / "images"))
    assert ds.size() == 1
    with pytest.raises(LoadError) as exc:
        ds.image(0)
    assert exc.value.image_id == "lonely"
    assert exc.value.index == 0
    assert "lonely" in str(exc.value)


def test_custom_extensions_and_missing_dir(tmp_path):
    (tmp_path / "gt").mkdir()
    cv2.imwrite(str(tmp_path / "gt" / "x.PNG"), np.full((4, 4), 255, np.uint8))
    cv2.imwrite(str(tmp_path / "gt" / "y.bmp"), np.full((4, 4), 255, np.uint8))
    ds = MaskFolderDataset(str(tmp_path / "gt"), str(tmp_path / "img"), gt_ext="png", image_ext="png")
    assert [e.name for e in ds] == ["x"]
    assert ds.entry(0).image_ref.endswith("x.png")

    with pytest.raises(FileNotFoundError):
        MaskFolderDataset(str(tmp_path / "nope"), str(tmp_path / "img"))


def test_array_dataset():
    imgs = [np.zeros((2, 2, 3), np.uint8), np.zeros((3, 3), np.uint8)]
    masks = [np.array([[255, 0], [0, 0]], np.uint8), np.full((3, 3), 0.7, np.float32)]
    ds = ArrayDataset(imgs, masks, names=["p", "q"])
    assert ds.size() == 2
    assert ds.ground_truth(0).tolist() == [[1.0, 0.0], [0.0, 0.0]]
    assert ds.ground_truth(1).all()
    assert ds.image(1).shape == (3, 3, 3)
    assert ds.name_of(1) == "q"
    with pytest.raises(ValueError):
        ArrayDataset(imgs, masks[:1])
