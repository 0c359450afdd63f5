import cv2
import numpy as np
import pandas as pd
import pytest
import yaml

from saliency_eval.core.errors import DegenerateInputError, EmptyDatasetError, LoadError, ShapeMismatchError
from saliency_eval.core.evaluator import Evaluator
from saliency_eval.core.runner import evaluate_dataset, format_report, run_experiment, split_range
from saliency_eval.datasets.arrays import ArrayDataset


def _maps_dataset(tmp_path, n=9, shape=(12, 16), seed=0):
    """ArrayDataset plus a directory of 8-bit maps named after its entries."""
    rng = np.random.default_rng(seed)
    maps_dir = tmp_path / "maps"
    maps_dir.mkdir()
    imgs, masks, names = [], [], []
    for i in range(n):
        name = f"im{i:02d}"
        mask = np.zeros(shape, np.uint8)
        y, x = rng.integers(0, shape[0] // 2), rng.integers(0, shape[1] // 2)
        mask[y : y + 5, x : x + 6] = 255
        sal = np.clip(mask.astype(np.float32) * 0.7 + rng.integers(0, 90, size=shape), 0, 255)
        cv2.imwrite(str(maps_dir / f"{name}.png"), sal.astype(np.uint8))
        imgs.append(np.zeros(shape + (3,), np.uint8))
        masks.append(mask)
        names.append(name)
    return ArrayDataset(imgs, masks, names), str(maps_dir)


def test_split_range_covers_everything():
    assert split_range(10, 3) == [(0, 4), (4, 7), (7, 10)]
    assert split_range(2, 8) == [(0, 1), (1, 2)]
    ranges = split_range(101, 16)
    assert ranges[0][0] == 0 and ranges[-1][1] == 101
    assert all(a[1] == b[0] for a, b in zip(ranges, ranges[1:]))


def test_end_to_end_2x2(tmp_path):
    gt = np.array([[255, 255], [0, 0]], np.uint8)
    (tmp_path / "good").mkdir()
    (tmp_path / "bad").mkdir()
    cv2.imwrite(str(tmp_path / "good" / "t.png"), gt)
    cv2.imwrite(str(tmp_path / "bad" / "t.png"), 255 - gt)
    ds = ArrayDataset([np.zeros((2, 2, 3), np.uint8)], [gt], names=["t"])

    good = evaluate_dataset(ds, "precomputed", {"maps_dir": str(tmp_path / "good")}, progress=False).summary()
    assert good.mae == 0.0
    assert good.precision == pytest.approx(1.0)
    assert good.recall == pytest.approx(1.0)
    assert good.fmeasure == pytest.approx(1.0)
    assert len(good.precision_curve) == 256 and len(good.recall_curve) == 256

    bad = evaluate_dataset(ds, "precomputed", {"maps_dir": str(tmp_path / "bad")}, progress=False).summary()
    assert bad.mae == pytest.approx(1.0)
    assert bad.precision == 0.0 and bad.recall == 0.0
    assert np.isfinite(bad.fmeasure)

    report = format_report(good)
    assert "MAE = 0.000000" in report
    assert "p = 1.000000  r = 1.000000  f = 1.000000" in report


def test_parallel_matches_sequential(tmp_path):
    ds, maps_dir = _maps_dataset(tmp_path)
    kwargs = {"maps_dir": maps_dir}
    seq = evaluate_dataset(ds, "precomputed", kwargs, num_workers=1, progress=False)
    par = evaluate_dataset(ds, "precomputed", kwargs, num_workers=2, chunks_per_worker=2, progress=False)

    a, b = seq.summary(), par.summary()
    assert a.image_count == b.image_count == ds.size()
    for key in ("mae", "precision", "recall", "fmeasure"):
        assert getattr(a, key) == pytest.approx(getattr(b, key), rel=1e-9)
    np.testing.assert_allclose(a.precision_curve, b.precision_curve, rtol=1e-9)
    np.testing.assert_allclose(a.recall_curve, b.recall_curve, rtol=1e-9)
    assert list(par.per_image_frame()["image_id"]) == [ds.name_of(i) for i in range(ds.size())]


def test_merged_halves_equal_full_pass():
    rng = np.random.default_rng(4)
    pairs = []
    for _ in range(8):
        sal = rng.random((10, 10)).astype(np.float32)
        gt = (rng.random((10, 10)) > 0.5).astype(np.float32)
        pairs.append((sal, gt))

    full = Evaluator()
    first, second = Evaluator(), Evaluator()
    for i, (sal, gt) in enumerate(pairs):
        full.add_maps(sal, gt, image_id=str(i), index=i)
        (first if i < 4 else second).add_maps(sal, gt, image_id=str(i), index=i)

    merged = second.merge(first).summary()
    ref = full.summary()
    assert merged.image_count == ref.image_count == 8
    for key in ("mae", "precision", "recall", "fmeasure", "max_fmeasure"):
        assert getattr(merged, key) == pytest.approx(getattr(ref, key), rel=1e-12)
    np.testing.assert_allclose(merged.fmeasure_curve, ref.fmeasure_curve, rtol=1e-12)


def test_empty_dataset_fails_on_normalization():
    ds = ArrayDataset([], [])
    ev = evaluate_dataset(ds, "center_bias", progress=False)
    assert ev.image_count == 0
    with pytest.raises(EmptyDatasetError):
        ev.summary()


def test_degenerate_map_leaves_evaluator_untouched():
    ev = Evaluator()
    gt = np.ones((3, 3), np.float32)
    with pytest.raises(DegenerateInputError) as exc:
        ev.add_maps(np.zeros((3, 3), np.float32), gt, image_id="zero", index=5)
    assert exc.value.image_id == "zero" and exc.value.index == 5
    assert ev.image_count == 0 and ev.stat.sample_count == 0 and ev.rows == []


def test_error_policies(tmp_path, capsys):
    ds, maps_dir = _maps_dataset(tmp_path, n=4)
    (tmp_path / "maps" / "im01.png").unlink()
    cv2.imwrite(str(tmp_path / "maps" / "im02.png"), np.zeros((12, 16), np.uint8))
    kwargs = {"maps_dir": maps_dir}

    with pytest.raises(LoadError) as exc:
        evaluate_dataset(ds, "precomputed", kwargs, progress=False)
    assert exc.value.image_id == "im01" and exc.value.index == 1

    # Whichever failing chunk finishes first aborts the run.
    with pytest.raises((LoadError, DegenerateInputError)):
        evaluate_dataset(ds, "precomputed", kwargs, num_workers=2, progress=False)

    ev = evaluate_dataset(ds, "precomputed", kwargs, on_error="skip", progress=False)
    assert ev.image_count == 2
    assert sorted(s["image_id"] for s in ev.skipped) == ["im01", "im02"]
    assert {s["error"] for s in ev.skipped} == {"LoadError", "DegenerateInputError"}
    assert "Warning: skipping im01" in capsys.readouterr().out

    with pytest.raises(ValueError):
        evaluate_dataset(ds, "precomputed", kwargs, on_error="ignore")


def test_run_experiment_writes_outputs(tmp_path):
    (tmp_path / "gt").mkdir()
    (tmp_path / "images").mkdir()
    for i in range(3):
        mask = np.zeros((24, 32), np.uint8)
        mask[6:18, 8 + i : 20 + i] = 255
        cv2.imwrite(str(tmp_path / "gt" / f"{i:03d}.bmp"), mask)
        img = np.full((24, 32, 3), 40, np.uint8)
        img[mask > 0] = 230
        cv2.imwrite(str(tmp_path / "images" / f"{i:03d}.jpg"), img)

    out_dir = tmp_path / "out"
    cfg = {
        "output_dir": str(out_dir),
        "num_workers": 1,
        "pr_curve_png": True,
        "datasets": [{"name": "mask_folder", "gt_dir": str(tmp_path / "gt"), "image_dir": str(tmp_path / "images")}],
        "models": ["center_bias", "blur_baseline"],
        "model_kwargs": {"blur_baseline": {"ksize": 5}},
    }
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(yaml.safe_dump(cfg))

    final = run_experiment(str(cfg_path))
    assert set(final["model"]) == {"center_bias", "blur_baseline"}
    assert (final["n_images"] == 3).all()

    per_image = pd.read_csv(out_dir / "mask_folder__blur_baseline.csv", dtype={"image_id": str})
    assert list(per_image["image_id"]) == ["000", "001", "002"]
    curve = pd.read_csv(out_dir / "mask_folder__center_bias__pr_curve.csv")
    assert len(curve) == 256
    assert (out_dir / "mask_folder__center_bias__pr_curve.png").exists()
    assert (out_dir / "mask_folder__center_bias__summary.csv").exists()
    assert (out_dir / "ALL_SUMMARY.csv").exists()


def test_size_mismatch_is_a_per_entry_failure():
    imgs = [np.full((8, 8, 3), 90, np.uint8), np.full((6, 6, 3), 90, np.uint8)]
    imgs[0][2:5, 2:5] = 240
    masks = [np.zeros((8, 8), np.uint8), np.zeros((5, 5), np.uint8)]
    masks[0][2:5, 2:5] = 255
    ds = ArrayDataset(imgs, masks)

    with pytest.raises(ShapeMismatchError) as exc:
        evaluate_dataset(ds, "blur_baseline", {"ksize": 3}, progress=False)
    assert exc.value.image_id == "0001" and exc.value.index == 1
    assert exc.value.sal_shape == (6, 6) and exc.value.gt_shape == (5, 5)

    ev = evaluate_dataset(ds, "blur_baseline", {"ksize": 3}, on_error="skip", progress=False)
    assert ev.image_count == 1
    assert [s["error"] for s in ev.skipped] == ["ShapeMismatchError"]
    assert ev.skipped[0]["image_id"] == "0001"
