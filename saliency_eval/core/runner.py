import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import yaml
from tqdm import tqdm

from saliency_eval.core.errors import DegenerateInputError, LoadError, ShapeMismatchError
from saliency_eval.core.evaluator import EvaluationResult, Evaluator
from saliency_eval.core.interfaces import SaliencyDataset, SaliencyModel
from saliency_eval.core.registry import build, import_adapters
from saliency_eval.metrics.pr_curve import F_BETA2
from saliency_eval.utils.pr_plot import save_pr_curve_png

ERROR_POLICIES = ("abort", "skip")
PER_ENTRY_ERRORS = (LoadError, DegenerateInputError, ShapeMismatchError)


def split_range(n: int, chunks: int) -> List[Tuple[int, int]]:
    """Contiguous, non-empty [start, stop) ranges covering [0, n)."""
    chunks = max(1, min(chunks, n))
    base, extra = divmod(n, chunks)
    out = []
    start = 0
    for k in range(chunks):
        stop = start + base + (1 if k < extra else 0)
        if stop > start:
            out.append((start, stop))
        start = stop
    return out


def _evaluate_one(ev: Evaluator, dataset: SaliencyDataset, index: int, model: SaliencyModel, on_error: str):
    try:
        ev.evaluate(dataset, index, model)
    except PER_ENTRY_ERRORS as e:
        if on_error != "skip":
            raise
        print(f"Warning: skipping {dataset.name_of(index)} (index {index}): {e}")
        ev.record_skip(index, dataset.name_of(index), e)


def _evaluate_range(
    dataset: SaliencyDataset,
    model_name: str,
    model_kwargs: Dict[str, Any],
    start: int,
    stop: int,
    on_error: str,
    beta2: float,
) -> Evaluator:
    # Runs in a worker process: the model is built here to avoid pickling it.
    import_adapters()
    model = build("model", model_name, **model_kwargs)
    ev = Evaluator(beta2=beta2)
    for i in range(start, stop):
        _evaluate_one(ev, dataset, i, model, on_error)
    return ev


def evaluate_dataset(
    dataset: SaliencyDataset,
    model_name: str,
    model_kwargs: Optional[Dict[str, Any]] = None,
    num_workers: int = 1,
    on_error: str = "abort",
    beta2: float = F_BETA2,
    limit: Optional[int] = None,
    chunks_per_worker: int = 4,
    progress: bool = True,
    desc: Optional[str] = None,
) -> Evaluator:
    """
    Evaluate ``model_name`` on every entry of ``dataset`` and return the merged
    Evaluator (not yet normalized, see ``Evaluator.summary``).

    With ``num_workers > 1`` the index range is split into contiguous chunks,
    each evaluated in a worker process by its own Evaluator; partial results
    are merged in the parent as they complete.
    """
    if on_error not in ERROR_POLICIES:
        raise ValueError(f"on_error must be one of {ERROR_POLICIES}, got {on_error!r}")
    model_kwargs = dict(model_kwargs or {})
    n = dataset.size()
    if limit is not None:
        n = min(n, int(limit))
    desc = desc or f"{dataset.name}:{model_name}"

    total = Evaluator(beta2=beta2)
    if n == 0:
        return total

    if num_workers is None or num_workers <= 1:
        import_adapters()
        model = build("model", model_name, **model_kwargs)
        for i in tqdm(range(n), desc=desc, unit="img", disable=not progress):
            _evaluate_one(total, dataset, i, model, on_error)
        return total

    ranges = split_range(n, num_workers * max(1, chunks_per_worker))
    with ProcessPoolExecutor(max_workers=num_workers) as ex:
        futures = [
            ex.submit(_evaluate_range, dataset, model_name, model_kwargs, start, stop, on_error, beta2)
            for start, stop in ranges
        ]
        with tqdm(total=n, desc=f"{desc} (parallel)", unit="img", disable=not progress) as bar:
            try:
                for fut in as_completed(futures):
                    part = fut.result()
                    total.merge(part)
                    bar.update(part.image_count + len(part.skipped))
            except BaseException:
                ex.shutdown(wait=False, cancel_futures=True)
                raise
    return total


def format_report(result: EvaluationResult) -> str:
    lines = [
        "MAE = %f" % result.mae,
        "p = %f  r = %f  f = %f" % (result.precision, result.recall, result.fmeasure),
        "max f = %f  (%d images)" % (result.max_fmeasure, result.image_count),
    ]
    return "\n".join(lines)


def run_experiment(cfg_path: str, overrides: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
    with open(cfg_path, "r") as f:
        cfg = yaml.safe_load(f)
    cfg.update({k: v for k, v in (overrides or {}).items() if v is not None})

    limit = cfg.get("limit_images", None)
    num_workers = int(cfg.get("num_workers", 1))
    on_error = str(cfg.get("on_error", "abort"))
    beta2 = float(cfg.get("beta2", F_BETA2))
    save_png = bool(cfg.get("pr_curve_png", False))

    import_adapters()

    out_dir = cfg.get("output_dir", "outputs")
    os.makedirs(out_dir, exist_ok=True)

    all_rows = []
    for ds_cfg in cfg["datasets"]:
        ds = build("dataset", ds_cfg["name"], **{k: v for k, v in ds_cfg.items() if k != "name"})
        for model_name in cfg["models"]:
            model_kwargs = cfg.get("model_kwargs", {}).get(model_name, {})
            ev = evaluate_dataset(
                ds,
                model_name,
                model_kwargs,
                num_workers=num_workers,
                on_error=on_error,
                beta2=beta2,
                limit=limit,
            )
            prefix = os.path.join(out_dir, f"{ds.name}__{model_name}")
            ev.per_image_frame().to_csv(prefix + ".csv", index=False)
            if ev.skipped:
                pd.DataFrame(ev.skipped).to_csv(prefix + "__skipped.csv", index=False)

            result = ev.summary()
            ev.stat.to_frame(beta2).to_csv(prefix + "__pr_curve.csv", index=False)
            if save_png:
                save_pr_curve_png(
                    prefix + "__pr_curve.png",
                    result.precision_curve,
                    result.recall_curve,
                    title=f"{ds.name}: {model_name}",
                )

            summary = pd.DataFrame(
                [
                    {
                        "dataset": ds.name,
                        "split": getattr(ds, "split", "NA"),
                        "model": model_name,
                        "n_skipped": len(ev.skipped),
                        **result.as_row(),
                    }
                ]
            )
            summary.to_csv(prefix + "__summary.csv", index=False)
            all_rows.append(summary)

            print(f"[{ds.name}:{model_name}]")
            print(format_report(result))

    final = pd.concat(all_rows, ignore_index=True) if all_rows else pd.DataFrame()
    final.to_csv(os.path.join(out_dir, "ALL_SUMMARY.csv"), index=False)
    return final


def main(argv=None):
    import argparse

    ap = argparse.ArgumentParser(description="Evaluate saliency predictors against binary masks.")
    ap.add_argument("--config", type=str, required=True)
    ap.add_argument("--num_workers", type=int, default=None, help="Override num_workers from the config.")
    ap.add_argument("--on_error", type=str, choices=ERROR_POLICIES, default=None)
    args = ap.parse_args(argv)
    run_experiment(args.config, {"num_workers": args.num_workers, "on_error": args.on_error})


if __name__ == "__main__":
    main()
