import argparse
import os

import cv2
import numpy as np


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--root", type=str, default="data")
    ap.add_argument("--count", type=int, default=3)
    args = ap.parse_args()

    img_dir = os.path.join(args.root, "images")
    gt_dir = os.path.join(args.root, "gt")
    os.makedirs(img_dir, exist_ok=True)
    os.makedirs(gt_dir, exist_ok=True)

    rng = np.random.default_rng(0)
    H, W = 240, 320
    for i in range(args.count):
        cy = int(rng.integers(60, H - 60))
        cx = int(rng.integers(60, W - 60))
        img = np.full((H, W, 3), 255, np.uint8)
        cv2.putText(img, f"IMG{i}", (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 0, 0), 2)
        cv2.circle(img, (cx, cy), 40, (0, 0, 255), -1)
        cv2.imwrite(os.path.join(img_dir, f"{i:03d}.jpg"), cv2.cvtColor(img, cv2.COLOR_RGB2BGR))

        mask = np.zeros((H, W), np.uint8)
        cv2.circle(mask, (cx, cy), 40, 255, -1)
        cv2.imwrite(os.path.join(gt_dir, f"{i:03d}.bmp"), mask)

    print(f"Wrote {args.count} image/mask pairs under {args.root}")


if __name__ == "__main__":
    main()
