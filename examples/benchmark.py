"""
Time full against incremental energy recomputation.

Resizes a 100x100 image to 95x95 several times with each energy path and
reports the best and mean wall time. Without an image argument a seeded
random RGB image is used.

Run:
    python examples/benchmark.py
    python examples/benchmark.py photo.jpg --target 300 200 --samples 5
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import logging
import time

import numpy as np
import torch
from PIL import Image

from seamcarving import ENERGY_KINDS, resize


def load_pixels(path, size):
    """(H, W, 3) uint8 array, from a file or random."""
    if path is not None:
        return np.array(Image.open(path).convert('RGB'), dtype=np.uint8)
    gen = torch.Generator().manual_seed(0)
    return torch.randint(0, 256, (size, size, 3), dtype=torch.uint8, generator=gen).numpy()


def time_resize(image, target, energy, incremental, samples):
    H, W, C = image.shape
    times = []
    out = None
    for _ in range(samples):
        t0 = time.time()
        out, _, _ = resize(image, W, H, C, *target, energy=energy, incremental=incremental)
        times.append(time.time() - t0)
    return out, times


def main():
    parser = argparse.ArgumentParser(description="Benchmark seam carving energy paths")
    parser.add_argument('image', type=Path, nargs='?', help="Input image (random if omitted)")
    parser.add_argument('--size', type=int, default=100, help="Random image side length")
    parser.add_argument('--target', type=int, nargs=2, metavar=('WIDTH', 'HEIGHT'))
    parser.add_argument('--samples', type=int, default=20)
    parser.add_argument('--energy', choices=sorted(ENERGY_KINDS), default='gradient')
    parser.add_argument('--log-level', default='WARNING')
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")

    image = load_pixels(args.image, args.size)
    H, W, _ = image.shape
    target = tuple(args.target) if args.target else (W - 5, H - 5)
    print(f"{W}x{H} to {target[0]}x{target[1]}, {args.samples} samples, {args.energy} energy")

    results = {}
    for incremental in (False, True):
        label = 'incremental' if incremental else 'full'
        out, times = time_resize(image, target, args.energy, incremental, args.samples)
        results[label] = out
        print(f"  {label:<12} best {min(times) * 1000:8.1f} ms   mean {np.mean(times) * 1000:8.1f} ms")

    if not np.array_equal(results['full'], results['incremental']):
        print("Warning: full and incremental outputs differ")


if __name__ == '__main__':
    main()
