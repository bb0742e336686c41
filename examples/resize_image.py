"""
Resize an image file with seam carving.

Decodes the image with Pillow, carves it with seamcarving.resize and writes
<name>_resized.<ext> next to the input. Optionally saves a before/after
figure with the first seam drawn in red.

Run:
    python examples/resize_image.py photo.jpg 300 200 --comparison
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import logging

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
from PIL import Image

from seamcarving import PixelGrid, ENERGY_KINDS, energy_map, dp_seam, resize


def load_image(path: Path) -> np.ndarray:
    """Load image as an (H, W, 3) uint8 array."""
    return np.array(Image.open(path).convert('RGB'), dtype=np.uint8)


def visualize_seam(image: np.ndarray, energy: str) -> np.ndarray:
    """Draw the first vertical seam on a copy of the image."""
    H, W, C = image.shape
    grid = PixelGrid.from_buffer(image, W, H, C)
    seam = dp_seam(energy_map(grid, energy))
    img_vis = image.copy()
    img_vis[np.arange(H), seam.numpy()] = [255, 0, 0]
    return img_vis


def save_comparison(images, titles, path: Path):
    """Save a row of images side-by-side."""
    fig, axes = plt.subplots(1, len(images), figsize=(6 * len(images), 6))
    for ax, img, title in zip(axes, images, titles):
        ax.imshow(img)
        ax.set_title(title, fontsize=11)
        ax.axis('off')
    plt.tight_layout()
    plt.savefig(path, dpi=100, bbox_inches='tight')
    plt.close(fig)
    print(f"Saved: {path}")


def main():
    parser = argparse.ArgumentParser(description="Content-aware resize with seam carving")
    parser.add_argument('image', type=Path, help="Input image")
    parser.add_argument('width', type=int, help="Target width")
    parser.add_argument('height', type=int, help="Target height")
    parser.add_argument('--energy', choices=sorted(ENERGY_KINDS), default='gradient')
    parser.add_argument('--incremental', action='store_true',
                        help="Update energy maps around each seam instead of recomputing")
    parser.add_argument('--comparison', action='store_true',
                        help="Also save a before/after figure")
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(levelname)s %(name)s: %(message)s")

    image = load_image(args.image)
    H, W, C = image.shape
    print(f"Image shape: {W} x {H} x {C}")

    pixels, new_w, new_h = resize(image, W, H, C, args.width, args.height,
                                  energy=args.energy, incremental=args.incremental)
    resized = pixels.reshape(new_h, new_w, C)

    output_path = args.image.with_name(f"{args.image.stem}_resized{args.image.suffix}")
    Image.fromarray(resized).save(output_path)
    print(f"Resized image successfully written to {output_path}")

    if args.comparison:
        save_comparison(
            [visualize_seam(image, args.energy), resized],
            [f"Original {W}x{H} (first seam)", f"Carved {new_w}x{new_h}"],
            output_path.with_name(f"{args.image.stem}_comparison.png"))


if __name__ == '__main__':
    main()
