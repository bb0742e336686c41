"""Shared test fixtures for the seam carving test suite."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import torch
import pytest
from seamcarving.grid import PixelGrid


# Grayscale 8x3 image whose cheapest vertical seam runs through the zero block
PI_ROWS = [
    [3, 1, 4, 0, 0, 0, 1, 5],
    [9, 2, 6, 0, 0, 0, 5, 3],
    [5, 8, 0, 0, 0, 9, 7, 9],
]


@pytest.fixture
def pi_grid():
    """8x3 single-channel uint8 grid."""
    return PixelGrid(torch.tensor(PI_ROWS, dtype=torch.uint8))


@pytest.fixture
def uniform_grid():
    """4x4 RGB grid where every pixel is (10, 20, 30)."""
    return make_uniform_grid(4, 4)


def make_uniform_grid(H, W, value=(10, 20, 30)):
    """Every pixel has the same value."""
    pixel = torch.tensor(value, dtype=torch.uint8).view(-1, 1, 1)
    return PixelGrid(pixel.expand(len(value), H, W).clone())


def make_random_grid(H, W, channels=3, seed=42):
    """Random uint8 grid."""
    gen = torch.Generator().manual_seed(seed)
    return PixelGrid(torch.randint(0, 256, (channels, H, W), dtype=torch.uint8, generator=gen))


def make_gradient_image(H, W, channels=3):
    """Horizontal gradient: dark left, bright right."""
    grad = torch.linspace(0, 1, W).unsqueeze(0).expand(H, W)
    if channels > 0:
        return grad.unsqueeze(0).expand(channels, H, W).clone()
    return grad


def random_connected_seam(length, bound, seed=0):
    """Random walk seam: one index per step, neighbours differ by at most 1."""
    gen = torch.Generator().manual_seed(seed)
    seam = torch.zeros(length, dtype=torch.long)
    seam[0] = torch.randint(0, bound, (1,), generator=gen).item()
    for i in range(1, length):
        step = torch.randint(-1, 2, (1,), generator=gen).item()
        seam[i] = min(max(seam[i - 1].item() + step, 0), bound - 1)
    return seam
