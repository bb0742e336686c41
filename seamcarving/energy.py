"""
Energy functions for seam carving.

The energy function determines which pixels are "important".
Low-energy seams are preferred for removal.

Energy at a pixel is the contrast between its left and right neighbours plus
the contrast between its upper and lower neighbours. Neighbours that fall
outside the grid are clamped to the pixel itself, so nothing wraps around.
"""

from typing import Union

import torch

from .grid import PixelGrid, delete_seam_entries, insert_seam_entries

DEFAULT_ENERGY = 'gradient'

# kind -> whether channel differences are squared
ENERGY_KINDS = {
    'gradient': False,
    'squared_gradient': True,
}


def _as_data(grid: Union[PixelGrid, torch.Tensor]) -> torch.Tensor:
    data = grid.data if isinstance(grid, PixelGrid) else grid
    if data.dim() == 2:
        data = data.unsqueeze(0)
    return data


def _squared(kind: str) -> bool:
    try:
        return ENERGY_KINDS[kind]
    except KeyError:
        raise ValueError(f"Invalid energy kind: {kind}") from None


def _contrast(a: torch.Tensor, b: torch.Tensor, squared: bool) -> torch.Tensor:
    diff = b.to(torch.float64) - a.to(torch.float64)
    diff = diff * diff if squared else diff.abs()
    # Fixed channel order keeps full and partial recomputes bit-identical
    total = diff[0]
    for ch in range(1, diff.shape[0]):
        total = total + diff[ch]
    return total


def _energy_at(data: torch.Tensor, rows: torch.Tensor, cols: torch.Tensor,
               squared: bool) -> torch.Tensor:
    """
    Energy of the pixels at (rows, cols).

    Args:
        data: Pixel tensor (C, H, W)
        rows: Row indices, broadcastable against cols
        cols: Column indices

    Returns:
        Float64 energies with the broadcast shape of rows and cols
    """
    _, H, W = data.shape
    left = data[:, rows, (cols - 1).clamp(min=0)]
    right = data[:, rows, (cols + 1).clamp(max=W - 1)]
    above = data[:, (rows - 1).clamp(min=0), cols]
    below = data[:, (rows + 1).clamp(max=H - 1), cols]
    return _contrast(left, right, squared) + _contrast(above, below, squared)


def energy_map(grid: Union[PixelGrid, torch.Tensor], kind: str = DEFAULT_ENERGY) -> torch.Tensor:
    """
    Compute the full energy map of a grid.

    Args:
        grid: PixelGrid, pixel tensor (C, H, W) or grayscale (H, W)
        kind: 'gradient' (absolute differences) or 'squared_gradient'

    Returns:
        Float64 energy map (H, W)
    """
    squared = _squared(kind)
    data = _as_data(grid)
    _, H, W = data.shape
    rows = torch.arange(H, device=data.device).unsqueeze(1).expand(H, W)
    cols = torch.arange(W, device=data.device).unsqueeze(0).expand(H, W)
    return _energy_at(data, rows, cols, squared)


def gradient_energy(grid: Union[PixelGrid, torch.Tensor]) -> torch.Tensor:
    """
    Sum of absolute channel differences across each pixel:

    E(i,j) = sum_c |I(i,j+1) - I(i,j-1)| + |I(i+1,j) - I(i-1,j)|
    """
    return energy_map(grid, 'gradient')


def squared_gradient_energy(grid: Union[PixelGrid, torch.Tensor]) -> torch.Tensor:
    """Like gradient_energy, with squared channel differences."""
    return energy_map(grid, 'squared_gradient')


def _seam_band(seam: torch.Tensor, width: int, reach: int) -> torch.Tensor:
    """Mask (H, width) of cells whose neighbourhood a seam operation may have changed."""
    prev = torch.cat([seam[:1], seam[:-1]])
    nxt = torch.cat([seam[1:], seam[-1:]])
    stacked = torch.stack([prev, seam, nxt])
    lo = stacked.min(dim=0).values - 1
    hi = stacked.max(dim=0).values + reach
    cols = torch.arange(width, device=seam.device).unsqueeze(0)
    return (cols >= lo.unsqueeze(1)) & (cols <= hi.unsqueeze(1))


def _update_vertical(energy: torch.Tensor, data: torch.Tensor, seam: torch.Tensor,
                     operation: str, squared: bool) -> torch.Tensor:
    if operation == 'remove':
        shifted = delete_seam_entries(energy, seam)
        reach = 0
    elif operation == 'insert':
        shifted = insert_seam_entries(energy, seam, torch.zeros_like(energy[:, 0]))
        reach = 1
    else:
        raise ValueError(f"Invalid operation: {operation}")

    rows, cols = _seam_band(seam, data.shape[2], reach).nonzero(as_tuple=True)
    shifted[rows, cols] = _energy_at(data, rows, cols, squared)
    return shifted


def update_energy(energy: torch.Tensor, grid: Union[PixelGrid, torch.Tensor],
                  seam: torch.Tensor, direction: str = 'vertical',
                  operation: str = 'remove', kind: str = DEFAULT_ENERGY) -> torch.Tensor:
    """
    Re-derive the energy map after a seam operation without a full recompute.

    Only cells next to the seam change: their horizontal neighbours moved, or
    the rows above and below were shifted by a different amount. Everything
    else is copied from the previous map, shifted the same way the grid was.
    The result is bit-identical to energy_map(grid, kind).

    Args:
        energy: Energy map (H, W) of the grid before the operation
        grid: Grid after the seam was removed or inserted
        seam: Seam that was applied, in pre-operation coordinates
        direction: 'vertical' or 'horizontal'
        operation: 'remove' or 'insert'
        kind: Energy kind the previous map was computed with

    Returns:
        Energy map of the updated grid
    """
    squared = _squared(kind)
    data = _as_data(grid)
    seam = torch.as_tensor(seam, dtype=torch.long, device=data.device)

    if direction == 'vertical':
        return _update_vertical(energy, data, seam, operation, squared)
    elif direction == 'horizontal':
        updated = _update_vertical(energy.T, data.transpose(1, 2), seam, operation, squared)
        return updated.T.contiguous()
    else:
        raise ValueError(f"Invalid direction: {direction}")
