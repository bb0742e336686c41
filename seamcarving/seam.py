"""
Seam computation and application.

Seams are found with the dynamic-programming recurrence of Avidan & Shamir
2007: every cell of the cost table holds the cheapest path reaching it from
the top row, and the seam is traced back from the cheapest bottom cell.
Ties always go to the smaller index, so the same energy gives the same seam.
"""

from typing import List, Tuple

import torch

from .energy import DEFAULT_ENERGY, energy_map
from .errors import DegenerateGrid
from .grid import PixelGrid, delete_seam_entries


def cumulative_cost(energy: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Fill the cumulative cost table for vertical seams.

    C[0] = E[0]
    C[i, j] = E[i, j] + min(C[i-1, j-1], C[i-1, j], C[i-1, j+1])

    Neighbours outside the grid count as +inf.

    Args:
        energy: Energy map (H, W)

    Returns:
        (cost, backtrack): cost table (H, W) and, for each cell, the column of
        its predecessor in the row above
    """
    if energy.dim() != 2:
        raise ValueError(f"Energy must be a 2D tensor, got shape {tuple(energy.shape)}")
    H, W = energy.shape
    if H == 0 or W == 0:
        raise DegenerateGrid(f"Cannot search seams in a {W}x{H} energy map")

    cost = energy.to(torch.float64).clone()
    backtrack = torch.zeros(H, W, dtype=torch.long, device=energy.device)
    cols = torch.arange(W, device=energy.device)
    inf = torch.tensor(float('inf'), dtype=cost.dtype, device=cost.device)

    for i in range(1, H):
        M_prev = cost[i - 1]
        M_left = inf.expand(W).clone()
        M_left[1:] = M_prev[:-1]
        M_right = inf.expand(W).clone()
        M_right[:-1] = M_prev[1:]

        # Candidates ordered by column, so min() picks the leftmost on ties
        candidates = torch.stack([M_left, M_prev, M_right])
        best, offset = torch.min(candidates, dim=0)
        cost[i] = cost[i] + best
        backtrack[i] = cols + offset - 1

    return cost, backtrack


def dp_seam(energy: torch.Tensor, direction: str = 'vertical') -> torch.Tensor:
    """
    Compute the minimum-energy seam.

    Args:
        energy: Energy map (H, W)
        direction: 'vertical' or 'horizontal'

    Returns:
        Seam indices - for vertical: (H,) with column index per row
                      for horizontal: (W,) with row index per column
    """
    if direction == 'vertical':
        cost, backtrack = cumulative_cost(energy)
    elif direction == 'horizontal':
        cost, backtrack = cumulative_cost(energy.T)
    else:
        raise ValueError(f"Invalid direction: {direction}")

    H = cost.shape[0]
    seam = torch.zeros(H, dtype=torch.long, device=cost.device)
    seam[-1] = torch.argmin(cost[-1])
    for i in range(H - 1, 0, -1):
        seam[i - 1] = backtrack[i, seam[i]]

    return seam


def seam_energy(energy: torch.Tensor, seam: torch.Tensor,
                direction: str = 'vertical') -> float:
    """Total energy along a seam."""
    seam = torch.as_tensor(seam, dtype=torch.long, device=energy.device)
    idx = torch.arange(seam.numel(), device=energy.device)
    if direction == 'vertical':
        return energy[idx, seam].sum().item()
    elif direction == 'horizontal':
        return energy[seam, idx].sum().item()
    else:
        raise ValueError(f"Invalid direction: {direction}")


def collect_seams(grid: PixelGrid, count: int, direction: str = 'vertical',
                  kind: str = DEFAULT_ENERGY) -> List[torch.Tensor]:
    """
    Find several distinct low-energy seams of one grid.

    Seams are carved one after another from a scratch copy. An index map
    carved alongside it translates each seam back to the coordinates of
    ``grid``, so the returned seams never share a pixel. Inserting them all
    spreads an enlargement over different regions instead of duplicating the
    cheapest seam over and over.

    Args:
        grid: Grid to search; left untouched
        count: Number of seams, between 1 and the size of the carved dimension
        direction: 'vertical' or 'horizontal'
        kind: Energy kind

    Returns:
        List of seams in grid coordinates, cheapest-first in discovery order
    """
    if direction == 'vertical':
        scratch = grid.clone()
    elif direction == 'horizontal':
        scratch = grid.transposed().clone()
    else:
        raise ValueError(f"Invalid direction: {direction}")

    if not 1 <= count <= scratch.width:
        raise ValueError(f"Cannot collect {count} seams across {scratch.width} lines")

    H, W = scratch.shape
    index_map = torch.arange(W, device=scratch.data.device).unsqueeze(0).expand(H, W).clone()
    rows = torch.arange(H, device=scratch.data.device)
    seams = []

    for n in range(count):
        seam = dp_seam(energy_map(scratch, kind), direction='vertical')
        seams.append(index_map[rows, seam].clone())
        if n < count - 1:
            scratch.remove_column(seam)
            index_map = delete_seam_entries(index_map, seam)

    return seams


def remove_seam(grid: PixelGrid, seam: torch.Tensor,
                direction: str = 'vertical') -> PixelGrid:
    """
    Remove a seam from a grid in place.

    Args:
        grid: PixelGrid to carve
        seam: Seam indices
        direction: 'vertical' or 'horizontal'

    Returns:
        The same grid, one column (vertical) or row (horizontal) smaller
    """
    if direction == 'vertical':
        return grid.remove_column(seam)
    elif direction == 'horizontal':
        return grid.remove_row(seam)
    else:
        raise ValueError(f"Invalid direction: {direction}")


def insert_seam(grid: PixelGrid, seam: torch.Tensor,
                direction: str = 'vertical') -> PixelGrid:
    """
    Insert a seam of neighbour-averaged pixels into a grid in place.

    The new pixel at seam[i] averages the pixels on either side of it; at
    index 0 it copies the only neighbour.

    Args:
        grid: PixelGrid to enlarge
        seam: Seam indices
        direction: 'vertical' or 'horizontal'

    Returns:
        The same grid, one column (vertical) or row (horizontal) larger
    """
    if direction == 'vertical':
        return grid.insert_column(seam)
    elif direction == 'horizontal':
        return grid.insert_row(seam)
    else:
        raise ValueError(f"Invalid direction: {direction}")
