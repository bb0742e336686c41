"""
Pixel grid that seams are carved from.

Pixels are stored channel-first as a (C, H, W) tensor in the dtype of the
buffer they came from. Column operations work on the tensor directly; row
operations run the same code on the transposed view.
"""

from typing import Sequence, Tuple, Union

import numpy as np
import torch

from .errors import DegenerateGrid, OutOfRangeIndex, SeamLengthMismatch, ShapeError

Buffer = Union[bytes, bytearray, memoryview, np.ndarray, torch.Tensor, Sequence]


def delete_seam_entries(tensor: torch.Tensor, seam: torch.Tensor) -> torch.Tensor:
    """
    Drop entry seam[r] from every row r of a (..., H, W) tensor.

    Args:
        tensor: Tensor whose last two dimensions are (H, W)
        seam: (H,) column index per row

    Returns:
        Tensor of shape (..., H, W - 1)
    """
    *lead, H, W = tensor.shape
    keep = torch.ones(H, W, dtype=torch.bool, device=tensor.device)
    keep[torch.arange(H, device=tensor.device), seam] = False
    return tensor[..., keep].reshape(*lead, H, W - 1)


def insert_seam_entries(tensor: torch.Tensor, seam: torch.Tensor,
                        values: torch.Tensor) -> torch.Tensor:
    """
    Insert values[..., r] at column seam[r] of every row r, shifting the rest right.

    Args:
        tensor: Tensor whose last two dimensions are (H, W)
        seam: (H,) column index per row, in [0, W]
        values: Tensor of shape (..., H)

    Returns:
        Tensor of shape (..., H, W + 1)
    """
    *lead, H, W = tensor.shape
    slot = torch.zeros(H, W + 1, dtype=torch.bool, device=tensor.device)
    slot[torch.arange(H, device=tensor.device), seam] = True
    out = tensor.new_empty((*lead, H, W + 1))
    out[..., slot] = values.to(tensor.dtype)
    out[..., ~slot] = tensor.reshape(*lead, H * W)
    return out


def _neighbour_average(before: torch.Tensor, at: torch.Tensor) -> torch.Tensor:
    if before.is_floating_point():
        return (before + at) / 2
    summed = before.to(torch.int64) + at.to(torch.int64)
    return torch.div(summed, 2, rounding_mode='floor').to(before.dtype)


def _insert_columns(data: torch.Tensor, seam: torch.Tensor) -> torch.Tensor:
    # New pixel sits between data[seam - 1] and data[seam]; at column 0 both are the same pixel
    rows = torch.arange(data.shape[1], device=data.device)
    at = data[:, rows, seam]
    before = data[:, rows, (seam - 1).clamp(min=0)]
    return insert_seam_entries(data, seam, _neighbour_average(before, at))


def _flatten_buffer(pixels: Buffer) -> torch.Tensor:
    if isinstance(pixels, torch.Tensor):
        return pixels.detach().reshape(-1).clone()
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        return torch.from_numpy(np.frombuffer(pixels, dtype=np.uint8).copy())
    if isinstance(pixels, np.ndarray):
        return torch.from_numpy(np.ascontiguousarray(pixels).reshape(-1).copy())
    return torch.from_numpy(np.asarray(list(pixels)).reshape(-1))


class PixelGrid:
    """
    A W x H grid of pixels with a fixed channel count.

    The grid owns its tensor. Seam operations replace ``data`` in place and
    never leave a dimension at zero.
    """

    def __init__(self, data: torch.Tensor):
        if data.dim() == 2:
            data = data.unsqueeze(0)
        if data.dim() != 3:
            raise ShapeError(f"Expected (C, H, W) or (H, W) tensor, got shape {tuple(data.shape)}")
        if min(data.shape) < 1:
            raise ShapeError(f"Grid dimensions must be >= 1, got shape {tuple(data.shape)}")
        self.data = data

    @classmethod
    def from_buffer(cls, pixels: Buffer, width: int, height: int,
                    channels: int) -> 'PixelGrid':
        """
        Build a grid from an interleaved row-major buffer.

        Args:
            pixels: H * W * C values; bytes-like buffers are read as uint8
            width: Grid width W
            height: Grid height H
            channels: Values per pixel C

        Returns:
            PixelGrid holding a copy of the buffer
        """
        for name, value in (('width', width), ('height', height), ('channels', channels)):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise ShapeError(f"{name} must be a positive integer, got {value!r}")
        width, height, channels = int(width), int(height), int(channels)

        flat = _flatten_buffer(pixels)
        expected = width * height * channels
        if flat.numel() != expected:
            raise ShapeError(
                f"Buffer holds {flat.numel()} values, expected "
                f"{width} x {height} x {channels} = {expected}")

        data = flat.reshape(height, width, channels).permute(2, 0, 1).contiguous()
        return cls(data)

    def to_buffer(self) -> torch.Tensor:
        """Flat interleaved (H * W * C,) tensor in row-major order."""
        return self.data.permute(1, 2, 0).reshape(-1)

    @property
    def channels(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width)"""
        return self.height, self.width

    @property
    def dtype(self) -> torch.dtype:
        return self.data.dtype

    def clone(self) -> 'PixelGrid':
        return PixelGrid(self.data.clone())

    def transposed(self) -> 'PixelGrid':
        """Grid with rows and columns swapped; shares storage with this one."""
        return PixelGrid(self.data.transpose(1, 2))

    def __getitem__(self, pos: Tuple[int, int]) -> torch.Tensor:
        row, col = pos
        self._check_index(row, self.height, 'row')
        self._check_index(col, self.width, 'column')
        return self.data[:, row, col]

    def row(self, r: int) -> torch.Tensor:
        """Pixels of row r as a (W, C) tensor."""
        self._check_index(r, self.height, 'row')
        return self.data[:, r, :].T

    def column(self, c: int) -> torch.Tensor:
        """Pixels of column c as a (H, C) tensor."""
        self._check_index(c, self.width, 'column')
        return self.data[:, :, c].T

    def remove_column(self, seam) -> 'PixelGrid':
        """Remove pixel seam[r] from each row r; width shrinks by one."""
        seam = self._check_seam(seam, self.height, self.width, 'column')
        if self.width == 1:
            raise DegenerateGrid("Cannot remove the last column of a grid")
        self.data = delete_seam_entries(self.data, seam)
        return self

    def remove_row(self, seam) -> 'PixelGrid':
        """Remove pixel seam[c] from each column c; height shrinks by one."""
        seam = self._check_seam(seam, self.width, self.height, 'row')
        if self.height == 1:
            raise DegenerateGrid("Cannot remove the last row of a grid")
        self.data = delete_seam_entries(self.data.transpose(1, 2), seam).transpose(1, 2).contiguous()
        return self

    def insert_column(self, seam) -> 'PixelGrid':
        """Insert an averaged pixel at seam[r] in each row r; width grows by one."""
        seam = self._check_seam(seam, self.height, self.width, 'column')
        self.data = _insert_columns(self.data, seam)
        return self

    def insert_row(self, seam) -> 'PixelGrid':
        """Insert an averaged pixel at seam[c] in each column c; height grows by one."""
        seam = self._check_seam(seam, self.width, self.height, 'row')
        self.data = _insert_columns(self.data.transpose(1, 2), seam).transpose(1, 2).contiguous()
        return self

    def _check_seam(self, seam, length: int, bound: int, axis: str) -> torch.Tensor:
        seam = torch.as_tensor(seam, dtype=torch.long, device=self.data.device)
        if seam.dim() != 1 or seam.numel() != length:
            raise SeamLengthMismatch(
                f"Seam of shape {tuple(seam.shape)} does not match grid "
                f"{self.width}x{self.height}; expected {length} {axis} indices")
        if seam.min().item() < 0 or seam.max().item() >= bound:
            raise OutOfRangeIndex(
                f"Seam {axis} index outside [0, {bound}): "
                f"min={seam.min().item()}, max={seam.max().item()}")
        return seam

    @staticmethod
    def _check_index(index: int, bound: int, axis: str):
        if not 0 <= index < bound:
            raise OutOfRangeIndex(f"{axis} {index} outside [0, {bound})")

    def __repr__(self):
        return (f"PixelGrid(width={self.width}, height={self.height}, "
                f"channels={self.channels}, dtype={self.dtype})")
