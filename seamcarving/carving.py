"""
High-level carving functions that orchestrate the seam carving loop.

Each iteration recomputes the energy map, finds one seam and removes or
inserts it, until the grid reaches the target width and height. When both
dimensions need work, the Resizer alternates strictly between them (one
width step, then one height step). Carving all columns first and then all
rows gives visibly different output for non-square resizes.
"""

import enum
import logging
from collections import Counter
from typing import Optional, Tuple

import numpy as np
import torch

from .energy import DEFAULT_ENERGY, ENERGY_KINDS, energy_map, update_energy
from .errors import InvalidTarget
from .grid import Buffer, PixelGrid, delete_seam_entries, insert_seam_entries
from .seam import collect_seams, dp_seam, insert_seam, remove_seam

logger = logging.getLogger(__name__)

# Seam direction that changes each dimension
_DIRECTIONS = {'width': 'vertical', 'height': 'horizontal'}
_ORTHOGONAL = {'vertical': 'horizontal', 'horizontal': 'vertical'}


class AxisState(enum.Enum):
    SHRINKING = 'shrinking'
    GROWING = 'growing'
    DONE = 'done'


def _axis_state(current: int, target: int) -> AxisState:
    if current > target:
        return AxisState.SHRINKING
    if current < target:
        return AxisState.GROWING
    return AxisState.DONE


def _check_target(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidTarget(f"Target {name} must be a positive integer, got {value!r}")
    return int(value)


def _follow_crossing(planned: torch.Tensor, seam: torch.Tensor, operation: str) -> torch.Tensor:
    """
    Keep a planned seam aligned after a seam of the other direction was applied.

    The planned seam runs across the lines the other seam removed or
    duplicated. It loses, or repeats, its entry on the first line where the
    two seams cross.

    Args:
        planned: Planned seam, one index per line
        seam: Removed or inserted seam of the other direction, indexed by the
            values of ``planned``
        operation: 'remove' or 'insert'

    Returns:
        Planned seam with one entry fewer or one more
    """
    lines = torch.arange(planned.numel(), device=planned.device)
    # Holds at the last line at the latest, since seam values are line indices
    crossing = torch.nonzero(seam[planned] <= lines)[0]
    if operation == 'remove':
        return delete_seam_entries(planned.unsqueeze(0), crossing).squeeze(0)
    return insert_seam_entries(planned.unsqueeze(0), crossing, planned[crossing]).squeeze(0)


class Resizer:
    """
    Drives a grid to a target size one seam at a time.

    Width and height each move through SHRINKING/GROWING to DONE on their own.
    Every call to step() leaves the grid in a valid shape, so a caller may
    stop between steps and keep the partial result.

    Args:
        grid: PixelGrid to resize; carved in place
        target_width: Output width, >= 1
        target_height: Output height, >= 1
        energy: Energy kind, see energy.ENERGY_KINDS
        incremental: Update the energy map around each seam instead of
            recomputing it; the output is the same
    """

    def __init__(self, grid: PixelGrid, target_width: int, target_height: int,
                 energy: str = DEFAULT_ENERGY, incremental: bool = False):
        self.target_width = _check_target('width', target_width)
        self.target_height = _check_target('height', target_height)
        if energy not in ENERGY_KINDS:
            raise ValueError(f"Invalid energy kind: {energy}")
        self.grid = grid
        self.energy = energy
        self.incremental = incremental

        self.iterations = 0
        self.operations = Counter()
        self._next_axis = 'width'
        self._energy_map: Optional[torch.Tensor] = None
        self._plans = {'vertical': [], 'horizontal': []}

    @property
    def width_state(self) -> AxisState:
        return _axis_state(self.grid.width, self.target_width)

    @property
    def height_state(self) -> AxisState:
        return _axis_state(self.grid.height, self.target_height)

    @property
    def done(self) -> bool:
        return (self.width_state is AxisState.DONE
                and self.height_state is AxisState.DONE)

    def _pick_axis(self) -> str:
        pending = [axis for axis, state in (('width', self.width_state),
                                             ('height', self.height_state))
                   if state is not AxisState.DONE]
        if len(pending) == 1:
            return pending[0]
        axis = self._next_axis
        self._next_axis = 'height' if axis == 'width' else 'width'
        return axis

    def _current_energy(self) -> torch.Tensor:
        if self._energy_map is not None:
            return self._energy_map
        energy = energy_map(self.grid, self.energy)
        if self.incremental:
            self._energy_map = energy
        return energy

    def _after_operation(self, energy: Optional[torch.Tensor], seam: torch.Tensor,
                         direction: str, operation: str):
        other = _ORTHOGONAL[direction]
        self._plans[other] = [_follow_crossing(planned, seam, operation)
                              for planned in self._plans[other]]
        if self.incremental and energy is not None:
            self._energy_map = update_energy(energy, self.grid, seam, direction,
                                             operation, self.energy)
        else:
            self._energy_map = None
        self.operations[(direction, operation)] += 1

    def _shrink(self, direction: str):
        energy = self._current_energy()
        seam = dp_seam(energy, direction)
        remove_seam(self.grid, seam, direction)
        self._after_operation(energy, seam, direction, 'remove')

    def _grow(self, direction: str, missing: int):
        plan = self._plans[direction]
        if not plan:
            lines = self.grid.width if direction == 'vertical' else self.grid.height
            plan.extend(collect_seams(self.grid, min(missing, lines), direction, self.energy))
            logger.debug(f"Planned {len(plan)} {direction} seam insertions")

        seam = plan.pop(0)
        energy = self._energy_map
        insert_seam(self.grid, seam, direction)
        # Planned seams that cross may end up two apart on adjacent lines
        for i, other in enumerate(plan):
            plan[i] = other + (other >= seam).long()
        self._after_operation(energy, seam, direction, 'insert')

    def step(self) -> bool:
        """
        Perform one carving iteration.

        Returns:
            True if a seam was removed or inserted, False once the grid
            already has the target size
        """
        if self.done:
            return False

        axis = self._pick_axis()
        direction = _DIRECTIONS[axis]
        if axis == 'width':
            state, missing = self.width_state, self.target_width - self.grid.width
        else:
            state, missing = self.height_state, self.target_height - self.grid.height

        if state is AxisState.SHRINKING:
            self._shrink(direction)
        else:
            self._grow(direction, missing)

        self.iterations += 1
        logger.debug(f"Step {self.iterations}: {state.value} {axis} with a {direction} seam, "
                     f"grid now {self.grid.width}x{self.grid.height}")
        return True

    def run(self) -> PixelGrid:
        """Step until both dimensions reach their target; returns the grid."""
        while self.step():
            pass
        return self.grid


def _match_buffer(flat: torch.Tensor, like: Buffer):
    """Return flat pixels in the same kind of container the caller passed in."""
    if isinstance(like, torch.Tensor):
        return flat
    if isinstance(like, (bytes, bytearray, memoryview)):
        return flat.to(torch.uint8).numpy().tobytes()
    if isinstance(like, np.ndarray):
        return flat.numpy().astype(like.dtype, copy=False)
    return flat.tolist()


def resize(pixels: Buffer, width: int, height: int, channels: int,
           target_width: int, target_height: int, energy: str = DEFAULT_ENERGY,
           incremental: bool = False) -> Tuple[Buffer, int, int]:
    """
    Content-aware resize of a raw interleaved pixel buffer.

    Both ShapeError (buffer does not match width x height x channels) and
    InvalidTarget (zero or negative target) are raised before any carving.

    Args:
        pixels: Row-major H * W * C buffer (bytes, numpy array, tensor or sequence)
        width: Input width
        height: Input height
        channels: Values per pixel
        target_width: Output width
        target_height: Output height
        energy: Energy kind, see energy.ENERGY_KINDS
        incremental: Update energy maps incrementally

    Returns:
        (buffer, new_width, new_height), the buffer of the same kind as ``pixels``
    """
    grid = PixelGrid.from_buffer(pixels, width, height, channels)
    resizer = Resizer(grid, target_width, target_height, energy=energy,
                      incremental=incremental)

    logger.info(f"Resizing {width}x{height} -> {resizer.target_width}x{resizer.target_height}")
    resizer.run()
    logger.info(f"Resized in {resizer.iterations} steps: {dict(resizer.operations)}")

    return _match_buffer(grid.to_buffer(), pixels), grid.width, grid.height


def carve_image(image: torch.Tensor, target_width: int, target_height: int,
                energy: str = DEFAULT_ENERGY, incremental: bool = False) -> torch.Tensor:
    """
    Seam carve an image tensor to a new size.

    Args:
        image: Image tensor (C, H, W) or (H, W)
        target_width: Output width
        target_height: Output height
        energy: Energy kind
        incremental: Update energy maps incrementally

    Returns:
        Carved image with the same number of dimensions as ``image``
    """
    squeeze_output = image.dim() == 2
    grid = PixelGrid(image.clone())
    Resizer(grid, target_width, target_height, energy=energy,
            incremental=incremental).run()

    carved = grid.data
    if squeeze_output:
        carved = carved.squeeze(0)
    return carved
