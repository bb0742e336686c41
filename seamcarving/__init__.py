"""
Content-aware image resizing by seam carving.

Based on "Seam Carving for Content-Aware Image Resizing"
by Avidan & Shamir, 2007.
"""

__version__ = "0.1.0"

from .errors import (
    SeamCarvingError,
    ShapeError,
    InvalidTarget,
    CarvingInvariantError,
    OutOfRangeIndex,
    SeamLengthMismatch,
    DegenerateGrid,
)
from .grid import PixelGrid
from .energy import (ENERGY_KINDS, energy_map, gradient_energy, squared_gradient_energy,
                     update_energy)
from .seam import (cumulative_cost, dp_seam, seam_energy, collect_seams, remove_seam,
                   insert_seam)
from .carving import AxisState, Resizer, resize, carve_image

__all__ = [
    'SeamCarvingError',
    'ShapeError',
    'InvalidTarget',
    'CarvingInvariantError',
    'OutOfRangeIndex',
    'SeamLengthMismatch',
    'DegenerateGrid',
    'PixelGrid',
    'ENERGY_KINDS',
    'energy_map',
    'gradient_energy',
    'squared_gradient_energy',
    'update_energy',
    'cumulative_cost',
    'dp_seam',
    'seam_energy',
    'collect_seams',
    'remove_seam',
    'insert_seam',
    'AxisState',
    'Resizer',
    'resize',
    'carve_image',
]
