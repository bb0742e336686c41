"""
Exceptions raised by the seam carving core.

Only ShapeError and InvalidTarget are caller mistakes. Everything under
CarvingInvariantError means the carving loop lost track of the grid shape.
"""


class SeamCarvingError(Exception):
    """Base class for every error raised by this package."""


class ShapeError(SeamCarvingError, ValueError):
    """Pixel buffer length does not match the declared width, height and channels."""


class InvalidTarget(SeamCarvingError, ValueError):
    """Requested output width or height is not a positive integer."""


class CarvingInvariantError(SeamCarvingError, RuntimeError):
    """Internal bookkeeping error; never expected with correct orchestration."""


class OutOfRangeIndex(CarvingInvariantError, IndexError):
    """A seam or pixel coordinate lies outside the current grid."""


class SeamLengthMismatch(CarvingInvariantError):
    """Seam length differs from the dimension orthogonal to the operation."""


class DegenerateGrid(CarvingInvariantError):
    """A grid with a zero-sized dimension reached a carving operation."""
