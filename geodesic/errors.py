"""Exception taxonomy for the curved-space distance transform.

Every error is raised while the transform is being set up, before any
relaxation work starts, so a failing call never returns partial results.
"""

from __future__ import annotations


class CurvdistError(Exception):
    """Base class for all errors raised by :mod:`geodesic`."""


class InvalidArgument(CurvdistError, ValueError):
    """An argument has an unusable value (unknown method, complex grid, ...)."""


class DimensionMismatch(CurvdistError, ValueError):
    """Seed arrays do not line up with the grid or with each other."""


class OutOfRange(CurvdistError, IndexError):
    """A seed index or coordinate falls outside the grid."""


__all__ = [
    "CurvdistError",
    "InvalidArgument",
    "DimensionMismatch",
    "OutOfRange",
]
