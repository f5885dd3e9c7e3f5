"""Weighted geodesic distance transforms on N-dimensional grids."""

from .curved_distance import (
    CurvdistResult,
    CurvedDistanceTransform,
    curvdist,
    geodesic_distance_transform,
)
from .errors import CurvdistError, DimensionMismatch, InvalidArgument, OutOfRange
from .metrics import METHODS, MetricTable, build_metric_table
from .seeds import SeedSet

__all__ = [
    "curvdist",
    "geodesic_distance_transform",
    "CurvedDistanceTransform",
    "CurvdistResult",
    "SeedSet",
    "MetricTable",
    "METHODS",
    "build_metric_table",
    "CurvdistError",
    "InvalidArgument",
    "DimensionMismatch",
    "OutOfRange",
]
