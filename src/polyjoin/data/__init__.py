"""
data - Input layers for polyjoin

config : PolyjoinConfig and the error hierarchy
loaders : reading polygon files and point tables, CRS alignment, subsetting
core : RegionLayer container with cached centroids
"""

from .config import (
    AmbiguousContainmentError,
    ColumnNotFoundError,
    ConsistencyError,
    CRSMismatchError,
    PolyjoinConfig,
    PolyjoinError,
    ValidationError,
)
from .core import RegionLayer
from .loaders import (
    PolyjoinValidator,
    align_crs,
    check_crs_match,
    filter_polygons,
    points_to_geodataframe,
    read_points,
    read_polygons,
)

__all__ = [
    # Config / errors
    "PolyjoinConfig",
    "PolyjoinError",
    "ValidationError",
    "ConsistencyError",
    "ColumnNotFoundError",
    "CRSMismatchError",
    "AmbiguousContainmentError",
    # Container
    "RegionLayer",
    # Loaders
    "PolyjoinValidator",
    "read_polygons",
    "read_points",
    "points_to_geodataframe",
    "align_crs",
    "check_crs_match",
    "filter_polygons",
]
