"""
config.py - Configuration and error types for polyjoin

Contains:
- PolyjoinConfig: Column names and default parameters
- PolyjoinError and subclasses: Data problems surfaced by the pipelines
"""

from dataclasses import dataclass


@dataclass
class PolyjoinConfig:
    """Configuration for polyjoin column names and settings."""

    # Point table columns
    x_col: str = "longitude"
    y_col: str = "latitude"

    # Polygon layer label column (None -> use the layer's index)
    region_id_col: str | None = None

    # Derived column names
    within_col: str = "within"
    count_col: str = "region_count"
    neighbors_col: str = "neighbors"

    # Neighbor defaults
    knn_k: int = 3
    distance_band: tuple[float, float] = (0.0, 700.0)
    earth_radius_km: float = 6371.0088

    # Validation settings
    strict_validation: bool = False  # If True, raise errors instead of warnings

    def get_coordinate_columns(self) -> tuple[str, str]:
        """
        Get x, y column names of the point table.

        Returns
        -------
        Tuple[str, str]
            (x_column, y_column)
        """
        return self.x_col, self.y_col


class PolyjoinError(Exception):
    """Base exception for polyjoin errors."""

    pass


class ValidationError(PolyjoinError):
    """Raised when data validation fails."""

    pass


class ConsistencyError(PolyjoinError):
    """Raised when derived arrays do not line up with their source tables."""

    pass


class ColumnNotFoundError(PolyjoinError):
    """Raised when a required column is missing."""

    def __init__(self, column: str, dataframe_name: str):
        self.column = column
        self.dataframe_name = dataframe_name
        super().__init__(f"Column '{column}' not found in {dataframe_name}")


class CRSMismatchError(PolyjoinError):
    """Raised when two geometry collections do not share a CRS."""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(
            f"Coordinate reference systems differ: {_crs_name(left)} vs {_crs_name(right)}"
        )


class AmbiguousContainmentError(PolyjoinError):
    """Raised when a point is contained in more than one polygon."""

    def __init__(self, point_ids: list):
        self.point_ids = list(point_ids)
        preview = ", ".join(str(p) for p in self.point_ids[:5])
        more = "" if len(self.point_ids) <= 5 else f", ... (+{len(self.point_ids) - 5})"
        super().__init__(
            f"{len(self.point_ids)} points fall in more than one region: {preview}{more}"
        )


def _crs_name(crs) -> str:
    if crs is None:
        return "None"
    return getattr(crs, "name", None) or str(crs)
