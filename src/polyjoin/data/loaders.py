"""
loaders.py - Reading polygon layers and point tables

Covers the "load" half of both pipelines: reading the polygon file and the
point table, wrapping coordinates as point geometries, aligning the
coordinate reference systems and cutting a geographic subset.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd

from .config import (
    ColumnNotFoundError,
    CRSMismatchError,
    PolyjoinConfig,
    ValidationError,
)

logger = logging.getLogger(__name__)


class PolyjoinValidator:
    """Handles validation of input tables."""

    def __init__(self, config: PolyjoinConfig):
        self.config = config

    def validate_columns(self, df: pd.DataFrame, required_cols: list[str], df_name: str) -> None:
        """Validate that required columns exist. Missing columns always raise."""
        missing = [col for col in required_cols if col not in df.columns]
        if missing:
            raise ColumnNotFoundError(missing[0], df_name)

    def validate_coordinates(self, df: pd.DataFrame, x_col: str, y_col: str, df_name: str) -> np.ndarray:
        """
        Check coordinate columns for missing values.

        Returns
        -------
        np.ndarray
            Boolean mask of rows with both coordinates present.
        """
        valid = df[x_col].notna().to_numpy() & df[y_col].notna().to_numpy()
        n_missing = int((~valid).sum())
        if n_missing:
            msg = f"{n_missing} rows in {df_name} have missing coordinates"
            if self.config.strict_validation:
                raise ValidationError(msg)
            logger.warning(msg)
        return valid


def _require_file(path) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return path


def read_polygons(path, id_col: Optional[str] = None, **kwargs) -> gpd.GeoDataFrame:
    """
    Read a polygon layer from a vector file (shapefile, GeoJSON, GeoPackage...).

    Parameters
    ----------
    path : str or Path
        File to read.
    id_col : str, optional
        Attribute to use as the region index. Must be unique.
    **kwargs
        Passed to ``geopandas.read_file``.

    Returns
    -------
    gpd.GeoDataFrame
    """
    path = _require_file(path)
    gdf = gpd.read_file(path, **kwargs)

    if id_col is not None:
        if id_col not in gdf.columns:
            raise ColumnNotFoundError(id_col, str(path))
        if gdf[id_col].duplicated().any():
            raise ValidationError(f"Column '{id_col}' has duplicate values and cannot index regions")
        gdf = gdf.set_index(id_col, drop=False)

    print(f"  ✓ Read {len(gdf):,} polygons from {path.name} (crs={gdf.crs})")
    return gdf


def read_points(path, config: Optional[PolyjoinConfig] = None, **kwargs) -> pd.DataFrame:
    """
    Read a point table from a delimited text file.

    The coordinate columns named by ``config`` must be present.
    """
    config = config or PolyjoinConfig()
    path = _require_file(path)
    df = pd.read_csv(path, **kwargs)

    PolyjoinValidator(config).validate_columns(df, list(config.get_coordinate_columns()), str(path))

    print(f"  ✓ Read {len(df):,} rows from {path.name}")
    return df


def points_to_geodataframe(df: pd.DataFrame,
                           x_col: Optional[str] = None,
                           y_col: Optional[str] = None,
                           crs=None,
                           config: Optional[PolyjoinConfig] = None) -> gpd.GeoDataFrame:
    """
    Wrap the coordinate columns of a table as point geometries.

    Rows with a missing coordinate get an empty geometry and will match no
    region. Under ``strict_validation`` they raise instead.

    Parameters
    ----------
    df : pd.DataFrame
        Point table.
    x_col, y_col : str, optional
        Coordinate columns. Default to the config's ``x_col``/``y_col``.
    crs : optional
        CRS to assign. Usually left as None and set by ``align_crs``.
    config : PolyjoinConfig, optional

    Returns
    -------
    gpd.GeoDataFrame
    """
    config = config or PolyjoinConfig()
    x_col = x_col or config.x_col
    y_col = y_col or config.y_col

    validator = PolyjoinValidator(config)
    validator.validate_columns(df, [x_col, y_col], "point table")
    valid = validator.validate_coordinates(df, x_col, y_col, "point table")

    geometry = gpd.points_from_xy(df[x_col], df[y_col])
    if not valid.all():
        geometry = np.where(valid, np.asarray(geometry, dtype=object), None)

    return gpd.GeoDataFrame(df.copy(), geometry=geometry, crs=crs)


def check_crs_match(left: gpd.GeoDataFrame, right: gpd.GeoDataFrame) -> None:
    """Raise CRSMismatchError unless both collections share a CRS."""
    if left.crs is None and right.crs is None:
        return
    if left.crs is None or right.crs is None or left.crs != right.crs:
        raise CRSMismatchError(left.crs, right.crs)


def align_crs(points: gpd.GeoDataFrame, polygons: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Put ``points`` into the CRS of ``polygons``.

    - points without a CRS get the polygon CRS assigned (no transform);
    - points in a different CRS are reprojected;
    - polygons without a CRS but points with one is an error;
    - neither having a CRS is allowed with a warning.

    Returns
    -------
    gpd.GeoDataFrame
        Points in the polygon CRS (a new frame when anything changed).
    """
    if polygons.crs is None:
        if points.crs is None:
            print("  ⚠ Neither layer has a CRS; assuming both use the same frame")
            return points
        raise CRSMismatchError(points.crs, polygons.crs)

    if points.crs is None:
        print(f"  → Assigning polygon CRS to points: {polygons.crs.name}")
        return points.set_crs(polygons.crs)

    if points.crs != polygons.crs:
        print(f"  → Reprojecting points: {points.crs.name} → {polygons.crs.name}")
        return points.to_crs(polygons.crs)

    return points


def filter_polygons(gdf: gpd.GeoDataFrame,
                    column: Optional[str] = None,
                    values: Optional[Iterable] = None,
                    bbox: Optional[Tuple[float, float, float, float]] = None) -> gpd.GeoDataFrame:
    """
    Cut a geographic subset out of a polygon layer.

    Parameters
    ----------
    gdf : gpd.GeoDataFrame
        Polygon layer.
    column : str, optional
        Attribute to filter on (e.g. a state code).
    values : iterable, optional
        Values of ``column`` to keep.
    bbox : tuple, optional
        (minx, miny, maxx, maxy). Polygons intersecting the box are kept.

    Returns
    -------
    gpd.GeoDataFrame
    """
    subset = gdf

    if column is not None:
        if column not in gdf.columns:
            raise ColumnNotFoundError(column, "polygon layer")
        if values is None:
            raise ValueError("values must be given when filtering on a column")
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            values = [values]
        subset = subset[subset[column].isin(list(values))]

    if bbox is not None:
        minx, miny, maxx, maxy = bbox
        if minx > maxx or miny > maxy:
            raise ValueError(f"Invalid bounding box: {bbox}")
        subset = subset.cx[minx:maxx, miny:maxy]

    if len(subset) == 0:
        raise ValidationError("Polygon subset is empty")

    print(f"  ✓ Kept {len(subset):,} of {len(gdf):,} polygons")
    return subset
