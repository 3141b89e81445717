"""
core.py - RegionLayer, the polygon layer container

Holds one polygon layer with a master region index and computes the
representative point (centroid) of every polygon exactly once, so the
k-nearest and distance-band neighbor rules see identical centroids.
"""
from __future__ import annotations

import warnings
from typing import Dict, Optional, Union

import geopandas as gpd
import numpy as np
import pandas as pd

from .config import ConsistencyError, PolyjoinConfig
from .loaders import read_polygons


class RegionLayer:
    """
    Polygon layer with cached centroids.

    Attributes
    ----------
    _gdf : gpd.GeoDataFrame
        Polygon records, one row per region
    _region_index : pd.Index
        Region labels (single source of truth for row order)
    _centroids : gpd.GeoSeries or None
        Cached centroids, filled on first access
    """

    def __init__(self,
                 gdf: gpd.GeoDataFrame,
                 id_col: Optional[str] = None,
                 config: Optional[PolyjoinConfig] = None):
        self.config = config or PolyjoinConfig()
        id_col = id_col or self.config.region_id_col

        if not isinstance(gdf, gpd.GeoDataFrame):
            raise TypeError(f"Expected a GeoDataFrame, got {type(gdf).__name__}")

        if id_col is not None and gdf.index.name != id_col:
            if id_col not in gdf.columns:
                raise ValueError(f"Column '{id_col}' not found in polygon layer")
            gdf = gdf.set_index(id_col, drop=False)

        if not gdf.index.is_unique:
            raise ValueError("Region index must be unique")

        self._gdf = gdf
        self._region_index = gdf.index
        self._centroids = None

        missing = gdf.geometry.isna() | gdf.geometry.is_empty
        if missing.any():
            print(f"  ⚠ {int(missing.sum())} regions have missing/empty geometry")
        invalid = ~missing & ~gdf.geometry.is_valid
        if invalid.any():
            print(f"  ⚠ {int(invalid.sum())} regions have invalid geometry")

    @classmethod
    def from_file(cls, path, id_col: Optional[str] = None,
                  config: Optional[PolyjoinConfig] = None, **kwargs) -> 'RegionLayer':
        """Read a polygon file and wrap it."""
        config = config or PolyjoinConfig()
        gdf = read_polygons(path, id_col=id_col or config.region_id_col, **kwargs)
        return cls(gdf, config=config)

    @classmethod
    def wrap(cls, regions: Union['RegionLayer', gpd.GeoDataFrame],
             config: Optional[PolyjoinConfig] = None) -> 'RegionLayer':
        """Return ``regions`` unchanged if already a layer, else wrap it."""
        if isinstance(regions, RegionLayer):
            return regions
        return cls(regions, config=config)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def gdf(self) -> gpd.GeoDataFrame:
        """Copy of the polygon table; edits do not reach the cached centroids."""
        return self._gdf.copy()

    @property
    def region_index(self) -> pd.Index:
        return self._region_index

    @property
    def n_regions(self) -> int:
        return len(self._region_index)

    @property
    def geometry(self) -> gpd.GeoSeries:
        return self._gdf.geometry

    @property
    def crs(self):
        return self._gdf.crs

    @property
    def is_geographic(self) -> bool:
        return self.crs is not None and self.crs.is_geographic

    @property
    def centroids(self) -> gpd.GeoSeries:
        """Polygon centroids, computed once per layer."""
        if self._centroids is None:
            if self.is_geographic:
                print("  ⚠ Centroids computed in geographic coordinates (lon/lat)")
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", message=".*geographic CRS.*", category=UserWarning)
                self._centroids = self._gdf.geometry.centroid
        return self._centroids

    @property
    def centroid_coords(self) -> np.ndarray:
        """Centroids as an (n_regions, 2) array of x, y."""
        c = self.centroids
        return np.column_stack([c.x.to_numpy(), c.y.to_numpy()])

    # ------------------------------------------------------------------
    # Derived tables
    # ------------------------------------------------------------------

    def subset(self, selector) -> 'RegionLayer':
        """
        Subset by boolean mask or by region labels.

        The new layer computes its own centroids.
        """
        if isinstance(selector, (pd.Series, np.ndarray)) and np.asarray(selector).dtype == bool:
            gdf = self._gdf[np.asarray(selector)]
        else:
            gdf = self._gdf.loc[list(selector)]
        print(f"\nSubsetting regions: {len(gdf)} of {self.n_regions} kept")
        return RegionLayer(gdf, config=self.config)

    def with_column(self, name: str, values) -> gpd.GeoDataFrame:
        """Copy of the polygon table with one derived column appended."""
        if len(values) != self.n_regions:
            raise ConsistencyError(
                f"Column '{name}' has {len(values)} values for {self.n_regions} regions"
            )
        out = self._gdf.copy()
        if isinstance(values, pd.Series):
            out[name] = values.set_axis(out.index)
        else:
            out[name] = list(values)
        return out

    def summary(self) -> Dict:
        bounds = self._gdf.total_bounds if self.n_regions else np.full(4, np.nan)
        return {
            'n_regions': self.n_regions,
            'crs': None if self.crs is None else self.crs.to_string(),
            'geographic': self.is_geographic,
            'bounds': tuple(float(b) for b in bounds),
            'centroids_cached': self._centroids is not None,
        }

    def __len__(self) -> int:
        return self.n_regions

    def __repr__(self) -> str:
        crs = "None" if self.crs is None else self.crs.name
        return f"RegionLayer ({self.n_regions} regions, crs={crs})"
