"""
grids.py - Hand-made polygon layers shared by fixtures and tests

Kept outside conftest.py so test modules import plain helpers and never
the fixture file itself.
"""

import geopandas as gpd
from shapely.geometry import box

PROJECTED_CRS = "EPSG:3857"
GEOGRAPHIC_CRS = "EPSG:4326"


def make_grid(n_cols: int, n_rows: int, size: float = 1.0, crs=PROJECTED_CRS,
              x0: float = 0.0, y0: float = 0.0) -> gpd.GeoDataFrame:
    """Row-major grid of squares, labelled 'r{row}c{col}'."""
    names, geoms = [], []
    for r in range(n_rows):
        for c in range(n_cols):
            names.append(f"r{r}c{c}")
            geoms.append(box(x0 + c * size, y0 + r * size,
                             x0 + (c + 1) * size, y0 + (r + 1) * size))
    return gpd.GeoDataFrame({"name": names}, geometry=geoms, crs=crs, index=names)
