"""
conftest.py - Shared test fixtures for polyjoin

pytest reads this file before running any test. Every fixture defined here
is injected into a test function that names it as an argument.

The layers are tiny hand-made geometries whose answers can be worked out
on paper:
  - two separate unit squares 'A' and 'B' plus three points
  - a 2×2 grid of unit squares sharing edges
  - a 5×5 grid for property-style checks
  - a 1°×1° lon/lat grid for geodesic distances
"""

import matplotlib

matplotlib.use("Agg")  # no display during tests

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from polyjoin.data.core import RegionLayer

from .grids import GEOGRAPHIC_CRS, PROJECTED_CRS, make_grid


# ===========================================================================
# Fixture 1: two separate squares and three points
# ===========================================================================


@pytest.fixture
def two_regions():
    """
    Region 'A' = [0,1]×[0,1], region 'B' = [2,3]×[0,1].
    They do not touch.
    """
    return gpd.GeoDataFrame(
        {"code": ["A", "B"]},
        geometry=[box(0, 0, 1, 1), box(2, 0, 3, 1)],
        crs=PROJECTED_CRS,
        index=pd.Index(["A", "B"], name="code_id"),
    )


@pytest.fixture
def three_points():
    """
    One point inside A, one inside B, one outside both.
    Plain table, coordinates in 'longitude'/'latitude' like a CSV would have.
    """
    return pd.DataFrame(
        {
            "longitude": [0.5, 2.5, 5.0],
            "latitude": [0.5, 0.5, 5.0],
            "value": [10.0, 20.0, 30.0],
        },
        index=["p0", "p1", "p2"],
    )


# ===========================================================================
# Fixture 2: 2×2 grid of unit squares
# ===========================================================================


@pytest.fixture
def grid_2x2():
    """
    r0c0 (sw) | r0c1 (se) on the bottom row, r1c0 (nw) | r1c1 (ne) on top.
    Centroids sit 1.0 apart horizontally/vertically, √2 diagonally.
    """
    return make_grid(2, 2)


@pytest.fixture
def grid_layer(grid_2x2):
    return RegionLayer(grid_2x2)


# ===========================================================================
# Fixture 3: larger grid + scattered points
# ===========================================================================


@pytest.fixture
def grid_5x5():
    return make_grid(5, 5, size=10.0)


@pytest.fixture
def scattered_points():
    """200 points over [-5, 55]² so some land outside the 5×5 grid."""
    rng = np.random.default_rng(42)
    xy = rng.uniform(-5, 55, size=(200, 2))
    return pd.DataFrame({"longitude": xy[:, 0], "latitude": xy[:, 1]})


# ===========================================================================
# Fixture 4: geographic (lon/lat) grid near the equator
# ===========================================================================


@pytest.fixture
def lonlat_grid():
    """3×1 row of 1° squares straddling the equator, EPSG:4326."""
    return make_grid(3, 1, size=1.0, crs=GEOGRAPHIC_CRS, x0=10.0, y0=-0.5)
