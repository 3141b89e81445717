"""
matching.py - Point-to-polygon matching

Assigns every point to the (at most one) polygon that contains it and counts
the points falling in every polygon. The containment test itself is the
geopandas spatial index query; this module only turns the resulting sparse
relation into per-point region ids and per-region counts and checks them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from scipy import sparse

from ..data.config import AmbiguousContainmentError, ConsistencyError, PolyjoinConfig
from ..data.core import RegionLayer
from ..data.loaders import align_crs, check_crs_match, points_to_geodataframe

_PREDICATES = ('within', 'intersects')
_AMBIGUOUS_POLICIES = ('raise', 'flag')


@dataclass
class MatchResult:
    """
    Result of matching points to regions.

    Attributes
    ----------
    region_ids : pd.Series
        Nullable Int64, one entry per point: position of the containing
        region, or <NA> when no single region contains the point.
    region_counts : pd.Series
        Number of points in each region, indexed by region label.
    containment : sparse.csr_matrix
        Raw relation (n_points x n_regions), 1 where the predicate holds.
    ambiguous : pd.Series
        True for points claimed by more than one region.
    region_labels : pd.Index
        Region labels, aligned to region positions.
    predicate : str
        Spatial predicate used.
    """
    region_ids: pd.Series
    region_counts: pd.Series
    containment: sparse.csr_matrix
    ambiguous: pd.Series
    region_labels: pd.Index
    predicate: str = 'within'
    params: dict = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return self.containment.shape[0]

    @property
    def n_regions(self) -> int:
        return self.containment.shape[1]

    @property
    def n_matched(self) -> int:
        return int(self.region_ids.notna().sum())

    @property
    def n_ambiguous(self) -> int:
        return int(self.ambiguous.sum())

    @property
    def n_unmatched(self) -> int:
        """Points contained in no region."""
        return self.n_points - self.n_matched - self.n_ambiguous

    def containment_sizes(self) -> pd.Series:
        """How many regions claim each point."""
        sizes = np.diff(self.containment.indptr)
        return pd.Series(sizes, index=self.region_ids.index, name='n_regions')

    def labels(self) -> pd.Series:
        """Region label of each point, <NA> where unmatched or ambiguous."""
        ids = self.region_ids
        out = pd.Series(pd.NA, index=ids.index, dtype=object, name='region')
        matched = ids.notna().to_numpy()
        positions = ids[matched].astype('int64').to_numpy()
        out[matched] = np.asarray(self.region_labels[positions], dtype=object)
        return out

    def check_consistency(self) -> None:
        """
        Sanity checks on the derived arrays.

        Raises
        ------
        ConsistencyError
            If lengths disagree with the inputs or counts do not add up.
        """
        if len(self.region_ids) != self.n_points:
            raise ConsistencyError(
                f"{len(self.region_ids)} region ids for {self.n_points} points"
            )
        if len(self.region_counts) != self.n_regions:
            raise ConsistencyError(
                f"{len(self.region_counts)} region counts for {self.n_regions} regions"
            )
        sizes = self.containment_sizes()
        unflagged = sizes[~self.ambiguous.to_numpy()]
        if len(unflagged) and unflagged.max() > 1:
            raise ConsistencyError("Unflagged point contained in more than one region")
        if int(self.region_counts.sum()) != self.n_matched:
            raise ConsistencyError(
                f"Region counts sum to {int(self.region_counts.sum())}, "
                f"but {self.n_matched} points are matched"
            )

    def summary(self) -> Dict:
        sizes = self.containment_sizes()
        return {
            'n_points': self.n_points,
            'n_regions': self.n_regions,
            'predicate': self.predicate,
            'n_matched': self.n_matched,
            'n_unmatched': self.n_unmatched,
            'n_ambiguous': self.n_ambiguous,
            'containment_range': (int(sizes.min()), int(sizes.max())) if len(sizes) else (0, 0),
            'regions_with_points': int((self.region_counts > 0).sum()),
            'max_points_per_region': int(self.region_counts.max()) if len(self.region_counts) else 0,
        }

    def __repr__(self) -> str:
        s = self.summary()
        return (
            f"MatchResult ({s['n_points']} points, {s['n_regions']} regions, "
            f"{s['n_matched']} matched, {s['n_unmatched']} unmatched, "
            f"{s['n_ambiguous']} ambiguous)"
        )


def _as_points(points, config: PolyjoinConfig) -> gpd.GeoDataFrame:
    if isinstance(points, gpd.GeoDataFrame):
        return points
    if isinstance(points, gpd.GeoSeries):
        return gpd.GeoDataFrame(geometry=points)
    if isinstance(points, pd.DataFrame):
        return points_to_geodataframe(points, config=config)
    raise TypeError(f"Expected points as a (Geo)DataFrame, got {type(points).__name__}")


def compute_containment(points: gpd.GeoDataFrame,
                        regions: Union[RegionLayer, gpd.GeoDataFrame],
                        predicate: str = 'within') -> sparse.csr_matrix:
    """
    Sparse point-by-region relation for a spatial predicate.

    Parameters
    ----------
    points : gpd.GeoDataFrame
        Point layer, already in the regions' CRS.
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer.
    predicate : str
        'within' (point strictly inside) or 'intersects' (boundary counts).

    Returns
    -------
    sparse.csr_matrix
        (n_points x n_regions), 1 where point i satisfies the predicate
        against region j.
    """
    if predicate not in _PREDICATES:
        raise ValueError(f"predicate must be one of {_PREDICATES}, got '{predicate}'")

    layer = RegionLayer.wrap(regions)
    n_points, n_regions = len(points), layer.n_regions

    # query returns (input positions, tree positions); predicate(point, polygon)
    point_pos, region_pos = layer.geometry.sindex.query(points.geometry, predicate=predicate)

    data = np.ones(len(point_pos), dtype=np.int8)
    containment = sparse.csr_matrix(
        (data, (point_pos, region_pos)), shape=(n_points, n_regions)
    )
    # Duplicates would sum; clamp to a binary relation
    containment.data[:] = 1
    return containment


def match_points_to_regions(points,
                            regions: Union[RegionLayer, gpd.GeoDataFrame],
                            predicate: str = 'within',
                            on_ambiguous: Literal['raise', 'flag'] = 'raise',
                            align: bool = True,
                            config: Optional[PolyjoinConfig] = None) -> MatchResult:
    """
    Match every point to the region containing it and count points per region.

    Parameters
    ----------
    points : gpd.GeoDataFrame or pd.DataFrame
        Point layer. A plain DataFrame is converted using the config's
        coordinate columns.
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer.
    predicate : str
        'within' (default) or 'intersects'.
    on_ambiguous : str
        What to do with a point claimed by several regions:
        'raise' -> AmbiguousContainmentError,
        'flag'  -> no region id, marked in ``result.ambiguous``, not counted.
    align : bool
        Copy/transform the regions' CRS onto the points first. When False
        the CRSs must already match.
    config : PolyjoinConfig, optional

    Returns
    -------
    MatchResult

    Examples
    --------
    >>> result = match_points_to_regions(points, zcta)
    >>> result.summary()
    >>> points = attach_region_ids(points, result)
    >>> zcta = attach_region_counts(zcta, result)
    """
    if on_ambiguous not in _AMBIGUOUS_POLICIES:
        raise ValueError(
            f"on_ambiguous must be one of {_AMBIGUOUS_POLICIES}, got '{on_ambiguous}'"
        )

    config = config or PolyjoinConfig()
    layer = RegionLayer.wrap(regions, config=config)
    points = _as_points(points, config)

    print(f"\n[Matching] {len(points):,} points → {layer.n_regions:,} regions "
          f"(predicate='{predicate}')...")

    if align:
        points = align_crs(points, layer.gdf)
    else:
        check_crs_match(points, layer.gdf)

    containment = compute_containment(points, layer, predicate=predicate)
    sizes = np.diff(containment.indptr)

    ambiguous = sizes > 1
    if ambiguous.any():
        ambiguous_ids = points.index[ambiguous].tolist()
        if on_ambiguous == 'raise':
            raise AmbiguousContainmentError(ambiguous_ids)
        print(f"  ⚠ {len(ambiguous_ids)} points fall in more than one region (flagged)")

    # Rows with exactly one entry: the single column index is the region
    single = sizes == 1
    region_pos = np.full(len(points), -1, dtype=np.int64)
    region_pos[single] = containment.indices[containment.indptr[:-1][single]]

    ids = pd.array(region_pos, dtype='Int64')
    ids[~single] = pd.NA
    region_ids = pd.Series(ids, index=points.index, name=config.within_col)

    counts = np.bincount(region_pos[single], minlength=layer.n_regions)
    region_counts = pd.Series(counts, index=layer.region_index, name=config.count_col)

    result = MatchResult(
        region_ids=region_ids,
        region_counts=region_counts,
        containment=containment,
        ambiguous=pd.Series(ambiguous, index=points.index, name='ambiguous'),
        region_labels=layer.region_index,
        predicate=predicate,
        params={'on_ambiguous': on_ambiguous, 'align': align},
    )
    result.check_consistency()

    s = result.summary()
    print(f"  ✓ Matched {s['n_matched']:,} points, {s['n_unmatched']:,} outside every region")
    print(f"    Containment range: {s['containment_range']}, "
          f"{s['regions_with_points']:,} regions hold points")

    return result


def attach_region_ids(points: gpd.GeoDataFrame,
                      result: MatchResult,
                      column: Optional[str] = None,
                      labels: bool = False) -> gpd.GeoDataFrame:
    """
    Copy of the point table with the per-point region column added.

    ``labels=True`` stores region labels instead of region positions.
    """
    if len(points) != result.n_points:
        raise ConsistencyError(
            f"Point table has {len(points)} rows, result has {result.n_points}"
        )
    if not points.index.equals(result.region_ids.index):
        raise ConsistencyError("Point table index does not match the matched points")
    column = column or result.region_ids.name
    values = result.labels() if labels else result.region_ids
    out = points.copy()
    out[column] = values.set_axis(out.index)
    return out


def attach_region_counts(regions: Union[RegionLayer, gpd.GeoDataFrame],
                         result: MatchResult,
                         column: Optional[str] = None) -> gpd.GeoDataFrame:
    """Copy of the polygon table with the per-region point count added."""
    layer = RegionLayer.wrap(regions)
    if not layer.region_index.equals(result.region_labels):
        raise ConsistencyError("Result was computed against a different region layer")
    column = column or result.region_counts.name
    return layer.with_column(column, result.region_counts)
