"""
graph.py - Polygon neighbor graph construction

Builds region adjacency graphs under three rules:
- border   : polygons whose boundaries touch (self excluded)
- knn      : the k closest other centroids
- distance : every other centroid within an inclusive distance band

Centroids always come from the RegionLayer cache, so knn and distance
graphs built from the same layer use identical representative points.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Set, Tuple, Union

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely
from scipy import sparse
from sklearn.neighbors import NearestNeighbors

from ..data.config import PolyjoinConfig
from ..data.core import RegionLayer


@dataclass
class RegionAdjacencyGraph:
    """
    Stores a region neighbor graph.

    Rows are directed: ``adjacency[i, j] == 1`` means region i lists
    region j as a neighbor. Border and distance graphs come out symmetric,
    knn graphs generally do not.

    Attributes
    ----------
    adjacency : sparse.csr_matrix
        Binary adjacency matrix (n_regions × n_regions)
    distances : sparse.csr_matrix
        Centroid distances on the same links (0 for border links)
    region_index : pd.Index
        Region labels aligned to matrix rows/columns
    method : str
        How the graph was built ('border', 'knn', 'distance')
    params : dict
        Parameters used to build the graph
    """
    adjacency: sparse.csr_matrix
    distances: sparse.csr_matrix
    region_index: pd.Index
    method: str
    params: dict = field(default_factory=dict)

    @property
    def n_regions(self) -> int:
        return self.adjacency.shape[0]

    @property
    def n_links(self) -> int:
        """Total directed links."""
        return int(self.adjacency.nnz)

    @property
    def mean_links(self) -> float:
        return self.n_links / self.n_regions if self.n_regions else 0.0

    def neighbors(self, i: int) -> Set[int]:
        """Neighbor positions of the region at position i."""
        row = self.adjacency.indptr
        return set(self.adjacency.indices[row[i]:row[i + 1]].tolist())

    def neighbor_sets(self) -> List[Set[int]]:
        """One set of neighbor positions per region."""
        return [self.neighbors(i) for i in range(self.n_regions)]

    def get_neighbors(self, region_id) -> List:
        """Neighbor labels of a region given by label."""
        if region_id not in self.region_index:
            raise ValueError(f"Region '{region_id}' not in graph")
        idx = self.region_index.get_loc(region_id)
        return self.region_index[sorted(self.neighbors(idx))].tolist()

    def cardinalities(self) -> pd.Series:
        """Number of neighbors per region."""
        counts = np.diff(self.adjacency.indptr)
        return pd.Series(counts, index=self.region_index, name='n_neighbors')

    def is_symmetric(self) -> bool:
        return (self.adjacency != self.adjacency.T).nnz == 0

    def has_self_links(self) -> bool:
        return bool(self.adjacency.diagonal().any())

    def to_edge_list(self) -> pd.DataFrame:
        """Directed edge list with centroid distances."""
        coo = self.adjacency.tocoo()
        order = np.lexsort((coo.col, coo.row))
        rows, cols = coo.row[order], coo.col[order]
        dist = np.asarray(self.distances[rows, cols]).ravel() if len(rows) else np.array([])
        return pd.DataFrame({
            'from': self.region_index[rows],
            'to': self.region_index[cols],
            'distance': dist,
        })

    def to_series(self, labels: bool = False) -> pd.Series:
        """Neighbor sets aligned to the regions (positions or labels)."""
        sets = self.neighbor_sets()
        if labels:
            sets = [set(self.region_index[sorted(s)].tolist()) for s in sets]
        return pd.Series(sets, index=self.region_index, name='neighbors', dtype=object)

    def difference(self, other: 'RegionAdjacencyGraph') -> pd.DataFrame:
        """Links present in this graph but missing from ``other``."""
        if self.n_regions != other.n_regions:
            raise ValueError(
                f"Graphs cover different layers ({self.n_regions} vs {other.n_regions} regions)"
            )
        only_here = self.adjacency - self.adjacency.multiply(other.adjacency)
        only_here.eliminate_zeros()
        rows, cols = only_here.nonzero()
        return pd.DataFrame({
            'from': self.region_index[rows],
            'to': self.region_index[cols],
        })

    def summary(self) -> Dict:
        """Descriptive statistics of the graph."""
        card = np.diff(self.adjacency.indptr)
        return {
            'method': self.method,
            'params': self.params,
            'n_regions': self.n_regions,
            'n_links': self.n_links,
            'mean_links': self.mean_links,
            'min_links': int(card.min()) if len(card) else 0,
            'max_links': int(card.max()) if len(card) else 0,
            'regions_without_links': int((card == 0).sum()),
            'symmetric': self.is_symmetric(),
        }

    def __repr__(self) -> str:
        return (
            f"RegionAdjacencyGraph (method={self.method}, "
            f"{self.n_regions} regions, {self.n_links} links, "
            f"mean links={self.mean_links:.2f})"
        )


def _report(graph: RegionAdjacencyGraph, label: str) -> None:
    s = graph.summary()
    print(f"  ✓ {label}: {s['n_regions']} regions, {s['n_links']} links")
    print(f"    Average links per region: {s['mean_links']:.2f}")
    if s['regions_without_links']:
        print(f"  ⚠ {s['regions_without_links']} regions have no neighbors")


def _resolve_metric(layer: RegionLayer, metric: str) -> str:
    if metric == 'auto':
        return 'haversine' if layer.is_geographic else 'euclidean'
    if metric not in ('euclidean', 'haversine'):
        raise ValueError(f"metric must be 'auto', 'euclidean' or 'haversine', got '{metric}'")
    if metric == 'haversine' and not layer.is_geographic:
        raise ValueError("metric='haversine' needs a geographic (lon/lat) layer")
    return metric


def _centroid_features(layer: RegionLayer, metric: str) -> np.ndarray:
    coords = layer.centroid_coords
    if np.isnan(coords).any():
        raise ValueError("Some regions have no centroid (missing or empty geometry)")
    if metric == 'haversine':
        # sklearn expects [lat, lon] in radians
        return np.radians(coords[:, [1, 0]])
    return coords


def _nearest_neighbors(metric: str, **kwargs) -> NearestNeighbors:
    if metric == 'haversine':
        return NearestNeighbors(metric='haversine', algorithm='ball_tree', **kwargs)
    return NearestNeighbors(metric='euclidean', **kwargs)


def build_border_graph(regions: Union[RegionLayer, gpd.GeoDataFrame],
                       predicate: Literal['touches', 'intersects'] = 'touches',
                       contiguity: Literal['rook', 'queen'] = 'rook') -> RegionAdjacencyGraph:
    """
    Build adjacency graph from shared polygon borders.

    Two regions are neighbors if their boundaries touch while their
    interiors stay disjoint. Uses the layer's spatial index (STRtree).

    Parameters
    ----------
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer
    predicate : str
        'touches' (default, self excluded) or 'intersects', the looser
        variant that also links overlapping regions and keeps self links
    contiguity : str
        With 'touches': 'rook' needs a shared edge of positive length,
        'queen' accepts a single shared corner point

    Returns
    -------
    RegionAdjacencyGraph

    Examples
    --------
    >>> graph = build_border_graph(layer)
    >>> print(graph.summary())
    >>> graph.get_neighbors('80301')
    """
    if predicate not in ('touches', 'intersects'):
        raise ValueError(f"predicate must be 'touches' or 'intersects', got '{predicate}'")
    if contiguity not in ('rook', 'queen'):
        raise ValueError(f"contiguity must be 'rook' or 'queen', got '{contiguity}'")

    layer = RegionLayer.wrap(regions)
    n = layer.n_regions

    print(f"\n[Region Graph] Building border graph (predicate='{predicate}', "
          f"contiguity='{contiguity}')...")

    geom = layer.geometry.values
    rows, cols = layer.geometry.sindex.query(geom, predicate=predicate)

    if predicate == 'touches':
        off_diag = rows != cols
        rows, cols = rows[off_diag], cols[off_diag]
        if contiguity == 'rook' and len(rows):
            shared = shapely.intersection(np.asarray(geom)[rows], np.asarray(geom)[cols])
            edge = shapely.length(shared) > 0
            n_corner = int((~edge).sum())
            if n_corner:
                print(f"  → Dropped {n_corner // 2} corner-only contacts")
            rows, cols = rows[edge], cols[edge]

    data = np.ones(len(rows), dtype=np.float32)
    adjacency = sparse.csr_matrix((data, (rows, cols)), shape=(n, n))
    adjacency.data[:] = 1
    distances = sparse.csr_matrix((n, n), dtype=np.float32)

    graph = RegionAdjacencyGraph(
        adjacency=adjacency,
        distances=distances,
        region_index=layer.region_index,
        method='border',
        params={'predicate': predicate, 'contiguity': contiguity},
    )
    _report(graph, "Border graph")
    return graph


def build_knn_graph(regions: Union[RegionLayer, gpd.GeoDataFrame],
                    k: Optional[int] = None,
                    metric: str = 'auto',
                    config: Optional[PolyjoinConfig] = None) -> RegionAdjacencyGraph:
    """
    Build k-nearest neighbor graph on region centroids.

    Each region lists the k closest other centroids. The graph is left
    directed: A may list B while B does not list A.

    Parameters
    ----------
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer
    k : int, optional
        Neighbors per region. Defaults to ``config.knn_k``.
    metric : str
        'auto' picks great-circle kilometres for geographic layers and
        Euclidean CRS units otherwise.
    config : PolyjoinConfig, optional

    Returns
    -------
    RegionAdjacencyGraph
    """
    config = config or PolyjoinConfig()
    k = config.knn_k if k is None else k
    layer = RegionLayer.wrap(regions, config=config)
    n = layer.n_regions
    metric = _resolve_metric(layer, metric)

    print(f"\n[Region Graph] Building KNN graph (k={k}, metric='{metric}')...")

    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")
    if k >= n:
        raise ValueError(f"k={k} must be less than n_regions={n}")

    X = _centroid_features(layer, metric)

    # k+1 because the query point finds itself
    nn = _nearest_neighbors(metric, n_neighbors=k + 1)
    nn.fit(X)
    dist_matrix, idx_matrix = nn.kneighbors(X)

    rows_list = []
    cols_list = []
    dist_list = []
    for i in range(n):
        keep = idx_matrix[i] != i
        rows_list.append(np.full(k, i, dtype=np.int64))
        cols_list.append(idx_matrix[i][keep][:k])
        dist_list.append(dist_matrix[i][keep][:k])

    rows = np.concatenate(rows_list)
    cols = np.concatenate(cols_list)
    dists = np.concatenate(dist_list)
    if metric == 'haversine':
        dists = dists * config.earth_radius_km

    adjacency = sparse.csr_matrix(
        (np.ones(len(rows), dtype=np.float32), (rows, cols)), shape=(n, n)
    )
    distances = sparse.csr_matrix((dists, (rows, cols)), shape=(n, n))

    graph = RegionAdjacencyGraph(
        adjacency=adjacency,
        distances=distances,
        region_index=layer.region_index,
        method='knn',
        params={'k': k, 'metric': metric},
    )
    _report(graph, "KNN graph")
    return graph


def build_distance_graph(regions: Union[RegionLayer, gpd.GeoDataFrame],
                         d1: Optional[float] = None,
                         d2: Optional[float] = None,
                         metric: str = 'auto',
                         config: Optional[PolyjoinConfig] = None) -> RegionAdjacencyGraph:
    """
    Build distance-band graph on region centroids.

    Region j is a neighbor of region i (i ≠ j) when the centroid distance d
    satisfies ``d1 <= d <= d2``.

    Parameters
    ----------
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer
    d1, d2 : float, optional
        Inclusive band. Default to ``config.distance_band``. Kilometres for
        the haversine metric, CRS units for Euclidean.
    metric : str
        'auto', 'euclidean' or 'haversine'
    config : PolyjoinConfig, optional

    Returns
    -------
    RegionAdjacencyGraph

    Examples
    --------
    >>> graph = build_distance_graph(layer, d1=0, d2=700)
    >>> graph.summary()['mean_links']
    """
    config = config or PolyjoinConfig()
    default_d1, default_d2 = config.distance_band
    d1 = default_d1 if d1 is None else d1
    d2 = default_d2 if d2 is None else d2
    layer = RegionLayer.wrap(regions, config=config)
    n = layer.n_regions
    metric = _resolve_metric(layer, metric)

    print(f"\n[Region Graph] Building distance graph (d1={d1}, d2={d2}, metric='{metric}')...")

    if d1 < 0 or d2 < d1:
        raise ValueError(f"Distance band must satisfy 0 <= d1 <= d2, got ({d1}, {d2})")

    X = _centroid_features(layer, metric)
    scale = config.earth_radius_km if metric == 'haversine' else 1.0

    # Same float tolerance at both ends of the inclusive band
    tol_lo = 1e-9 * max(1.0, d1)
    tol_hi = 1e-9 * max(1.0, d2)

    # Search slightly past d2, then apply the band exactly
    search_radius = (d2 + 2 * tol_hi) / scale
    nn = _nearest_neighbors(metric, radius=search_radius)
    nn.fit(X)
    dist_arrays, idx_arrays = nn.radius_neighbors(X, radius=search_radius)

    rows_list = []
    cols_list = []
    dist_list = []
    for i in range(n):
        idx = idx_arrays[i]
        d = dist_arrays[i] * scale
        in_band = (
            (idx != i)
            & (d >= d1 - tol_lo)
            & (d <= d2 + tol_hi)
        )
        rows_list.append(np.full(int(in_band.sum()), i, dtype=np.int64))
        cols_list.append(idx[in_band])
        dist_list.append(d[in_band])

    rows = np.concatenate(rows_list) if rows_list else np.array([], dtype=np.int64)
    cols = np.concatenate(cols_list) if cols_list else np.array([], dtype=np.int64)
    dists = np.concatenate(dist_list) if dist_list else np.array([])

    adjacency = sparse.csr_matrix(
        (np.ones(len(rows), dtype=np.float32), (rows, cols)), shape=(n, n)
    )
    distances = sparse.csr_matrix((dists, (rows, cols)), shape=(n, n))

    graph = RegionAdjacencyGraph(
        adjacency=adjacency,
        distances=distances,
        region_index=layer.region_index,
        method='distance',
        params={'d1': d1, 'd2': d2, 'metric': metric},
    )
    _report(graph, "Distance graph")
    if len(dists):
        print(f"    Link distance range: {dists.min():.1f} – {dists.max():.1f}")
    return graph


def attach_neighbors(regions: Union[RegionLayer, gpd.GeoDataFrame],
                     graph: RegionAdjacencyGraph,
                     column: Optional[str] = None,
                     labels: bool = True) -> gpd.GeoDataFrame:
    """Copy of the polygon table with a per-region neighbor-set column."""
    layer = RegionLayer.wrap(regions)
    if not layer.region_index.equals(graph.region_index):
        raise ValueError("Graph was built on a different region layer")
    column = column or layer.config.neighbors_col
    return layer.with_column(column, graph.to_series(labels=labels))


def graph_coordinates(layer: RegionLayer, graph: RegionAdjacencyGraph) -> Tuple[np.ndarray, np.ndarray]:
    """
    Centroid coordinates and link segments for drawing a graph.

    Returns
    -------
    coords : np.ndarray
        (n_regions, 2) centroids
    segments : np.ndarray
        (n_links, 2, 2) from/to centroid pairs
    """
    coords = layer.centroid_coords
    coo = graph.adjacency.tocoo()
    segments = np.stack([coords[coo.row], coords[coo.col]], axis=1) if coo.nnz else np.empty((0, 2, 2))
    return coords, segments
