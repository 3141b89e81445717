"""
pipelines.py - The two end-to-end analyses

run_point_matching : polygons + point table -> region per point, points per region
run_neighbor_analysis : polygons -> border, knn and distance-band neighbor graphs
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

import geopandas as gpd

from .data.config import PolyjoinConfig
from .data.core import RegionLayer
from .data.loaders import (
    align_crs,
    filter_polygons,
    points_to_geodataframe,
    read_points,
    read_polygons,
)
from .spatial.graph import (
    RegionAdjacencyGraph,
    build_border_graph,
    build_distance_graph,
    build_knn_graph,
)
from .spatial.matching import (
    MatchResult,
    attach_region_counts,
    attach_region_ids,
    match_points_to_regions,
)


def run_point_matching(polygon_path,
                       points_path,
                       config: Optional[PolyjoinConfig] = None,
                       predicate: str = 'within',
                       on_ambiguous: str = 'raise',
                       plot: bool = False,
                       show: bool = True,
                       ) -> Tuple[gpd.GeoDataFrame, gpd.GeoDataFrame, MatchResult]:
    """
    Match point observations to the polygons enclosing them.

    Parameters
    ----------
    polygon_path : str or Path
        Polygon file (shapefile, GeoJSON, ...)
    points_path : str or Path
        CSV with the coordinate columns named in ``config``
    config : PolyjoinConfig, optional
    predicate : str
        'within' or 'intersects'
    on_ambiguous : str
        'raise' or 'flag'
    plot : bool
        Show the points over the polygons and the count choropleth
    show : bool
        Call plt.show() on each figure; False leaves them open for the caller

    Returns
    -------
    points : gpd.GeoDataFrame
        Point table with the region column (``config.within_col``)
    regions : gpd.GeoDataFrame
        Polygon table with the count column (``config.count_col``)
    result : MatchResult
    """
    config = config or PolyjoinConfig()

    print("\n" + "=" * 70)
    print("Matching points to polygons")
    print("=" * 70)

    print("[1/6] Reading polygon layer")
    layer = RegionLayer(read_polygons(polygon_path, id_col=config.region_id_col), config=config)

    print("[2/6] Reading point table")
    table = read_points(points_path, config=config)

    print("[3/6] Converting points to geometries")
    points = points_to_geodataframe(table, config=config)

    print("[4/6] Aligning coordinate reference systems")
    points = align_crs(points, layer.gdf)

    print("[5/6] Computing containment")
    result = match_points_to_regions(
        points, layer, predicate=predicate, on_ambiguous=on_ambiguous,
        align=False, config=config
    )

    print("[6/6] Attaching results")
    points = attach_region_ids(points, result, column=config.within_col)
    regions = attach_region_counts(layer, result, column=config.count_col)
    print(f"  ✓ {len(points):,} points, {len(regions):,} regions")
    print("=" * 70)

    if plot:
        from .visualization.plots import plot_points_on_regions, plot_region_counts
        plot_points_on_regions(layer, points, show=show)
        plot_region_counts(layer, result, show=show)

    return points, regions, result


def run_neighbor_analysis(polygon_path,
                          config: Optional[PolyjoinConfig] = None,
                          subset_column: Optional[str] = None,
                          subset_values: Optional[Iterable] = None,
                          bbox: Optional[Tuple[float, float, float, float]] = None,
                          k: Optional[int] = None,
                          distance_band: Optional[Tuple[float, float]] = None,
                          metric: str = 'auto',
                          plot: bool = False,
                          show: bool = True,
                          ) -> Dict[str, RegionAdjacencyGraph]:
    """
    Derive neighbor relations among polygons under three rules.

    Centroids are computed once on a single RegionLayer and shared by the
    knn and distance-band graphs.

    Parameters
    ----------
    polygon_path : str or Path
        Polygon file
    config : PolyjoinConfig, optional
    subset_column, subset_values : optional
        Attribute filter for the geographic subset
    bbox : tuple, optional
        (minx, miny, maxx, maxy) filter
    k : int, optional
        Neighbors for the knn rule. Defaults to ``config.knn_k``.
    distance_band : tuple, optional
        (d1, d2). Defaults to ``config.distance_band``.
    metric : str
        'auto', 'euclidean' or 'haversine'
    plot : bool
        Draw each graph over the polygons
    show : bool
        Call plt.show() on each figure

    Returns
    -------
    dict
        {'border': ..., 'knn': ..., 'distance': ...}
    """
    if subset_values is not None and subset_column is None:
        raise ValueError("subset_values given without subset_column")

    config = config or PolyjoinConfig()
    d1, d2 = distance_band if distance_band is not None else config.distance_band

    print("\n" + "=" * 70)
    print("Polygon neighbor analysis")
    print("=" * 70)

    print("[1/5] Reading polygon layer")
    gdf = read_polygons(polygon_path, id_col=config.region_id_col)

    print("[2/5] Selecting geographic subset")
    if subset_column is not None or bbox is not None:
        gdf = filter_polygons(gdf, column=subset_column, values=subset_values, bbox=bbox)
    else:
        print("  → No subset requested, using all polygons")
    layer = RegionLayer(gdf, config=config)

    print("[3/5] Computing centroids")
    centroids = layer.centroids
    print(f"  ✓ {len(centroids):,} centroids")

    print("[4/5] Building neighbor graphs")
    graphs = {
        'border': build_border_graph(layer),
        'knn': build_knn_graph(layer, k=k, metric=metric, config=config),
        'distance': build_distance_graph(layer, d1=d1, d2=d2, metric=metric, config=config),
    }

    print("\n[5/5] Summary")
    for name, graph in graphs.items():
        s = graph.summary()
        print(f"  {name:<9} regions={s['n_regions']:,}  links={s['n_links']:,}  "
              f"avg={s['mean_links']:.2f}  symmetric={s['symmetric']}")
    print("=" * 70)

    if plot:
        from .visualization.plots import plot_adjacency_graph
        for name, graph in graphs.items():
            plot_adjacency_graph(layer, graph, title=f"{name} neighbors", show=show)

    return graphs
