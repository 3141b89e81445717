"""
spatial - Spatial relations between layers

matching : Point-to-polygon assignment
    match_points_to_regions, compute_containment,
    attach_region_ids, attach_region_counts
graph : Polygon neighbor graphs
    build_border_graph, build_knn_graph, build_distance_graph,
    attach_neighbors

Typical workflow
----------------
>>> import polyjoin as pj
>>>
>>> # Points in polygons
>>> result = pj.spatial.match_points_to_regions(points, zcta)
>>> zcta = pj.spatial.attach_region_counts(zcta, result)
>>>
>>> # Polygon neighbors (centroids computed once on the layer)
>>> layer = pj.RegionLayer(counties)
>>> border = pj.spatial.build_border_graph(layer)
>>> knn = pj.spatial.build_knn_graph(layer, k=3)
>>> band = pj.spatial.build_distance_graph(layer, d1=0, d2=700)
"""

from .graph import (
    RegionAdjacencyGraph,
    attach_neighbors,
    build_border_graph,
    build_distance_graph,
    build_knn_graph,
    graph_coordinates,
)
from .matching import (
    MatchResult,
    attach_region_counts,
    attach_region_ids,
    compute_containment,
    match_points_to_regions,
)

__all__ = [
    # Matching
    "MatchResult",
    "compute_containment",
    "match_points_to_regions",
    "attach_region_ids",
    "attach_region_counts",
    # Graph
    "RegionAdjacencyGraph",
    "build_border_graph",
    "build_knn_graph",
    "build_distance_graph",
    "attach_neighbors",
    "graph_coordinates",
]
