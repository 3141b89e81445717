"""
visualization/__init__.py - Plotting for polyjoin results

Usage
-----
    import polyjoin as pj
    pj.visualization.plot_points_on_regions(zcta, points)
    pj.visualization.plot_adjacency_graph(layer, graph)
"""

from .plots import (
    plot_adjacency_graph,
    plot_points_on_regions,
    plot_region_counts,
    plot_regions,
)

__all__ = [
    "plot_regions",
    "plot_points_on_regions",
    "plot_region_counts",
    "plot_adjacency_graph",
]
