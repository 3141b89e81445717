"""
plots.py - Static maps of regions, points and neighbor graphs

Every function draws onto a fresh figure (or a given Axes), optionally
saves it and returns the Figure.
"""

from typing import Optional, Tuple, Union

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.collections import LineCollection

from ..data.core import RegionLayer
from ..spatial.graph import RegionAdjacencyGraph, graph_coordinates
from ..spatial.matching import MatchResult


def _new_axes(ax, figsize):
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure
    return fig, ax


def _finish(fig, ax, title, save_path, dpi, show):
    if title:
        ax.set_title(title, fontsize=14)
    ax.set_aspect("equal")
    ax.axis("off")

    if save_path is not None:
        fig.savefig(save_path, dpi=dpi, bbox_inches="tight")
        print(f"Saved to {save_path}")

    if show:
        plt.show()
    return fig


def plot_regions(regions: Union[RegionLayer, gpd.GeoDataFrame],
                 ax: Optional[plt.Axes] = None,
                 edge_color: str = "black",
                 edge_width: float = 0.3,
                 figsize: Tuple[float, float] = (8, 8),
                 title: Optional[str] = None,
                 save_path: Optional[str] = None,
                 dpi: int = 300,
                 show: bool = True) -> plt.Figure:
    """Plot polygon outlines."""
    layer = RegionLayer.wrap(regions)
    fig, ax = _new_axes(ax, figsize)
    layer.geometry.boundary.plot(ax=ax, color=edge_color, linewidth=edge_width)
    return _finish(fig, ax, title, save_path, dpi, show)


def plot_points_on_regions(regions: Union[RegionLayer, gpd.GeoDataFrame],
                           points: gpd.GeoDataFrame,
                           ax: Optional[plt.Axes] = None,
                           point_color: str = "orange",
                           point_size: float = 5.0,
                           edge_color: str = "black",
                           edge_width: float = 0.3,
                           figsize: Tuple[float, float] = (8, 8),
                           title: Optional[str] = None,
                           save_path: Optional[str] = None,
                           dpi: int = 300,
                           show: bool = True) -> plt.Figure:
    """
    Plot polygon outlines with the point layer on top.

    Parameters
    ----------
    regions : RegionLayer or gpd.GeoDataFrame
        Polygon layer
    points : gpd.GeoDataFrame
        Point layer in the same CRS
    point_color : str
        Marker color, by default 'orange'
    point_size : float
        Marker size, by default 5.0
    """
    layer = RegionLayer.wrap(regions)
    fig, ax = _new_axes(ax, figsize)
    layer.geometry.boundary.plot(ax=ax, color=edge_color, linewidth=edge_width)
    points.plot(ax=ax, color=point_color, markersize=point_size, marker="o")
    return _finish(fig, ax, title, save_path, dpi, show)


def plot_region_counts(regions: Union[RegionLayer, gpd.GeoDataFrame],
                       counts: Union[MatchResult, pd.Series, np.ndarray],
                       ax: Optional[plt.Axes] = None,
                       colormap: str = "viridis",
                       edge_color: str = "white",
                       edge_width: float = 0.2,
                       legend: bool = True,
                       figsize: Tuple[float, float] = (8, 8),
                       title: Optional[str] = None,
                       save_path: Optional[str] = None,
                       dpi: int = 300,
                       show: bool = True) -> plt.Figure:
    """Choropleth of points per region."""
    layer = RegionLayer.wrap(regions)
    if isinstance(counts, MatchResult):
        counts = counts.region_counts
    gdf = layer.with_column("_count", counts)

    fig, ax = _new_axes(ax, figsize)
    gdf.plot(
        column="_count",
        ax=ax,
        cmap=colormap,
        edgecolor=edge_color,
        linewidth=edge_width,
        legend=legend,
        legend_kwds={"label": "points per region", "shrink": 0.8},
    )
    return _finish(fig, ax, title or "Points per region", save_path, dpi, show)


def plot_adjacency_graph(regions: Union[RegionLayer, gpd.GeoDataFrame],
                         graph: RegionAdjacencyGraph,
                         ax: Optional[plt.Axes] = None,
                         line_color: str = "tab:red",
                         line_width: float = 0.8,
                         node_color: str = "tab:red",
                         node_size: float = 6.0,
                         edge_color: str = "grey",
                         edge_width: float = 0.3,
                         figsize: Tuple[float, float] = (8, 8),
                         title: Optional[str] = None,
                         save_path: Optional[str] = None,
                         dpi: int = 300,
                         show: bool = True) -> plt.Figure:
    """
    Draw a neighbor graph over the polygon outlines.

    Links are drawn centroid to centroid; centroids come from the same
    layer cache the graph was built from.

    Examples
    --------
    >>> layer = RegionLayer(counties)
    >>> graph = build_knn_graph(layer, k=3)
    >>> plot_adjacency_graph(layer, graph, title="k = 3")
    """
    layer = RegionLayer.wrap(regions)
    if layer.n_regions != graph.n_regions:
        raise ValueError(
            f"Graph has {graph.n_regions} regions, layer has {layer.n_regions}"
        )

    coords, segments = graph_coordinates(layer, graph)

    fig, ax = _new_axes(ax, figsize)
    layer.geometry.boundary.plot(ax=ax, color=edge_color, linewidth=edge_width)
    ax.add_collection(LineCollection(segments, colors=line_color, linewidths=line_width))
    ax.scatter(coords[:, 0], coords[:, 1], s=node_size, c=node_color, zorder=3)

    if title is None:
        title = f"{graph.method} graph ({graph.n_links} links)"
    return _finish(fig, ax, title, save_path, dpi, show)
