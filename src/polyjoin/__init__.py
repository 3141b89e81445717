# src/polyjoin/__init__.py

"""
polyjoin - Points-in-polygons matching and polygon neighbor graphs
"""

# Core data structures
from .data.config import PolyjoinConfig
from .data.core import RegionLayer

# Import submodules
from . import data
from . import spatial
from . import visualization
from . import pipelines

from .pipelines import run_neighbor_analysis, run_point_matching

__version__ = '0.1.0'

__all__ = [
    # Core classes
    'PolyjoinConfig',
    'RegionLayer',

    # Pipelines
    'run_point_matching',
    'run_neighbor_analysis',

    # Submodules
    'data',
    'spatial',
    'visualization',
    'pipelines',
]
