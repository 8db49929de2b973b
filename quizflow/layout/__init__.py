"""
Hierarchical layout of flow graphs.
"""

from .engine import LayoutDirection, LayoutOptions, layout_graph, layout_flow

__all__ = [
    'LayoutDirection',
    'LayoutOptions',
    'layout_graph',
    'layout_flow'
]
