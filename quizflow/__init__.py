"""
Visual authoring core for branching quiz flows.
"""

__version__ = "0.1.0"
