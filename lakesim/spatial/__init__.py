"""Spatial helpers."""

from lakesim.spatial.bounds import WaterBounds

__all__ = ["WaterBounds"]
