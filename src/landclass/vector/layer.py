# src/landclass/vector/layer.py

"""
This module defines the core data structure for vector data (points, lines, polygons) and basic properties.
"""

import logging

import geopandas as gpd

log = logging.getLogger(__name__)

__all__ = [
    "Vector"
]

class Vector:
    def __init__(self, data: gpd.GeoDataFrame):
        if not isinstance(data, gpd.GeoDataFrame):
            raise TypeError(f"Expected GeoDataFrame, got {type(data)}")
        self._data = data

    @property
    def data(self) -> gpd.GeoDataFrame:
        return self._data

    @property
    def crs(self):
        return self._data.crs

    @property
    def bounds(self):
        return self._data.total_bounds

    @property
    def columns(self):
        return self._data.columns.tolist()

    @property
    def geom_types(self):
        return sorted(set(self._data.geom_type.dropna()))

    def copy(self) -> 'Vector':
        return Vector(self._data.copy())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"<Vector features={len(self._data)} crs={self.crs}>"
