# src/landclass/vector/geom.py

"""
This module provides geometric operations and geometry-type inspection for vector data.
"""

from enum import Enum
import logging

from landclass.exceptions import (
    MissingInputError,
    MixedGeometryTypesError,
    UnsupportedGeometryError
)
from landclass.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "GeometryKind",
    "geometry_kind",
    "to_crs",
    "validate"
]

class GeometryKind(Enum):
    POINT = "point"
    POLYGON = "polygon"

_KIND_BY_TYPE = {
    "Point": GeometryKind.POINT,
    "MultiPoint": GeometryKind.POINT,
    "Polygon": GeometryKind.POLYGON,
    "MultiPolygon": GeometryKind.POLYGON,
}

def geometry_kind(vector: Vector) -> GeometryKind:
    """
    Classify a training collection as uniformly points or uniformly polygons.

    Multi-part geometries count as their single-part type.

    Args:
        vector: Training features.

    Returns:
        GeometryKind: POINT or POLYGON.

    Raises:
        MissingInputError: If the collection holds no geometries.
        MixedGeometryTypesError: If points and polygons (or other types) are mixed.
        UnsupportedGeometryError: If every geometry is of a type other than point/polygon.
    """
    types = vector.geom_types
    if not types:
        raise MissingInputError("Training features contain no geometries")

    kinds = {_KIND_BY_TYPE.get(geom_type) for geom_type in types}
    if len(kinds) > 1:
        raise MixedGeometryTypesError(types)

    kind = kinds.pop()
    if kind is None:
        raise UnsupportedGeometryError(
            f"Unsupported training geometry type(s) {types}. Provide Points or Polygons."
        )

    log.debug(f"Training geometry kind: {kind.value} ({types})")
    return kind

def to_crs(vector: Vector, target_crs) -> Vector:
    if vector.crs is None:
        raise ValueError("Vector has no CRS. Cannot reproject.")

    return Vector(vector.data.to_crs(target_crs))

def validate(vector: Vector, fix_invalid: bool = True, drop_invalid: bool = True) -> Vector:
    gdf = vector.data.copy()
    invalid_mask = ~gdf.is_valid

    if not invalid_mask.any():
        return Vector(gdf)

    log.warning(f"{int(invalid_mask.sum())} invalid geometries found")

    if fix_invalid:
        gdf.loc[invalid_mask, gdf.geometry.name] = gdf.loc[invalid_mask].geometry.buffer(0)
        if drop_invalid:
            gdf = gdf[gdf.is_valid]
    elif drop_invalid:
        gdf = gdf[gdf.is_valid]

    return Vector(gdf)

