# src/landclass/vector/__init__.py
#
# Copyright (c) The landclass project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The vector subpackage provides core functionality for handling vector data (points, polygons).
This includes I/O operations, geometry validation and training-geometry inspection.
"""

# I/O and data structure
from .layer import (
    Vector
)

from .io import (
    VECTOR_DRIVERS,
    load_vector,
    save_vector,
    resolve_vector
)

# Geometric operations

from .geom import (
    GeometryKind,
    geometry_kind,
    to_crs,
    validate
)

__all__ = [
    # I/O and data structure
    "Vector",
    "VECTOR_DRIVERS",
    "load_vector",
    "save_vector",
    "resolve_vector",

    # Geometric operations
    "GeometryKind",
    "geometry_kind",
    "to_crs",
    "validate"
]
