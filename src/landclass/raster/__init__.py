# src/landclass/raster/__init__.py
#
# Copyright (c) The landclass project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The raster subpackage provides core functionality for handling band stacks,
including I/O operations, sensor band semantics, spectral index computation
and stacking/cropping/masking utilities.
"""
# Core data structure
from .layer import (
    Raster
)

# I/O operations
from .io import (
    load,
    save,
    resolve_raster
)

# Resource management
from .resources import (
    MemoryEstimate,
    estimate_memory
)

# Sensor band semantics
from .bands import (
    BAND_ROLES,
    SENSOR_BANDS,
    supported_sensors,
    apply_band_roles,
    rename_bands
)

# Spectral index registry
from .indices import (
    SpectralIndex,
    IndexCatalog,
    INDEX_ORDER
)

# Compute functions
from .compute_index import (
    calculate_index_block,
    resolve_indices,
    compute_indices,
    calc_indices
)

# Geometry utilities
from .geom import (
    check_alignment,
    stack_bands,
    stack_change_pair,
    crop,
    mask,
    nodata_to_nan
)

# Shared utilities
from .utils import (
    resolve_envi_path,
    resolve_driver,
    RASTER_DRIVERS
)

__all__ = [
    # Layer
    "Raster",

    # I/O
    "load",
    "save",
    "resolve_raster",

    # Resources
    "MemoryEstimate",
    "estimate_memory",

    # Band semantics
    "BAND_ROLES",
    "SENSOR_BANDS",
    "supported_sensors",
    "apply_band_roles",
    "rename_bands",

    # Spectral registry
    "SpectralIndex",
    "IndexCatalog",
    "INDEX_ORDER",

    # Index generation
    "calculate_index_block",
    "resolve_indices",
    "compute_indices",
    "calc_indices",

    # Geom utilities
    "check_alignment",
    "stack_bands",
    "stack_change_pair",
    "crop",
    "mask",
    "nodata_to_nan",

    # Utils
    "resolve_envi_path",
    "resolve_driver",
    "RASTER_DRIVERS"
]
