# src/landclass/exceptions.py

"""
This module defines the exception hierarchy shared by all landclass subpackages.

Every error derives from LandclassError. Where a builtin exception carries the
same meaning (ValueError for bad arguments, KeyError for missing columns or bands)
the class also derives from it, so callers catching builtins keep working.
"""

from typing import Iterable, Optional

__all__ = [
    "LandclassError",
    "MissingInputError",
    "UnsupportedSensorError",
    "InvalidIndexNameError",
    "MissingRequiredBandError",
    "MissingParameterError",
    "UnconvertibleFeaturesError",
    "CRSTransformError",
    "MixedGeometryTypesError",
    "UnsupportedGeometryError",
    "ColumnNotFoundError",
    "UnsupportedModelError",
    "RasterError",
    "RasterIOError",
    "RasterValidationError",
    "ExtentMismatchError",
    "CRSMismatchError"
]

class LandclassError(Exception):
    """Base class for all landclass errors."""

class MissingInputError(LandclassError, ValueError):
    """A required argument was not supplied."""

class UnsupportedSensorError(LandclassError, ValueError):
    """The sensor identifier has no band-role profile."""

class InvalidIndexNameError(LandclassError, ValueError):
    """One or more requested spectral indices are not in the catalog."""

    def __init__(self, names: Iterable[str], supported: Iterable[str]):
        self.names = sorted(names)
        self.supported = list(supported)
        super().__init__(
            f"Unsupported spectral indices: {self.names}. "
            f"Supported indices are: {self.supported}"
        )

class MissingRequiredBandError(LandclassError, KeyError):
    """A spectral index needs band roles the raster does not carry."""

    def __init__(self, index: str, missing: Iterable[str], available: Optional[Iterable[str]] = None):
        self.index = index
        self.missing = list(missing)
        self.available = list(available) if available is not None else []
        super().__init__(index, self.missing)

    def __str__(self) -> str:
        return (
            f"Index '{self.index}' requires bands {self.missing} which are missing "
            f"from the raster (available: {self.available})"
        )

class MissingParameterError(LandclassError, ValueError):
    """A formula parameter (e.g. the SAVI soil factor L) was not supplied."""

    def __init__(self, parameter: str, index: str):
        self.parameter = parameter
        self.index = index
        super().__init__(f"Index '{index}' requires parameter '{parameter}', got None")

class UnconvertibleFeaturesError(LandclassError, TypeError):
    """Input cannot be coerced to a geometry collection."""

class CRSTransformError(LandclassError):
    """Features could not be brought into the reference CRS."""

class MixedGeometryTypesError(LandclassError, ValueError):
    """A training collection mixes point and polygon geometries."""

    def __init__(self, types: Iterable[str]):
        self.types = sorted(set(types))
        super().__init__(
            f"Training data consists of mixed geometry types {self.types}. "
            "Provide single type training data (Polygons OR Points)."
        )

class UnsupportedGeometryError(LandclassError, ValueError):
    """Training geometries are uniform but neither points nor polygons."""

class ColumnNotFoundError(LandclassError, KeyError):
    """An attribute column is missing from a vector layer."""

    def __init__(self, column: str, available: Iterable[str]):
        self.column = column
        self.available = list(available)
        super().__init__(column)

    def __str__(self) -> str:
        return f"Column '{self.column}' not found. Available columns: {self.available}"

class UnsupportedModelError(LandclassError, ValueError):
    """The requested classifier kind is not available."""

class RasterError(LandclassError):
    """Base class for raster errors."""

class RasterIOError(RasterError, IOError):
    """Reading or writing a raster failed."""

class RasterValidationError(RasterError, ValueError):
    """A raster violates a structural invariant."""

class ExtentMismatchError(RasterError, ValueError):
    """Two rasters do not share the same pixel grid."""

class CRSMismatchError(RasterError, ValueError):
    """Two rasters do not share the same coordinate reference system."""
