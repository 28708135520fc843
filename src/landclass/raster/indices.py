# src/landclass/raster/indices.py
"""
This module defines the SpectralIndex data structure and the registry of supported spectral indices.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, Tuple

log = logging.getLogger(__name__)

__all__ = [
    "SpectralIndex",
    "IndexCatalog",
    "INDEX_ORDER"
]

@dataclass(frozen=True)
class SpectralIndex:
    """
    A band-math index evaluated with numexpr.

    Args:
        name: Output layer name (uppercase identifier).
        formula: numexpr expression over lowercase band roles and parameters.
        bands: Band roles (lowercase) the formula reads.
        params: Scalar parameters the formula needs (e.g. the SAVI soil factor L).
    """
    name: str
    formula: str
    bands: Tuple[str, ...]
    params: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return self.name.lower()

# Enumeration order; indices are computed and appended in this order
INDEX_ORDER: Tuple[str, ...] = ("ndvi", "ndwi", "ndbi", "ndmi", "ndsi", "ewi", "sr", "savi")

class IndexCatalog:
    def __init__(self):
        self._indices: Dict[str, SpectralIndex] = {}
        for index in (
            SpectralIndex("NDVI", "(nir - red) / (nir + red)", ("nir", "red")),
            SpectralIndex("NDWI", "(green - nir) / (green + nir)", ("green", "nir")),
            SpectralIndex("NDBI", "(swir1 - nir) / (swir1 + nir)", ("swir1", "nir")),
            SpectralIndex("NDMI", "(nir - swir1) / (nir + swir1)", ("nir", "swir1")),
            SpectralIndex("NDSI", "(green - swir1) / (green + swir1)", ("green", "swir1")),
            SpectralIndex("EWI", "2.5 * (green - swir1) / (green + 2.4 * swir1 + 1)", ("green", "swir1")),
            SpectralIndex("SR", "nir / red", ("nir", "red")),
            SpectralIndex("SAVI", "(nir - red) / ((nir + red + L) * (1 + L))", ("nir", "red"), ("L",)),
        ):
            self.register(index)

    def get(self, name: str) -> SpectralIndex:
        return self._indices[name.lower()]

    def names(self) -> Tuple[str, ...]:
        """Registered identifiers, built-ins first in enumeration order."""
        builtin = [key for key in INDEX_ORDER if key in self._indices]
        extra = [key for key in self._indices if key not in INDEX_ORDER]
        return tuple(builtin + extra)

    def register(self, index: SpectralIndex):
        self._indices[index.key] = index

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._indices
