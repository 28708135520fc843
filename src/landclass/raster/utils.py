# src/landclass/raster/utils.py

"""
This module provides shared utility functions for raster operations.

Functions include path resolution for ENVI files,
band extraction and output format resolution.
"""
import logging
from pathlib import Path
from typing import Union, List, Optional, Dict

import rasterio

log = logging.getLogger(__name__)

__all__ = [
    "resolve_envi_path",
    "extract_band_indices",
    "extract_band_names",
    "resolve_driver",
    "RASTER_DRIVERS"
]

RASTER_DRIVERS = {
    "tif": "GTiff",
    "tiff": "GTiff",
    "img": "HFA",
}

def resolve_envi_path(path: Union[str, Path]) -> Path:
    """
    Resolve ENVI header/binary file confusion.
    If 'image.hdr' is passed, redirects to 'image' (binary).
    """
    path = Path(path)
    if path.suffix.lower() == '.hdr':
        binary_path = path.with_suffix('')
        if binary_path.exists():
            return binary_path
    return path

def extract_band_indices(
    src: rasterio.DatasetReader,
    bands: Optional[Union[int, List[int]]]
) -> List[int]:
    """
    Normalize band selection to a list of 1-based indices.
    """
    if bands is None:
        return list(src.indexes)
    elif isinstance(bands, int):
        return [bands]
    return list(bands)

def extract_band_names(
    src: rasterio.DatasetReader,
    indices: List[int]
) -> Dict[str, int]:
    """
    Extract descriptions/names for specific bands.

    Descriptions repeated across bands are only kept for their first occurrence;
    the Raster constructor names the remaining bands by position.
    """
    band_names = {}
    seen = set()
    for i, idx in enumerate(indices):
        if 0 <= (idx - 1) < len(src.descriptions):
            desc = src.descriptions[idx - 1]
            if desc and desc.lower() not in seen:
                band_names[desc] = i + 1
                seen.add(desc.lower())
    return band_names

def resolve_driver(datatype: str, drivers: Dict[str, str]) -> str:
    """
    Map a file extension ('gpkg', '.tif', ...) to a GDAL/OGR driver name.

    Raises:
        ValueError: If the extension is not one of the supported keys.
    """
    key = datatype.lower().lstrip('.')
    if key not in drivers:
        raise ValueError(f"Unsupported datatype '{datatype}'. Must be one of: {sorted(drivers)}")
    return drivers[key]
