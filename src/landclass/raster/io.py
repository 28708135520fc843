# src/landclass/raster/io.py

"""
This module handles all disk-based operations for raster data.
"""

import logging
from functools import wraps
from pathlib import Path
from typing import Union, Optional, List, Callable

import rasterio
from rasterio.windows import Window

from landclass.exceptions import RasterIOError
from .utils import resolve_envi_path, extract_band_indices, extract_band_names
from .layer import Raster
from .resources import estimate_memory

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "save",
    "resolve_raster"
]

def load(
    path: Union[str, Path],
    bands: Optional[Union[int, List[int]]] = None,
    window: Optional[Window] = None,
    driver: Optional[str] = None,
    check_memory: bool = True
) -> Raster:
    """
    Load a raster from disk into memory.

    This function reads a geospatial raster file and returns a Raster object
    with data loaded into RAM. Supports loading all bands, specific bands,
    or a spatial subset via a window. Band descriptions become layer names.

    Args:
        path: Path to raster file. All supported GDAL formats are accepted.
        bands: Specific band(s) to load (None=all, int=single, list=subset).
        window: Optional rasterio Window object to load only a spatial subset.
        driver: Optional GDAL driver name.
        check_memory: If True (default), estimates required RAM before loading
                      a full raster and raises MemoryError if it does not fit.

    Returns:
        Raster: In-memory Raster object
    """
    path = resolve_envi_path(Path(path))

    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    if check_memory and window is None:
        selected = [bands] if isinstance(bands, int) else bands
        estimate = estimate_memory(path, bands=selected)
        if not estimate.is_safe:
            log.error(f"Insufficient memory to load {path.name}: {estimate.reason}")
            raise MemoryError(f"Raster {path.name} does not fit in memory ({estimate.reason})")
        log.debug(f"Memory check passed for {path.name}: {estimate.reason}")

    log.debug(f"Loading raster: {path.name}")

    try:
        with rasterio.open(path, driver=driver) as src:
            indices = extract_band_indices(src, bands)
            data = src.read(indices, window=window)
            band_names = extract_band_names(src, indices)

            if window is not None:
                transform = src.window_transform(window)
            else:
                transform = src.transform

            return Raster(
                data=data,
                transform=transform,
                crs=src.crs,
                nodata=src.nodata,
                band_names=band_names
            )

    except rasterio.RasterioIOError as e:
        raise RasterIOError(f"Failed to read raster from {path}: {e}") from e

def save(
    raster: Raster,
    path: Union[str, Path],
    driver: Optional[str] = None,
    overwrite: bool = True,
    **profile_kwargs
) -> Path:
    """
    Write a Raster object to disk.
    Creates a new geospatial raster file from the in-memory Raster object.
    Layer names are stored as band descriptions.

    Args:
        raster: Raster object to save
        path: Output file path. All supported GDAL formats are accepted.
        driver: GDAL driver name. Defaults to GTiff.
        overwrite: If False, refuses to replace an existing file.
        **profile_kwargs: Override default rasterio profile settings.

    Returns:
        Path: The written file.

    Raises:
        FileExistsError: If the file exists and overwrite is False.
        RasterIOError: If GDAL fails to write the file.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Raster file already exists: {path}")

    path.parent.mkdir(parents=True, exist_ok=True)

    profile = raster.profile.copy()
    if driver is not None and driver != profile['driver']:
        profile['driver'] = driver
        profile.pop('compress', None)
    profile.update(profile_kwargs)

    log.info(f"Saving raster {raster.shape} → {path}")

    try:
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(raster.data)

            for name, idx in raster.band_names.items():
                dst.set_band_description(idx, name)

    except Exception as e:
        raise RasterIOError(f"Failed to save raster to {path}: {e}") from e

    return path

def resolve_raster(func: Callable):
    """
    Decorator: Resolves polymorphic inputs for pipeline functions.

    Ensures that the first argument of the decorated function is always a
    Raster object, regardless of whether the user passed a file path or
    an existing Raster object.

    Behavior:
    1. Input is path (str/Path) -> Calls load() (Cold Start).
    2. Input is Raster object -> Passes through (Warm Start).
    3. Input is None -> Passes None (the function reports the missing input).
    """
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, Raster, None], *args, **kwargs):
        if input_obj is None:
            return func(None, *args, **kwargs)

        if isinstance(input_obj, (str, Path)):
            try:
                raster = load(input_obj)
            except Exception:
                log.error(f"Auto-loading failed for {input_obj}")
                raise
        elif isinstance(input_obj, Raster):
            raster = input_obj
        else:
            raise TypeError(
                f"Function {func.__name__} expects a file path or Raster object, "
                f"got {type(input_obj).__name__}"
            )

        return func(raster, *args, **kwargs)

    return wrapper
