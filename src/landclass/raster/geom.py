# src/landclass/raster/geom.py

import logging
import math
from typing import List, Union, Tuple, Iterable
from pathlib import Path

import numpy as np
from rasterio.features import geometry_mask
from rasterio.transform import Affine

from landclass.exceptions import (
    CRSMismatchError,
    ExtentMismatchError,
    MissingInputError,
    RasterValidationError
)
from .layer import Raster
from .io import load, resolve_raster

log = logging.getLogger(__name__)

__all__ = [
    "check_alignment",
    "stack_bands",
    "stack_change_pair",
    "crop",
    "mask",
    "nodata_to_nan"
]

def _has_value_nodata(nodata) -> bool:
    return nodata is not None and not np.isnan(nodata)

def _same_nodata(a, b) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if np.isnan(a) or np.isnan(b):
        return bool(np.isnan(a) and np.isnan(b))
    return a == b

def nodata_to_nan(raster: Raster, dtype=None) -> Raster:
    """
    Mark no-data pixels with NaN.

    Integer stacks are promoted to float32 (or to `dtype`) so that no valid value
    is mistaken for no-data. The result always has nodata=NaN.
    """
    if dtype is None:
        dtype = raster.dtype if np.issubdtype(raster.dtype, np.floating) else np.float32

    data = raster.data.astype(dtype, copy=True)
    if _has_value_nodata(raster.nodata):
        data[raster.data == raster.nodata] = np.nan

    return Raster(
        data=data,
        transform=raster.transform,
        crs=raster.crs,
        nodata=np.nan,
        band_names=raster.band_names
    )

def check_alignment(reference: Raster, other: Raster, label: str = "raster"):
    """
    Verify two rasters share the same pixel grid.

    Raises:
        CRSMismatchError: If the coordinate reference systems differ.
        ExtentMismatchError: If dimensions or transforms differ.
    """
    if reference.crs != other.crs:
        raise CRSMismatchError(
            f"CRS mismatch: {label} has {other.crs}, expected {reference.crs}"
        )

    if (reference.height, reference.width) != (other.height, other.width):
        raise ExtentMismatchError(
            f"Dimension mismatch: {label} is {other.height}x{other.width}, "
            f"expected {reference.height}x{reference.width}"
        )

    if not np.allclose(np.array(reference.transform), np.array(other.transform), atol=1e-9):
        raise ExtentMismatchError(
            f"Transform mismatch (pixel alignment error): {label} has {tuple(other.transform)[:6]}, "
            f"expected {tuple(reference.transform)[:6]}"
        )

def stack_bands(rasters: List[Union[str, Path, Raster]]) -> Raster:
    """
    Combines a list of Rasters into a single multi-band Raster.

    All inputs must share the same spatial grid (CRS, Transform, Dimensions)
    and their layer names must not collide. When the inputs carry different
    no-data values, every no-data pixel becomes NaN (nodata=NaN) and integer
    data is promoted to float.

    Args:
        rasters: List of paths or Raster objects.

    Returns:
        Raster: A single multi-band Raster object, layers in input order.

    Raises:
        CRSMismatchError, ExtentMismatchError: If grids differ.
        RasterValidationError: If two layers share a name.
    """
    if not rasters:
        raise ValueError("Cannot stack empty list of rasters.")

    resolved = [load(r) if isinstance(r, (str, Path)) else r for r in rasters]
    ref = resolved[0]

    for position, r in enumerate(resolved[1:], start=2):
        check_alignment(ref, r, label=f"raster #{position}")

    names = []
    for r in resolved:
        names.extend(r.names)

    lowered = [name.lower() for name in names]
    duplicates = sorted({name for name in names if lowered.count(name.lower()) > 1})
    if duplicates:
        raise RasterValidationError(f"Cannot stack rasters with duplicate layer names: {duplicates}")

    nodata = ref.nodata
    dtype = np.result_type(*[r.dtype for r in resolved])

    # Inputs with different no-data markers are unified on NaN
    if not all(_same_nodata(nodata, r.nodata) for r in resolved[1:]):
        log.debug(f"No-data values differ {[r.nodata for r in resolved]}, marking no-data with NaN")
        dtype = np.result_type(dtype, np.float32)
        resolved = [nodata_to_nan(r, dtype) for r in resolved]
        nodata = np.nan

    stacked_data = np.concatenate([r.data.astype(dtype, copy=False) for r in resolved], axis=0)

    log.info(f"Stacked {len(resolved)} rasters into new shape {stacked_data.shape}")

    return Raster(
        data=stacked_data,
        transform=ref.transform,
        crs=ref.crs,
        nodata=nodata,
        band_names=names
    )

def stack_change_pair(first: Raster, second: Raster, suffix: str = "_2") -> Raster:
    """
    Stack two co-registered images for change detection.

    Every layer name of the second image receives the suffix so both images
    can carry the same band and index names.

    Args:
        first: Earlier image (layers keep their names).
        second: Later image (layers are suffixed).
        suffix: Marker appended to the second image's layer names.

    Returns:
        Raster: First image layers followed by second image layers.
    """
    if first is None or second is None:
        raise MissingInputError("Both images are required to build a change stack")

    check_alignment(first, second, label="second image")

    renamed = second.with_names([f"{name}{suffix}" for name in second.names])
    return stack_bands([first, renamed])

@resolve_raster
def crop(raster: Raster, bounds: Tuple[float, float, float, float]) -> Raster:
    """
    Crop raster to specific geographic bounds.

    Args:
        raster (Raster): Input raster.
        bounds (Tuple): (minx, miny, maxx, maxy) in the same CRS as the raster.

    Returns:
        Raster: A new cropped Raster object.
    """
    minx, miny, maxx, maxy = bounds
    log.debug(f"Cropping raster to bounds: {bounds}")

    # Pixel coordinates of the bounds corners
    inverse = ~raster.transform
    cols, rows = zip(*(inverse * corner for corner in ((minx, maxy), (maxx, miny))))
    cols = [round(c, 6) for c in cols]
    rows = [round(r, 6) for r in rows]

    # Snap outwards to whole pixels so partially covered pixels are kept,
    # then clamp to image dimensions
    row_start = max(0, math.floor(min(rows)))
    row_end = min(raster.height, math.ceil(max(rows)))
    col_start = max(0, math.floor(min(cols)))
    col_end = min(raster.width, math.ceil(max(cols)))

    if row_end <= row_start or col_end <= col_start:
        raise RasterValidationError(f"Bounds {bounds} do not overlap the raster {raster.bounds}")

    new_data = raster.data[:, row_start:row_end, col_start:col_end].copy()

    # Transform of the top-left corner of the clamped slice
    new_transform = raster.transform * Affine.translation(col_start, row_start)

    return Raster(
        data=new_data,
        transform=new_transform,
        crs=raster.crs,
        nodata=raster.nodata,
        band_names=raster.band_names
    )

@resolve_raster
def mask(raster: Raster, geometries: Iterable, all_touched: bool = False) -> Raster:
    """
    Set every pixel outside the geometries to no-data.

    Float stacks are masked with NaN. Integer stacks are promoted to float32
    first so that no valid value is mistaken for no-data.

    Args:
        raster: Input raster.
        geometries: Shapely geometries (or GeoJSON-like mappings) in the raster CRS.
        all_touched: Include every pixel touched by a geometry, not only those
                     whose center lies inside.

    Returns:
        Raster: A new Raster with nodata=NaN.
    """
    geometries = list(geometries)
    if not geometries:
        raise MissingInputError("No geometries given to mask the raster with")

    outside = geometry_mask(
        geometries,
        out_shape=(raster.height, raster.width),
        transform=raster.transform,
        all_touched=all_touched
    )

    data = nodata_to_nan(raster).data
    data[:, outside] = np.nan

    return Raster(
        data=data,
        transform=raster.transform,
        crs=raster.crs,
        nodata=np.nan,
        band_names=raster.band_names
    )