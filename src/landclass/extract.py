# src/landclass/extract.py

"""
This module extracts per-class results from a classified raster.

extract_polygons turns every class of a class raster into one dissolved polygon
feature. extract_rasters cuts an image to each of those polygons.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import geopandas as gpd
from rasterio.features import shapes
from shapely.geometry import shape
from shapely.ops import unary_union

from landclass.exceptions import RasterValidationError
from landclass.features import align_features, as_pyproj_crs
from landclass.raster.layer import Raster
from landclass.raster.io import save as save_raster, resolve_raster
from landclass.raster.geom import crop, mask
from landclass.raster.utils import resolve_driver, RASTER_DRIVERS
from landclass.vector.layer import Vector
from landclass.vector.io import save_vector, VECTOR_DRIVERS

log = logging.getLogger(__name__)

__all__ = [
    "extract_polygons",
    "extract_rasters"
]

def _value_key(value: Any) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)

@resolve_raster
def extract_polygons(
    class_raster: Raster,
    save: bool = True,
    datatype: str = "gpkg",
    band: str = "class",
    append: bool = False,
    out_dir: Union[str, Path] = "class_polygons",
    labels: Optional[Dict[int, Any]] = None
) -> Dict[str, Vector]:
    """
    Polygonize every class of a classified raster.

    Each distinct valid value of the band is converted to a binary mask,
    polygonized and dissolved into a single (multi)polygon feature.

    Args:
        class_raster: Classified raster (or path to one).
        save: Write each class to '<out_dir>/<key>.<datatype>'.
        datatype: Output format, one of 'gpkg', 'shp', 'geojson'.
        band: Name of the layer holding the class values.
        append: Append to existing files instead of replacing them.
        out_dir: Output directory.
        labels: Optional mapping of class value to label, used as output key.

    Returns:
        Dict[str, Vector]: One single-feature Vector per class. The feature's
        `band` column holds the class value.

    Raises:
        RasterValidationError: If `band` is not a layer of the raster.
        ValueError: If datatype is unsupported.
    """
    if class_raster.find_band(band) is None:
        raise RasterValidationError(
            f"Layer '{band}' not found in raster. Available layers: {class_raster.names}"
        )

    driver = resolve_driver(datatype, VECTOR_DRIVERS) if save else None

    values = class_raster.get_band(band)
    valid = np.isfinite(values)
    if class_raster.nodata is not None and not np.isnan(class_raster.nodata):
        valid &= values != class_raster.nodata

    crs = as_pyproj_crs(class_raster.crs)
    results = {}

    for value in np.unique(values[valid]):
        class_mask = valid & (values == value)

        geometries = [
            shape(geometry)
            for geometry, _ in shapes(
                class_mask.astype(np.uint8),
                mask=class_mask,
                transform=class_raster.transform
            )
        ]

        key = _value_key(value)
        if labels is not None and value.item() in labels:
            key = str(labels[value.item()])

        gdf = gpd.GeoDataFrame(
            {band: [value.item()]},
            geometry=[unary_union(geometries)],
            crs=crs
        )
        results[key] = Vector(gdf)
        log.info(f"Extracted class {key} ({int(class_mask.sum())} pixels, {len(geometries)} parts)")

        if save:
            out_path = Path(out_dir) / f"{key}.{datatype.lower().lstrip('.')}"
            save_vector(results[key], out_path, driver=driver, append=append)

    return results

@resolve_raster
def extract_rasters(
    raster: Raster,
    polygons: Union[Mapping, Vector, gpd.GeoDataFrame],
    out_dir: Union[str, Path] = "output_masked",
    overwrite: bool = True,
    datatype: str = "tif",
    save: bool = True
) -> Dict[str, Raster]:
    """
    Cut a raster to each polygon entry.

    Every entry is reprojected to the raster CRS when needed, the raster is cropped
    to the entry bounds and pixels outside the geometry become NaN (integer stacks
    are promoted to float32).

    Args:
        raster: Image to cut (or path to one).
        polygons: Mapping of key to polygon features (as returned by extract_polygons),
                  or a Vector/GeoDataFrame where each row is an entry keyed by its index.
        out_dir: Output directory.
        overwrite: Replace existing files.
        datatype: Output format, 'tif', 'tiff' (GeoTIFF) or 'img' (Erdas Imagine).
        save: Write each result to '<out_dir>/<key>.<datatype>'.

    Returns:
        Dict[str, Raster]: Masked raster per entry.

    Raises:
        FileExistsError: If an output exists and overwrite is False.
        ValueError: If datatype is unsupported.
    """
    driver = resolve_driver(datatype, RASTER_DRIVERS) if save else None
    suffix = datatype.lower().lstrip('.')

    if isinstance(polygons, Mapping):
        entries = dict(polygons)
    else:
        gdf = polygons.data if isinstance(polygons, Vector) else polygons
        entries = {str(idx): gdf.loc[[idx]] for idx in gdf.index}

    if save and not overwrite:
        existing = [Path(out_dir) / f"{key}.{suffix}" for key in entries]
        existing = [path for path in existing if path.exists()]
        if existing:
            raise FileExistsError(f"Output files already exist: {[str(p) for p in existing]}")

    results = {}
    for key, entry in entries.items():
        aligned = align_features(entry, raster)
        cropped = crop(raster, tuple(aligned.bounds))
        masked = mask(cropped, aligned.data.geometry.to_numpy())
        results[str(key)] = masked
        log.info(f"Masked raster for '{key}' with shape {masked.shape}")

        if save:
            save_raster(masked, Path(out_dir) / f"{key}.{suffix}", driver=driver, overwrite=overwrite)

    return results
