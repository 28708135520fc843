# src/landclass/features.py

"""
This module coerces training features into a Vector and aligns them to the CRS of a reference raster.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd
import geopandas as gpd
from pyproj import CRS
from pyproj.exceptions import CRSError, ProjError
from shapely.geometry.base import BaseGeometry

from landclass.exceptions import (
    CRSTransformError,
    MissingInputError,
    UnconvertibleFeaturesError
)
from landclass.raster.layer import Raster
from landclass.raster.io import load
from landclass.vector.layer import Vector
from landclass.vector.io import load_vector
from landclass.vector.geom import to_crs

log = logging.getLogger(__name__)

__all__ = [
    "as_pyproj_crs",
    "coerce_features",
    "align_features"
]

_XY_COLUMNS = (("x", "y"), ("lon", "lat"))

def as_pyproj_crs(crs: Any) -> Optional[CRS]:
    """
    Convert any CRS representation (rasterio CRS, EPSG code, WKT, pyproj CRS) to a pyproj CRS.
    """
    if crs is None:
        return None
    if isinstance(crs, CRS):
        return crs
    if hasattr(crs, "to_wkt"):
        return CRS.from_wkt(crs.to_wkt())
    return CRS.from_user_input(crs)

def _from_dataframe(df: pd.DataFrame) -> gpd.GeoDataFrame:
    if "geometry" in df.columns:
        if not df["geometry"].map(lambda g: isinstance(g, BaseGeometry) or g is None).all():
            raise UnconvertibleFeaturesError("Column 'geometry' does not hold shapely geometries")
        return gpd.GeoDataFrame(df.copy(), geometry="geometry")

    lowered = {str(col).lower(): col for col in df.columns}
    for x_name, y_name in _XY_COLUMNS:
        if x_name in lowered and y_name in lowered:
            x_col, y_col = lowered[x_name], lowered[y_name]
            geometry = gpd.points_from_xy(df[x_col], df[y_col])
            return gpd.GeoDataFrame(df.copy(), geometry=geometry)

    raise UnconvertibleFeaturesError(
        f"DataFrame has neither a 'geometry' column nor coordinate columns "
        f"(x/y or lon/lat). Columns: {list(df.columns)}"
    )

def _from_mapping(mapping: Mapping) -> gpd.GeoDataFrame:
    kind = mapping.get("type")
    if kind == "FeatureCollection":
        features = mapping.get("features", [])
    elif kind == "Feature":
        features = [mapping]
    else:
        raise UnconvertibleFeaturesError(
            f"Mapping is not a GeoJSON Feature or FeatureCollection (type={kind!r})"
        )
    try:
        return gpd.GeoDataFrame.from_features(features)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise UnconvertibleFeaturesError(f"Malformed GeoJSON features: {e}") from e

def coerce_features(features: Any, crs: Any = None) -> Vector:
    """
    Coerce a feature-like object into a Vector.

    Accepted inputs are a Vector, GeoDataFrame, GeoSeries, a path to a vector file,
    a DataFrame with a 'geometry' column or coordinate columns (x/y, lon/lat),
    a GeoJSON Feature/FeatureCollection mapping, or a sequence of shapely geometries.

    Args:
        features: Input features.
        crs: CRS assigned only when the coerced data carries none.

    Returns:
        Vector: The coerced features.

    Raises:
        UnconvertibleFeaturesError: If the input cannot be read as geometries.
    """
    if isinstance(features, Vector):
        gdf = features.data
    elif isinstance(features, gpd.GeoDataFrame):
        gdf = features
    elif isinstance(features, gpd.GeoSeries):
        gdf = gpd.GeoDataFrame(geometry=features)
    elif isinstance(features, (str, Path)):
        gdf = load_vector(features).data
    elif isinstance(features, pd.DataFrame):
        gdf = _from_dataframe(features)
    elif isinstance(features, Mapping):
        gdf = _from_mapping(features)
    elif (
        isinstance(features, (list, tuple))
        and features
        and all(isinstance(g, BaseGeometry) for g in features)
    ):
        gdf = gpd.GeoDataFrame(geometry=list(features))
    else:
        raise UnconvertibleFeaturesError(
            f"Cannot convert {type(features).__name__} to spatial features"
        )

    if gdf.crs is None and crs is not None:
        gdf = gdf.set_crs(as_pyproj_crs(crs))

    return Vector(gdf)

def align_features(
    features: Any,
    reference_raster: Union[Raster, str, Path],
    crs: Any = None
) -> Vector:
    """
    Coerce features and reproject them into the CRS of a reference raster.

    Features already in the reference CRS are returned without reprojection,
    so aligning twice gives the same result as aligning once.

    Args:
        features: Feature-like input (see coerce_features).
        reference_raster: Raster (or path to one) defining the target CRS.
        crs: CRS of the features when the input itself carries none.

    Returns:
        Vector: Features in the raster CRS.

    Raises:
        MissingInputError: If features or reference_raster is None.
        UnconvertibleFeaturesError: If the features cannot be coerced.
        CRSTransformError: If either side has no CRS or the transform fails.
    """
    if features is None:
        raise MissingInputError("features input missing")
    if reference_raster is None:
        raise MissingInputError("reference raster input missing")

    if isinstance(reference_raster, (str, Path)):
        reference_raster = load(reference_raster)

    vector = coerce_features(features, crs=crs)

    if vector.crs is None:
        raise CRSTransformError("Features have no CRS; pass crs= to declare it")
    if reference_raster.crs is None:
        raise CRSTransformError("Reference raster has no CRS")

    try:
        target = as_pyproj_crs(reference_raster.crs)
    except CRSError as e:
        raise CRSTransformError(f"Reference raster CRS is not usable: {e}") from e

    if vector.crs == target:
        log.debug("Features already in raster CRS")
        return vector

    log.info(f"Reprojecting {len(vector)} features to {target.to_string()}")

    try:
        reprojected = to_crs(vector, target)
    except (CRSError, ProjError, ValueError) as e:
        raise CRSTransformError(f"Failed to transform features to raster CRS: {e}") from e

    if len(reprojected) and not np.isfinite(reprojected.bounds).all():
        raise CRSTransformError("Transform produced non-finite coordinates")

    return reprojected
