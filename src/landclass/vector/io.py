# src/landclass/vector/io.py

"""
This module provides functions for reading and writing vector data (points, lines, polygons) using GeoPandas.
"""

from pathlib import Path
from typing import Union, Callable, Optional
from functools import wraps
import logging

import geopandas as gpd

from landclass.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "VECTOR_DRIVERS",
    "load_vector",
    "save_vector",
    "resolve_vector"
]

VECTOR_DRIVERS = {
    "gpkg": "GPKG",
    "shp": "ESRI Shapefile",
    "geojson": "GeoJSON",
}

def load_vector(path: Union[str, Path], engine: str = "pyogrio", **kwargs) -> Vector:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")

    gdf = gpd.read_file(path, engine=engine, **kwargs)
    log.debug(f"Loaded {len(gdf)} features from {path.name}")
    return Vector(gdf)

def save_vector(
    vector: Vector,
    path: Union[str, Path],
    driver: Optional[str] = None,
    append: bool = False,
    engine: str = "pyogrio",
    **kwargs
) -> Path:
    """
    Write a Vector to disk.

    Args:
        vector: Vector to write.
        path: Output file. The driver is inferred from the extension when not given.
        driver: OGR driver name (e.g. 'GPKG', 'ESRI Shapefile').
        append: Append features to an existing file instead of replacing it.
        engine: GeoPandas I/O engine.

    Returns:
        Path: The written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if driver is None:
        driver = VECTOR_DRIVERS.get(path.suffix.lower().lstrip('.'))

    mode = "a" if append and path.exists() else "w"
    vector.data.to_file(path, driver=driver, engine=engine, mode=mode, **kwargs)
    log.debug(f"Wrote {len(vector)} features → {path} (mode={mode})")
    return path

def resolve_vector(func: Callable):
    @wraps(func)
    def wrapper(input_obj: Union[str, Path, Vector], *args, **kwargs):
        if input_obj is None:
            return func(None, *args, **kwargs)

        if isinstance(input_obj, (str, Path)):
            vector_obj = load_vector(input_obj)
        elif isinstance(input_obj, Vector):
            vector_obj = input_obj
        elif isinstance(input_obj, gpd.GeoDataFrame):
            vector_obj = Vector(input_obj)
        else:
            raise TypeError(f"Expected file path or Vector object, got {type(input_obj)}")

        return func(vector_obj, *args, **kwargs)
    return wrapper
