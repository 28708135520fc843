# src/landclass/raster/bands.py

"""
This module maps sensor band layouts to physical band roles.

Each supported sensor is described by the 1-based positions of its Blue, Green,
Red, NIR, SWIR1 and SWIR2 bands in a standard product stack. Renaming relies on
that position, so the input raster has to keep the sensor's native band order.
"""

import logging
from typing import Dict, Tuple

from landclass.exceptions import MissingInputError, UnsupportedSensorError, RasterValidationError
from .layer import Raster

log = logging.getLogger(__name__)

__all__ = [
    "BAND_ROLES",
    "SENSOR_BANDS",
    "supported_sensors",
    "sensor_positions",
    "apply_band_roles",
    "rename_bands"
]

BAND_ROLES: Tuple[str, ...] = ("Blue", "Green", "Red", "NIR", "SWIR1", "SWIR2")

# Positions follow BAND_ROLES order
SENSOR_BANDS: Dict[str, Tuple[int, ...]] = {
    "landsat5": (1, 2, 3, 4, 5, 7),
    "landsat7": (1, 2, 3, 4, 5, 8),
    "landsat8": (2, 3, 4, 5, 6, 7),
    "sentinel2": (2, 3, 4, 8, 11, 12),
}

_DISPLAY_NAMES = {
    "landsat5": "Landsat5",
    "landsat7": "Landsat7",
    "landsat8": "Landsat8",
    "sentinel2": "Sentinel2",
}

def supported_sensors() -> Tuple[str, ...]:
    return tuple(_DISPLAY_NAMES[key] for key in SENSOR_BANDS)

def sensor_positions(sensor: str) -> Tuple[int, ...]:
    """
    Resolve a sensor identifier (case-insensitive) to its role band positions.

    Raises:
        MissingInputError: If no sensor is given.
        UnsupportedSensorError: If the sensor has no profile.
    """
    if not sensor:
        raise MissingInputError(
            f"Please specify the sensor (one of {', '.join(supported_sensors())})."
        )

    key = str(sensor).strip().lower()
    if key not in SENSOR_BANDS:
        raise UnsupportedSensorError(
            f"Sensor '{sensor}' not supported yet. "
            f"Supported sensors are {', '.join(supported_sensors())}."
        )
    return SENSOR_BANDS[key]

def apply_band_roles(raster: Raster, sensor: str, subset: bool = True) -> Raster:
    """
    Name the Blue, Green, Red, NIR, SWIR1 and SWIR2 bands of a sensor stack.

    Args:
        raster: Band stack in the sensor's native band order.
        sensor: One of Landsat5, Landsat7, Landsat8, Sentinel2 (any casing).
        subset: If True, keep only the six role bands (in role order). If False,
                keep every band in place and rename only the role bands.

    Returns:
        Raster: A new Raster; the input is left untouched.

    Raises:
        MissingInputError: If raster or sensor is missing.
        UnsupportedSensorError: If the sensor is unknown.
        RasterValidationError: If the raster has fewer bands than the sensor layout
            needs, or renaming would duplicate an existing band name.
    """
    if raster is None:
        raise MissingInputError("raster input missing")

    positions = sensor_positions(sensor)

    if raster.count < max(positions):
        raise RasterValidationError(
            f"Sensor '{sensor}' expects at least {max(positions)} bands, "
            f"raster has {raster.count}"
        )

    log.debug(f"Band roles for {sensor}: {dict(zip(BAND_ROLES, positions))}")

    if subset:
        return raster.select(list(positions), names=list(BAND_ROLES))

    names = raster.names
    for role, position in zip(BAND_ROLES, positions):
        names[position - 1] = role

    # Collisions with untouched bands are rejected by the Raster constructor
    return raster.with_names(names)

rename_bands = apply_band_roles
