# tests/unit/test_bands.py

import pytest
import numpy as np

from landclass.raster import Raster, BAND_ROLES, SENSOR_BANDS, apply_band_roles, rename_bands
from landclass.exceptions import MissingInputError, UnsupportedSensorError, RasterValidationError

def _numbered_stack(count, grid_transform):
    """Stack where every band holds its own 1-based position as value."""
    data = np.stack([np.full((2, 2), i + 1, dtype=np.int16) for i in range(count)])
    return Raster(data=data, transform=grid_transform, crs="EPSG:32618")

@pytest.mark.parametrize("sensor", [
    "Landsat8", "landsat8", "LANDSAT8",
    "Landsat7", "landsat5", "Sentinel2", "SENTINEL2"
])
def test_subset_returns_six_role_bands(sensor, grid_transform):
    stack = _numbered_stack(12, grid_transform)

    result = apply_band_roles(stack, sensor, subset=True)

    assert result.count == 6
    assert result.names == list(BAND_ROLES)

    # Values prove the right positions were picked, in role order
    positions = SENSOR_BANDS[sensor.lower()]
    assert [int(result.data[i, 0, 0]) for i in range(6)] == list(positions)

def test_subset_false_preserves_count_and_order(grid_transform):
    stack = _numbered_stack(8, grid_transform)

    result = apply_band_roles(stack, "landsat8", subset=False)

    assert result.count == 8
    assert np.array_equal(result.data, stack.data)
    assert result.names == ["Band_1", "Blue", "Green", "Red", "NIR", "SWIR1", "SWIR2", "Band_8"]

def test_input_is_not_mutated(grid_transform):
    stack = _numbered_stack(7, grid_transform)
    before = stack.names

    apply_band_roles(stack, "landsat8", subset=False)
    apply_band_roles(stack, "landsat8", subset=True)

    assert stack.names == before

def test_landsat7_uses_band_eight_for_swir2(grid_transform):
    stack = _numbered_stack(8, grid_transform)

    result = apply_band_roles(stack, "landsat7")

    assert int(result.get_band("SWIR2")[0, 0]) == 8

def test_unsupported_sensor_fails(grid_transform):
    stack = _numbered_stack(7, grid_transform)

    with pytest.raises(UnsupportedSensorError) as excinfo:
        apply_band_roles(stack, "modis")

    message = str(excinfo.value)
    for name in ("Landsat5", "Landsat7", "Landsat8", "Sentinel2"):
        assert name in message

@pytest.mark.parametrize("sensor", [None, ""])
def test_missing_sensor_fails(sensor, grid_transform):
    with pytest.raises(MissingInputError):
        apply_band_roles(_numbered_stack(7, grid_transform), sensor)

def test_missing_raster_fails():
    with pytest.raises(MissingInputError):
        apply_band_roles(None, "landsat8")

def test_too_few_bands_fails(grid_transform):
    with pytest.raises(RasterValidationError, match="at least 12 bands"):
        apply_band_roles(_numbered_stack(6, grid_transform), "sentinel2")

def test_rename_collision_with_untouched_band(grid_transform):
    stack = _numbered_stack(8, grid_transform).with_names(
        ["Blue", "b2", "b3", "b4", "b5", "b6", "b7", "b8"]
    )

    # Landsat 8 maps Blue to band 2, so band 1 would keep a duplicate 'Blue'
    with pytest.raises(RasterValidationError):
        apply_band_roles(stack, "landsat8", subset=False)

def test_rename_bands_alias():
    assert rename_bands is apply_band_roles
