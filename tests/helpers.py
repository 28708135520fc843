# tests/helpers.py

import numpy as np
from shapely.geometry import box
from landclass.raster.layer import Raster

# UTM 18N scene, 10 m pixels
TEST_CRS = "EPSG:32618"
ORIGIN_X = 500000.0
ORIGIN_Y = 4500100.0
PIXEL_SIZE = 10.0

def pixel_center(row: int, col: int):
    """Map coordinates of the center of pixel (row, col) of the test grid."""
    return (
        ORIGIN_X + (col + 0.5) * PIXEL_SIZE,
        ORIGIN_Y - (row + 0.5) * PIXEL_SIZE
    )

def pixel_box(row_start: int, col_start: int, row_end: int, col_end: int):
    """Polygon covering pixels row_start..row_end, col_start..col_end (inclusive) of the test grid."""
    return box(
        ORIGIN_X + col_start * PIXEL_SIZE,
        ORIGIN_Y - (row_end + 1) * PIXEL_SIZE,
        ORIGIN_X + (col_end + 1) * PIXEL_SIZE,
        ORIGIN_Y - row_start * PIXEL_SIZE
    )

def assert_raster_integrity(current: Raster, reference: Raster, tolerance: float = 0.01):
    """Check that pixel values haven't drifted significantly."""
    curr_mean = np.nanmean(current.data)
    ref_mean = np.nanmean(reference.data)
    diff = abs(curr_mean - ref_mean)
    assert diff < tolerance, f"Mean drift too high: {diff:.6f} (Tol: {tolerance})"

def assert_grid_match(r1: Raster, r2: Raster):
    """Strictly verify two rasters share the exact same grid."""
    assert r1.crs == r2.crs, \
        f"CRS mismatch: {r1.crs} != {r2.crs}"

    assert r1.shape[1:] == r2.shape[1:], \
        f"Shape mismatch: {r1.shape} != {r2.shape}"

    assert np.allclose(np.array(r1.transform), np.array(r2.transform), atol=1e-9), \
        "Transform mismatch (Pixel alignment error)"
