# tests/conftest.py

import pytest
import numpy as np
import geopandas as gpd
from shapely.geometry import Point, Polygon
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from landclass.raster import Raster, BAND_ROLES

from helpers import ORIGIN_X, ORIGIN_Y, PIXEL_SIZE, TEST_CRS, pixel_center, pixel_box

@pytest.fixture
def grid_transform():
    """10 m pixels, top-left corner at (ORIGIN_X, ORIGIN_Y)."""
    return Affine.translation(ORIGIN_X, ORIGIN_Y) * Affine.scale(PIXEL_SIZE, -PIXEL_SIZE)

def _two_class_bands(height: int, width: int, seed: int = 0) -> np.ndarray:
    """
    Six role bands (Blue..SWIR2) of a scene whose left half is vegetation and
    right half is open water. Values carry small noise but the classes never overlap.
    """
    rng = np.random.default_rng(seed)
    vegetation = np.array([0.03, 0.06, 0.04, 0.45, 0.20, 0.10])
    water = np.array([0.08, 0.10, 0.06, 0.02, 0.01, 0.005])

    bands = np.empty((6, height, width), dtype=np.float32)
    half = width // 2
    bands[:, :, :half] = vegetation[:, None, None]
    bands[:, :, half:] = water[:, None, None]
    bands += rng.normal(0, 0.002, size=bands.shape).astype(np.float32)
    return np.abs(bands)

@pytest.fixture
def role_raster(grid_transform):
    """10x10 stack whose six bands already carry role names."""
    return Raster(
        data=_two_class_bands(10, 10),
        transform=grid_transform,
        crs=TEST_CRS,
        band_names=list(BAND_ROLES)
    )

@pytest.fixture
def landsat8_raster(grid_transform):
    """10x10 Landsat 8 style stack: coastal aerosol band followed by the six role bands."""
    roles = _two_class_bands(10, 10)
    coastal = np.full((1, 10, 10), 0.02, dtype=np.float32)
    return Raster(
        data=np.concatenate([coastal, roles]),
        transform=grid_transform,
        crs=TEST_CRS
    )

@pytest.fixture
def red_nir_raster(grid_transform):
    """2x2 stack with Red=1 and NIR=3 everywhere."""
    data = np.stack([
        np.ones((2, 2), dtype=np.float64),
        np.full((2, 2), 3.0)
    ])
    return Raster(data=data, transform=grid_transform, crs=TEST_CRS, band_names=["Red", "NIR"])

@pytest.fixture
def training_points():
    """Two columns of points per class: 'forest' on the left half, 'water' on the right half."""
    records = []
    for row in range(10):
        for col in (0, 1, 2):
            records.append({'landcover': 'forest', 'geometry': Point(pixel_center(row, col))})
        for col in (7, 8, 9):
            records.append({'landcover': 'water', 'geometry': Point(pixel_center(row, col))})
    return gpd.GeoDataFrame(records, crs=TEST_CRS)

@pytest.fixture
def class_polygons():
    """One polygon per class, each covering its full half of the scene (50 pixels)."""
    return gpd.GeoDataFrame(
        {
            'landcover': ['forest', 'water'],
            'geometry': [pixel_box(0, 0, 9, 4), pixel_box(0, 5, 9, 9)]
        },
        crs=TEST_CRS
    )

@pytest.fixture
def many_class_polygons():
    """Ten single-row strips per class, so polygons can be split into training and validation."""
    records = []
    for row in range(10):
        records.append({'landcover': 'forest', 'geometry': pixel_box(row, 0, row, 4)})
        records.append({'landcover': 'water', 'geometry': pixel_box(row, 5, row, 9)})
    return gpd.GeoDataFrame(records, crs=TEST_CRS)

@pytest.fixture
def class_raster(grid_transform):
    """Classified raster: class 1 on the left half, 2 on the right half, no-data on the first row."""
    data = np.ones((1, 10, 10), dtype=np.int32)
    data[:, :, 5:] = 2
    data[:, 0, :] = 0
    return Raster(data=data, transform=grid_transform, crs=TEST_CRS, nodata=0, band_names=["class"])

@pytest.fixture
def valid_poly():
    """Returns a simple square polygon."""
    return Polygon([(0, 0), (10, 0), (10, 10), (0, 10)])

@pytest.fixture
def invalid_poly():
    """Returns a self-intersecting 'bowtie' polygon."""
    # (0,0) -> (10,10) -> (0,10) -> (10,0) crosses itself
    return Polygon([(0, 0), (10, 10), (0, 10), (10, 0)])

@pytest.fixture
def mock_raster_factory(tmp_path):
    """
    Fixture: Returns a function writing synthetic GeoTIFFs to the temp dir.
    """
    def _factory(
        name: str = "mock.tif",
        count: int = 3,
        width: int = 10,
        height: int = 10,
        crs: str = TEST_CRS,
        dtype: str = "float32",
        nodata=None,
        descriptions=None,
        data=None
    ) -> str:
        path = tmp_path / name
        transform = Affine.translation(ORIGIN_X, ORIGIN_Y) * Affine.scale(PIXEL_SIZE, -PIXEL_SIZE)

        if data is None:
            rng = np.random.default_rng(42)
            data = (rng.random((count, height, width)) * 100).astype(dtype)
        count, height, width = data.shape

        profile = {
            'driver': 'GTiff',
            'height': height,
            'width': width,
            'count': count,
            'dtype': data.dtype.name,
            'crs': CRS.from_user_input(crs) if crs else None,
            'transform': transform,
            'nodata': nodata
        }

        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(data)
            for idx, desc in enumerate(descriptions or [], start=1):
                dst.set_band_description(idx, desc)

        return str(path)

    return _factory

@pytest.fixture
def mock_vector_factory(tmp_path):
    """
    Fixture: Returns a function writing a GeoDataFrame to a vector file in the temp dir.
    """
    def _factory(name: str, geometries, attributes=None, crs: str = TEST_CRS) -> str:
        path = tmp_path / name
        gdf = gpd.GeoDataFrame(dict(attributes or {}), geometry=list(geometries), crs=crs)
        gdf.to_file(path)
        return str(path)

    return _factory
