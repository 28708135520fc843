# tests/unit/test_loaders.py

import pytest
import numpy as np
import geopandas as gpd
from shapely.geometry import Point

from landclass.loaders import load_training_features
from landclass.vector import Vector
from landclass.exceptions import ColumnNotFoundError

from helpers import TEST_CRS, pixel_center

def test_load_from_path(tmp_path, training_points):
    path = tmp_path / "training.gpkg"
    training_points.to_file(path)

    features = load_training_features(str(path), "landcover")

    assert isinstance(features, Vector)
    assert len(features) == 60

def test_missing_response_column(training_points):
    with pytest.raises(ColumnNotFoundError) as excinfo:
        load_training_features(training_points, "class_name")

    assert excinfo.value.column == "class_name"

def test_drops_unlabelled_features():
    gdf = gpd.GeoDataFrame(
        {'landcover': ['forest', None, np.nan]},
        geometry=[Point(pixel_center(0, 0)), Point(pixel_center(0, 1)), Point(pixel_center(0, 2))],
        crs=TEST_CRS
    )

    features = load_training_features(gdf, "landcover")

    assert features.data["landcover"].tolist() == ["forest"]

def test_all_unlabelled():
    gdf = gpd.GeoDataFrame(
        {'landcover': [None]},
        geometry=[Point(pixel_center(0, 0))],
        crs=TEST_CRS
    )

    with pytest.raises(ValueError):
        load_training_features(gdf, "landcover")

def test_repairs_bowtie(valid_poly, invalid_poly):
    gdf = gpd.GeoDataFrame(
        {'landcover': ['forest', 'water']},
        geometry=[valid_poly, invalid_poly],
        crs=TEST_CRS
    )

    features = load_training_features(gdf, "landcover")

    assert len(features) == 2
    assert features.data.is_valid.all()

def test_input_not_modified(valid_poly, invalid_poly):
    gdf = gpd.GeoDataFrame(
        {'landcover': ['forest', 'water']},
        geometry=[valid_poly, invalid_poly],
        crs=TEST_CRS
    )

    load_training_features(gdf, "landcover")

    assert not gdf.is_valid.all()
