# tests/unit/test_classify.py

import pytest
import numpy as np
import polars as pl
import geopandas as gpd
from shapely.geometry import Point
from sklearn.ensemble import RandomForestClassifier
from sklearn.neighbors import KNeighborsClassifier

from landclass.classify import (
    build_estimator,
    sample_points,
    train_points,
    train_polygons,
    predict,
    valid_pixel_mask
)
from landclass.raster import Raster
from landclass.vector import Vector
from landclass.exceptions import (
    ColumnNotFoundError,
    RasterValidationError,
    UnsupportedModelError
)

from helpers import TEST_CRS, pixel_center

# --- Estimators ---

def test_build_estimator_kinds():
    assert isinstance(build_estimator("rf", random_state=1), RandomForestClassifier)
    assert isinstance(build_estimator("KNN", n_neighbors=3), KNeighborsClassifier)
    assert build_estimator("rf", random_state=7).random_state == 7

def test_build_estimator_unknown():
    with pytest.raises(UnsupportedModelError):
        build_estimator("deep_forest")

# --- Sampling ---

def test_valid_pixel_mask():
    values = np.array([[1.0, np.nan, 3.0, -1.0], [1.0, 1.0, np.inf, 2.0]])
    assert valid_pixel_mask(values, nodata=-1).tolist() == [True, False, False, False]
    assert valid_pixel_mask(values, nodata=None).tolist() == [True, False, False, True]

def test_sample_points(role_raster, training_points):
    X, y = sample_points(role_raster, Vector(training_points), "landcover")

    assert X.shape == (60, 6)
    assert set(y) == {"forest", "water"}
    assert np.allclose(X[0], role_raster.data[:, 0, 0])

def test_sample_points_drops_outside_and_nodata(role_raster):
    data = role_raster.data.copy()
    data[3, 0, 0] = np.nan
    holey = Raster(data, role_raster.transform, role_raster.crs, band_names=role_raster.names)

    points = gpd.GeoDataFrame(
        {'landcover': ['forest', 'forest', 'water']},
        geometry=[Point(pixel_center(0, 0)), Point(pixel_center(0, 1)), Point(0, 0)],
        crs=TEST_CRS
    )

    X, y = sample_points(holey, Vector(points), "landcover")

    assert X.shape == (1, 6)
    assert y.tolist() == ["forest"]

def test_sample_points_missing_column(role_raster, training_points):
    with pytest.raises(ColumnNotFoundError):
        sample_points(role_raster, Vector(training_points), "class_name")

# --- Point training ---

def test_train_points_without_partition(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", random_state=0)

    fit = trained.model_fit
    assert trained.classes == ["forest", "water"]
    assert trained.feature_names == role_raster.names
    assert fit.n_train == 60
    assert fit.n_validation == 0
    assert not fit.has_validation
    assert fit.overall_accuracy is None
    assert fit.confusion is None
    assert fit.train_accuracy == 1.0

def test_train_points_with_partition(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", train_partition=0.5, random_state=3)

    fit = trained.model_fit
    assert fit.n_train + fit.n_validation == 60
    assert fit.has_validation
    assert fit.overall_accuracy == 1.0
    assert isinstance(fit.confusion, pl.DataFrame)
    assert fit.confusion.columns == ["reference", "forest", "water"]
    assert fit.confusion["forest"].sum() + fit.confusion["water"].sum() == fit.n_validation

def test_train_points_partition_is_seeded(role_raster, training_points):
    a = train_points(role_raster, Vector(training_points), "landcover", train_partition=0.5, random_state=11)
    b = train_points(role_raster, Vector(training_points), "landcover", train_partition=0.5, random_state=11)

    assert a.model_fit.n_train == b.model_fit.n_train

@pytest.mark.parametrize("partition", [0, 1, 1.5, -0.2])
def test_train_points_partition_range(partition, role_raster, training_points):
    with pytest.raises(ValueError):
        train_points(role_raster, Vector(training_points), "landcover", train_partition=partition)

def test_train_points_no_usable_samples(role_raster):
    far_away = gpd.GeoDataFrame({'landcover': ['forest']}, geometry=[Point(0, 0)], crs=TEST_CRS)

    with pytest.raises(RasterValidationError):
        train_points(role_raster, Vector(far_away), "landcover")

@pytest.mark.parametrize("model", ["rf", "svm", "gbm", "knn"])
def test_every_model_kind_separates_classes(model, role_raster, training_points):
    params = {"n_neighbors": 3} if model == "knn" else {}
    trained = train_points(role_raster, Vector(training_points), "landcover", model=model, random_state=0, **params)

    classified = predict(role_raster, trained)

    assert (classified.data[0, :, :5] == 1).all()
    assert (classified.data[0, :, 5:] == 2).all()

# --- Polygon training ---

def test_train_polygons_caps_samples_per_class(role_raster, class_polygons):
    trained = train_polygons(
        role_raster, Vector(class_polygons), "landcover",
        n_samples=5, train_partition=None, random_state=0
    )

    assert trained.model_fit.n_train == 10
    assert trained.model_fit.n_validation == 0

def test_train_polygons_all_pixels(role_raster, class_polygons):
    trained = train_polygons(
        role_raster, Vector(class_polygons), "landcover",
        n_samples=None, train_partition=None, random_state=0
    )

    assert trained.model_fit.n_train == 100

def test_train_polygons_with_validation(role_raster, many_class_polygons):
    trained = train_polygons(
        role_raster, Vector(many_class_polygons), "landcover",
        n_samples=10, n_samples_v=5, train_partition=0.5, random_state=1
    )

    fit = trained.model_fit
    assert 0 < fit.n_train <= 20
    assert fit.n_validation <= 10
    if fit.has_validation:
        assert fit.overall_accuracy == 1.0

def test_every_class_keeps_a_training_polygon(role_raster, class_polygons):
    # A single polygon per class always ends up in training, whatever the draw
    for seed in range(5):
        trained = train_polygons(
            role_raster, Vector(class_polygons), "landcover",
            train_partition=0.05, random_state=seed
        )
        assert trained.classes == ["forest", "water"]
        assert trained.model_fit.n_validation == 0

def test_train_polygons_missing_column(role_raster, class_polygons):
    with pytest.raises(ColumnNotFoundError):
        train_polygons(role_raster, Vector(class_polygons), "class_name")

# --- Prediction ---

def test_predict_output_layer(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", random_state=0)

    classified = predict(role_raster, trained)

    assert classified.names == ["class"]
    assert classified.dtype == np.int32
    assert classified.nodata == 0
    assert classified.shape == (1, 10, 10)
    assert classified.same_grid(role_raster)

def test_predict_leaves_invalid_pixels_empty(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", random_state=0)

    data = role_raster.data.copy()
    data[2, 4, 4] = np.nan
    holey = Raster(data, role_raster.transform, role_raster.crs, band_names=role_raster.names)

    classified = predict(holey, trained, chunk_size=7)

    assert classified.data[0, 4, 4] == 0
    assert classified.data[0, 4, 3] == 1

def test_predict_rejects_different_layers(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", random_state=0)

    with pytest.raises(RasterValidationError):
        predict(role_raster.select([1, 2, 3, 4]), trained)

def test_label_of(role_raster, training_points):
    trained = train_points(role_raster, Vector(training_points), "landcover", random_state=0)
    assert trained.label_of(2) == "water"
