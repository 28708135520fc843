# src/landclass/classify.py

"""
This module trains pixel classifiers from point or polygon training data and
predicts class rasters from them.

Estimators come from scikit-learn. Class labels are encoded as integer class ids
(1..k, in sorted label order) so the predicted raster can reserve 0 for no-data.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import polars as pl
from rasterio.features import geometry_mask
from rasterio.transform import rowcol
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix
from sklearn.neighbors import KNeighborsClassifier
from sklearn.svm import SVC

from landclass.exceptions import (
    ColumnNotFoundError,
    RasterValidationError,
    UnsupportedModelError
)
from landclass.raster.layer import Raster
from landclass.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "MODELS",
    "ModelFit",
    "TrainedModel",
    "build_estimator",
    "valid_pixel_mask",
    "sample_points",
    "train_points",
    "train_polygons",
    "predict"
]

MODELS = {
    "rf": RandomForestClassifier,
    "svm": SVC,
    "gbm": GradientBoostingClassifier,
    "knn": KNeighborsClassifier,
}

CLASS_NODATA = 0

@dataclass
class ModelFit:
    """
    Training and validation report of a fitted classifier.

    Attributes:
        model: Model kind ('rf', 'svm', ...).
        classes: Class labels; class id k corresponds to classes[k-1].
        n_train: Number of training samples.
        n_validation: Number of validation samples (0 without validation).
        train_accuracy: Accuracy of the model on its own training samples.
        overall_accuracy: Validation overall accuracy, None without validation data.
        kappa: Validation Cohen's kappa, None without validation data.
        confusion: Validation confusion matrix (rows = reference, columns = prediction).
    """
    model: str
    classes: List[Any]
    n_train: int
    n_validation: int
    train_accuracy: float
    overall_accuracy: Optional[float] = None
    kappa: Optional[float] = None
    confusion: Optional[pl.DataFrame] = None

    @property
    def has_validation(self) -> bool:
        return self.n_validation > 0

@dataclass
class TrainedModel:
    estimator: Any
    feature_names: List[str]
    classes: List[Any]
    model_fit: ModelFit = field(repr=False)

    def label_of(self, class_id: int) -> Any:
        return self.classes[class_id - 1]

def build_estimator(model: str = "rf", random_state: Optional[int] = None, **params):
    """
    Instantiate an unfitted scikit-learn classifier.

    Args:
        model: One of 'rf', 'svm', 'gbm', 'knn' (any casing).
        random_state: Seed forwarded to estimators that accept one.
        **params: Estimator hyperparameters.

    Raises:
        UnsupportedModelError: If the model kind is unknown.
    """
    key = str(model).lower()
    if key not in MODELS:
        raise UnsupportedModelError(
            f"Unsupported model '{model}'. Must be one of: {sorted(MODELS)}"
        )

    if key != "knn" and random_state is not None:
        params.setdefault("random_state", random_state)

    return MODELS[key](**params)

def valid_pixel_mask(values: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    """
    Mask of samples whose every band is finite and differs from nodata.

    Args:
        values: Array with bands along the first axis.
        nodata: Raster nodata value or None.

    Returns:
        np.ndarray: Boolean array with the first axis reduced.
    """
    valid = np.isfinite(values).all(axis=0)
    if nodata is not None and not np.isnan(nodata):
        valid &= (values != nodata).all(axis=0)
    return valid

def _check_response(vector: Vector, response_col: str):
    if response_col not in vector.columns:
        raise ColumnNotFoundError(response_col, vector.columns)

def _encode(labels: np.ndarray, classes: np.ndarray) -> np.ndarray:
    return np.searchsorted(classes, labels).astype(np.int32) + 1

def _check_partition(train_partition: Optional[float]):
    if train_partition is not None and not 0 < train_partition < 1:
        raise ValueError(f"train_partition must lie in (0, 1), got {train_partition}")

def sample_points(
    raster: Raster,
    points: Vector,
    response_col: str
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read the pixel values under every training point.

    Points outside the raster or on pixels holding NaN/nodata in any band are dropped.

    Args:
        raster: Feature stack.
        points: Point features in the raster CRS.
        response_col: Column holding the class label.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Feature matrix (n, bands) and labels (n,).
    """
    _check_response(points, response_col)

    gdf = points.data.explode(index_parts=False)
    gdf = gdf[~gdf.geometry.is_empty & gdf.geometry.notna()]
    gdf = gdf[gdf[response_col].notna()]

    if gdf.empty:
        return np.empty((0, raster.count), dtype=raster.dtype), np.empty(0, dtype=object)

    rows, cols = rowcol(raster.transform, gdf.geometry.x.to_numpy(), gdf.geometry.y.to_numpy())
    rows = np.asarray(rows, dtype=np.int64)
    cols = np.asarray(cols, dtype=np.int64)

    inside = (rows >= 0) & (rows < raster.height) & (cols >= 0) & (cols < raster.width)
    values = raster.data[:, rows[inside], cols[inside]]
    labels = gdf[response_col].to_numpy()[inside]

    valid = valid_pixel_mask(values, raster.nodata)
    dropped = len(gdf) - int(valid.sum())
    if dropped:
        log.warning(f"{dropped} training points dropped (outside raster or no-data)")

    return values[:, valid].T, labels[valid]

def _fit(
    raster: Raster,
    X_train: np.ndarray,
    y_train: np.ndarray,
    X_val: Optional[np.ndarray],
    y_val: Optional[np.ndarray],
    model: str,
    random_state: Optional[int],
    model_params: Dict[str, Any]
) -> TrainedModel:
    if len(y_train) == 0:
        raise RasterValidationError("No usable training samples: features do not cover valid pixels")

    labels = y_train if y_val is None else np.concatenate([y_train, y_val])
    classes = np.unique(labels)

    estimator = build_estimator(model, random_state=random_state, **model_params)
    log.info(f"Training {model} on {len(y_train)} samples ({len(classes)} classes)")

    train_ids = _encode(y_train, classes)
    estimator.fit(X_train, train_ids)
    train_accuracy = float(accuracy_score(train_ids, estimator.predict(X_train)))

    fit = ModelFit(
        model=str(model).lower(),
        classes=classes.tolist(),
        n_train=int(len(y_train)),
        n_validation=0,
        train_accuracy=train_accuracy
    )

    if y_val is not None and len(y_val) > 0:
        val_ids = _encode(y_val, classes)
        predicted = estimator.predict(X_val)
        ids = list(range(1, len(classes) + 1))
        matrix = confusion_matrix(val_ids, predicted, labels=ids)

        fit.n_validation = int(len(y_val))
        fit.overall_accuracy = float(accuracy_score(val_ids, predicted))
        fit.kappa = float(cohen_kappa_score(val_ids, predicted, labels=ids))
        fit.confusion = pl.DataFrame(
            {"reference": [str(c) for c in fit.classes]}
        ).with_columns(
            [pl.Series(str(c), matrix[:, i]) for i, c in enumerate(fit.classes)]
        )
        log.info(
            f"Validation on {fit.n_validation} samples: "
            f"overall accuracy {fit.overall_accuracy:.3f}, kappa {fit.kappa:.3f}"
        )
    else:
        log.warning("No validation samples; model fit reports training accuracy only")

    return TrainedModel(
        estimator=estimator,
        feature_names=raster.names,
        classes=fit.classes,
        model_fit=fit
    )

def train_points(
    raster: Raster,
    points: Vector,
    response_col: str,
    train_partition: Optional[float] = None,
    model: str = "rf",
    random_state: Optional[int] = None,
    **model_params
) -> TrainedModel:
    """
    Train a classifier from point training data.

    When train_partition is given, every point draws u ~ U(0, 1); points with
    u < train_partition train the model and the rest validate it.

    Args:
        raster: Feature stack.
        points: Point features in the raster CRS.
        response_col: Column holding the class label.
        train_partition: Proportion of points used for training, None for all.
        model: Model kind (see build_estimator).
        random_state: Seed for the partition and the estimator.
        **model_params: Estimator hyperparameters.

    Returns:
        TrainedModel: Fitted model with its validation report.
    """
    _check_partition(train_partition)
    X, y = sample_points(raster, points, response_col)

    if train_partition is None:
        return _fit(raster, X, y, None, None, model, random_state, model_params)

    rng = np.random.default_rng(random_state)
    in_train = rng.random(len(y)) < train_partition
    log.debug(f"Point partition: {int(in_train.sum())} training, {int((~in_train).sum())} validation")

    return _fit(
        raster, X[in_train], y[in_train], X[~in_train], y[~in_train],
        model, random_state, model_params
    )

def _polygon_pixels(raster: Raster, geometries, valid: np.ndarray) -> np.ndarray:
    if len(geometries) == 0:
        return np.empty(0, dtype=np.int64)

    inside = geometry_mask(
        list(geometries),
        out_shape=(raster.height, raster.width),
        transform=raster.transform,
        invert=True
    )
    return np.flatnonzero(inside & valid)

def _draw(pixels: np.ndarray, n: Optional[int], rng: np.random.Generator) -> np.ndarray:
    if n is None or n >= len(pixels):
        return pixels
    return rng.choice(pixels, size=n, replace=False)

def train_polygons(
    raster: Raster,
    polygons: Vector,
    response_col: str,
    n_samples: Optional[int] = 100,
    n_samples_v: Optional[int] = 50,
    train_partition: Optional[float] = 0.66,
    model: str = "rf",
    random_state: Optional[int] = None,
    **model_params
) -> TrainedModel:
    """
    Train a classifier from polygon training data.

    Polygons are split per class into training and validation polygons (every
    class keeps at least one training polygon). Up to n_samples training and
    n_samples_v validation pixels are then drawn per class, without replacement,
    from the valid pixels the polygons cover.

    Args:
        raster: Feature stack.
        polygons: Polygon features in the raster CRS.
        response_col: Column holding the class label.
        n_samples: Training pixels per class, None for all covered pixels.
        n_samples_v: Validation pixels per class, None for all covered pixels.
        train_partition: Proportion of polygons used for training, None for all.
        model: Model kind (see build_estimator).
        random_state: Seed for the partition, the sampling and the estimator.
        **model_params: Estimator hyperparameters.

    Returns:
        TrainedModel: Fitted model with its validation report.
    """
    _check_partition(train_partition)
    _check_response(polygons, response_col)

    gdf = polygons.data[polygons.data[response_col].notna()]
    rng = np.random.default_rng(random_state)
    valid = valid_pixel_mask(raster.data, raster.nodata)
    flat = raster.data.reshape(raster.count, -1)

    train_idx, train_lab, val_idx, val_lab = [], [], [], []

    for label, group in gdf.groupby(response_col, sort=True):
        geoms = group.geometry.to_numpy()

        if train_partition is None:
            in_train = np.ones(len(geoms), dtype=bool)
        else:
            draws = rng.random(len(geoms))
            in_train = draws < train_partition
            if not in_train.any():
                in_train[np.argmin(draws)] = True

        train_pool = _polygon_pixels(raster, geoms[in_train], valid)
        val_pool = np.setdiff1d(_polygon_pixels(raster, geoms[~in_train], valid), train_pool)

        if len(train_pool) == 0:
            log.warning(f"Class '{label}' covers no valid pixels and is skipped")
            continue

        chosen = _draw(train_pool, n_samples, rng)
        train_idx.append(chosen)
        train_lab.append(np.full(len(chosen), label, dtype=object))

        chosen_v = _draw(val_pool, n_samples_v, rng)
        val_idx.append(chosen_v)
        val_lab.append(np.full(len(chosen_v), label, dtype=object))

        log.debug(
            f"Class '{label}': {int(in_train.sum())}/{len(geoms)} training polygons, "
            f"{len(chosen)} training and {len(chosen_v)} validation pixels"
        )

    if not train_idx:
        raise RasterValidationError("No usable training samples: polygons do not cover valid pixels")

    train_idx = np.concatenate(train_idx)
    val_idx = np.concatenate(val_idx)
    y_train = np.concatenate(train_lab)
    y_val = np.concatenate(val_lab)

    return _fit(
        raster,
        flat[:, train_idx].T, y_train,
        flat[:, val_idx].T, y_val,
        model, random_state, model_params
    )

def predict(raster: Raster, trained: TrainedModel, chunk_size: int = 1_000_000) -> Raster:
    """
    Classify every pixel of a raster.

    Pixels with a NaN, infinite or nodata value in any band are left as no-data.

    Args:
        raster: Feature stack with the same layer names, in the same order,
                as the stack the model was trained on.
        trained: Model returned by train_points / train_polygons.
        chunk_size: Number of pixels passed to the estimator at once.

    Returns:
        Raster: Single int32 band named 'class' holding class ids (nodata 0).

    Raises:
        RasterValidationError: If the layer names differ from the trained features.
    """
    if raster.names != list(trained.feature_names):
        raise RasterValidationError(
            f"Raster layers {raster.names} do not match the trained features {trained.feature_names}"
        )

    pixels = raster.data.reshape(raster.count, -1)
    valid = valid_pixel_mask(pixels, raster.nodata)
    out = np.full(pixels.shape[1], CLASS_NODATA, dtype=np.int32)

    positions = np.flatnonzero(valid)
    log.info(f"Predicting {len(positions)} pixels")

    for start in range(0, len(positions), chunk_size):
        block = positions[start:start + chunk_size]
        out[block] = trained.estimator.predict(pixels[:, block].T).astype(np.int32)

    return Raster(
        data=out.reshape(1, raster.height, raster.width),
        transform=raster.transform,
        crs=raster.crs,
        nodata=CLASS_NODATA,
        band_names=["class"]
    )
