# src/landclass/pipeline.py

"""
This module orchestrates the full supervised classification workflow.

Steps:
    1. Coercion, cleaning and CRS alignment of the training features.
    2. Band renaming/subsetting by sensor and optional spectral indices,
       applied identically to a second image when one is given.
    3. Stacking of both images for change detection.
    4. Model training dispatched on the geometry type of the training features.
    5. Pixel-wise prediction of the preprocessed stack.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Union

from landclass.exceptions import ColumnNotFoundError, MissingInputError
from landclass.raster.layer import Raster
from landclass.raster.io import load
from landclass.raster.bands import apply_band_roles
from landclass.raster.compute_index import compute_indices
from landclass.raster.geom import check_alignment, stack_change_pair
from landclass.vector.layer import Vector
from landclass.vector.geom import GeometryKind, geometry_kind
from landclass.features import align_features, coerce_features
from landclass.loaders import load_training_features
from landclass.classify import ModelFit, TrainedModel, train_points, train_polygons, predict

log = logging.getLogger(__name__)

__all__ = [
    "ClassificationConfig",
    "ClassificationResult",
    "preprocess_raster",
    "auto_classify"
]

@dataclass
class ClassificationConfig:
    """
    Parameters of the classification workflow.

    Args:
        sensor: Sensor of the input image(s) ('landsat5', 'landsat7', 'landsat8', 'sentinel2').
                Required when rename_bands is True.
        rename_bands: Rename (and subset) bands to their sensor roles.
        subset: Keep only the six role bands. Ignored if rename_bands is False.
        calc_indices: Append spectral indices before training.
        indices: Spectral indices to compute. Ignored if calc_indices is False.
        L: Soil adjustment factor for SAVI.
        model: Classifier kind ('rf', 'svm', 'gbm', 'knn').
        n_samples: Training pixels per class (polygon training only, None for all).
        n_samples_v: Validation pixels per class (polygon training only, None for all).
        train_partition: Proportion of points/polygons used for training.
        random_state: Seed for partitioning, sampling and the estimator.
        model_params: Extra estimator hyperparameters.
    """
    sensor: Optional[str] = None
    rename_bands: bool = True
    subset: bool = True
    calc_indices: bool = False
    indices: Sequence[str] = ("ndvi", "ndwi")
    L: Optional[float] = None
    model: str = "rf"
    n_samples: Optional[int] = 100
    n_samples_v: Optional[int] = 50
    train_partition: Optional[float] = 0.66
    random_state: Optional[int] = None
    model_params: Dict[str, Any] = field(default_factory=dict)

@dataclass
class ClassificationResult:
    classified: Raster
    model_fit: ModelFit
    preprocessed: Raster
    features: Vector
    model: TrainedModel = field(repr=False)

def _train_from_points(raster: Raster, features: Vector, response_col: str, config: ClassificationConfig) -> TrainedModel:
    return train_points(
        raster, features, response_col,
        train_partition=config.train_partition,
        model=config.model,
        random_state=config.random_state,
        **config.model_params
    )

def _train_from_polygons(raster: Raster, features: Vector, response_col: str, config: ClassificationConfig) -> TrainedModel:
    return train_polygons(
        raster, features, response_col,
        n_samples=config.n_samples,
        n_samples_v=config.n_samples_v,
        train_partition=config.train_partition,
        model=config.model,
        random_state=config.random_state,
        **config.model_params
    )

TRAINERS: Dict[GeometryKind, Callable[..., TrainedModel]] = {
    GeometryKind.POINT: _train_from_points,
    GeometryKind.POLYGON: _train_from_polygons,
}

def _resolve_config(config: Optional[ClassificationConfig], overrides: Dict[str, Any]) -> ClassificationConfig:
    config = config or ClassificationConfig()
    known = {f.name for f in dataclasses.fields(ClassificationConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise TypeError(f"Unknown configuration option(s): {unknown}")
    return dataclasses.replace(config, **overrides)

def _as_raster(img: Union[str, Path, Raster]) -> Raster:
    return load(img) if isinstance(img, (str, Path)) else img

def preprocess_raster(raster: Raster, config: ClassificationConfig) -> Raster:
    """
    Apply band roles and spectral indices to one image.

    Args:
        raster: Input image.
        config: Workflow parameters (sensor, rename_bands, subset, calc_indices, indices, L).

    Returns:
        Raster: The preprocessed stack.
    """
    if config.rename_bands:
        raster = apply_band_roles(raster, config.sensor, subset=config.subset)

    if config.calc_indices:
        raster = compute_indices(raster, config.indices, L=config.L)

    return raster

def auto_classify(
    img: Union[str, Path, Raster],
    train_features: Any,
    response_col: str,
    img2: Optional[Union[str, Path, Raster]] = None,
    config: Optional[ClassificationConfig] = None,
    **overrides
) -> ClassificationResult:
    """
    Run the complete supervised classification of one image, or of a stacked
    pair of co-registered images for change detection.

    Every argument is validated before any processing starts.

    Args:
        img: Image to classify (Raster or path).
        train_features: Labelled training points or polygons (anything accepted by align_features).
        response_col: Attribute holding the class label.
        img2: Optional second image on the same grid as img.
        config: Workflow parameters. Defaults to ClassificationConfig().
        **overrides: Replace individual config fields, e.g. sensor="landsat8".

    Returns:
        ClassificationResult: Class raster, model fit report, preprocessed stack,
        aligned training features and the trained model.

    Raises:
        TypeError: If an override names no config field.
        MissingInputError: If img, train_features or response_col is missing, or
                           rename_bands is set without a sensor.
        ColumnNotFoundError: If response_col is not an attribute of the features.
        CRSMismatchError, ExtentMismatchError: If img2 is not on the grid of img.
    """
    config = _resolve_config(config, overrides)

    if img is None:
        raise MissingInputError("'img' input missing")
    if train_features is None:
        raise MissingInputError("'train_features' input missing")
    if not response_col:
        raise MissingInputError("'response_col' input missing")
    if config.rename_bands and not config.sensor:
        raise MissingInputError("'sensor' is required when rename_bands is enabled")

    features = coerce_features(train_features)
    if response_col not in features.columns:
        raise ColumnNotFoundError(response_col, features.columns)

    img = _as_raster(img)
    if img2 is not None:
        img2 = _as_raster(img2)
        check_alignment(img, img2, label="img2")

    log.info("Start pre-processing the train_features ...")
    features = align_features(features, img)
    features = load_training_features(features, response_col)

    kind = geometry_kind(features)

    if img2 is None:
        log.info("Start pre-processing the img ...")
        preprocessed = preprocess_raster(img, config)
    else:
        log.info("Start pre-processing img and img2 ...")
        preprocessed = stack_change_pair(
            preprocess_raster(img, config),
            preprocess_raster(img2, config)
        )
    log.info(f"Finished pre-processing: {preprocessed.count} layers {preprocessed.names}")

    log.info(f"Training from {len(features)} {kind.value} features")
    trained = TRAINERS[kind](preprocessed, features, response_col, config)

    classified = predict(preprocessed, trained)

    return ClassificationResult(
        classified=classified,
        model_fit=trained.model_fit,
        preprocessed=preprocessed,
        features=features,
        model=trained
    )
