# src/landclass/__init__.py
#
# Copyright (c) The landclass project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
landclass: supervised land-cover classification of multispectral imagery.

The package renames sensor bands to physical roles, derives spectral indices,
stacks image pairs for change detection, aligns training features to the image
and trains/predicts pixel classifiers. Per-class polygons and masked rasters
can be extracted from the result.
"""

__version__ = "0.1.0"

from . import exceptions
from . import raster
from . import vector

from .features import (
    coerce_features,
    align_features
)

from .classify import (
    ModelFit,
    TrainedModel,
    build_estimator,
    train_points,
    train_polygons,
    predict
)

from .extract import (
    extract_polygons,
    extract_rasters
)

from .loaders import (
    load_training_features
)

from .pipeline import (
    ClassificationConfig,
    ClassificationResult,
    preprocess_raster,
    auto_classify
)

__all__ = [
    "__version__",
    "exceptions",
    "raster",
    "vector",

    # Feature alignment
    "coerce_features",
    "align_features",

    # Classifier
    "ModelFit",
    "TrainedModel",
    "build_estimator",
    "train_points",
    "train_polygons",
    "predict",

    # Extraction
    "extract_polygons",
    "extract_rasters",

    # Loaders
    "load_training_features",

    # Pipeline
    "ClassificationConfig",
    "ClassificationResult",
    "preprocess_raster",
    "auto_classify"
]
