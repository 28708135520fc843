# src/landclass/loaders.py

import logging

from landclass.exceptions import ColumnNotFoundError
from landclass.vector import Vector, resolve_vector, validate as validate_geometries

log = logging.getLogger(__name__)

__all__ = [
    "load_training_features"
]

@resolve_vector
def load_training_features(
    vector: Vector,
    response_col: str,
    validate: bool = True,
    fix_invalid: bool = True
) -> Vector:
    """
    Loads training features and prepares them for classification.
    Returns a clean Vector object holding only labelled, valid geometries.

    This function handles:
    1. Geometry validation (if enabled)
    2. Response column check
    3. Removal of features without a response value

    Args:
        vector: The input Vector object.
                (If a path string is passed, @resolve_vector converts it
                 to a Vector object before this function runs).
        response_col: Name of the column holding the class label.
        validate: If True, runs geometry validation to remove/fix invalid features.
        fix_invalid: If validate=True, attempts to fix invalid geometries before dropping.

    Returns:
        Vector: Cleaned training features.

    Raises:
        ColumnNotFoundError: If response_col is not an attribute of the features.
        ValueError: If no usable features remain.
    """
    if response_col not in vector.columns:
        raise ColumnNotFoundError(response_col, vector.columns)

    if validate:
        log.info("Validating training geometries...")
        vector = validate_geometries(vector, fix_invalid=fix_invalid, drop_invalid=True)
        if len(vector) == 0:
            raise ValueError("No valid geometries remaining after validation!")

    gdf = vector.data
    missing = gdf[response_col].isna()
    if missing.any():
        log.warning(
            f"{int(missing.sum())} features have no value in '{response_col}' and are dropped"
        )
        gdf = gdf[~missing]

    if len(gdf) == 0:
        raise ValueError(f"No training features with a value in '{response_col}'")

    log.info(
        f"Loaded {len(gdf)} training features "
        f"({gdf[response_col].nunique()} classes in '{response_col}')"
    )

    return Vector(gdf.copy())
