# src/landclass/raster/compute_index.py
"""
This module computes spectral indices from named band stacks and appends them as new layers.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

import numexpr as ne
import numpy as np

from landclass.exceptions import (
    InvalidIndexNameError,
    MissingInputError,
    MissingParameterError,
    MissingRequiredBandError,
    RasterValidationError
)
from .layer import Raster
from .indices import IndexCatalog, SpectralIndex
from .geom import nodata_to_nan

log = logging.getLogger(__name__)

__all__ = [
    "calculate_index_block",
    "resolve_indices",
    "compute_indices",
    "calc_indices"
]

def _normalize_request(indices: Union[str, Iterable[str], None]) -> List[str]:
    if indices is None:
        return []
    if isinstance(indices, str):
        indices = [indices]
    return [str(name).strip().lower() for name in indices]

def resolve_indices(
    raster: Raster,
    indices: Union[str, Iterable[str], None],
    L: Optional[float] = None,
    catalog: Optional[IndexCatalog] = None
) -> List[SpectralIndex]:
    """
    Validate an index request against a raster without computing anything.

    Args:
        raster: Band stack carrying role names (Blue/Green/Red/NIR/SWIR1/SWIR2).
        indices: Index identifiers, any casing.
        L: Soil adjustment factor, only consumed by SAVI.
        catalog: Index registry. Defaults to the built-in catalog.

    Returns:
        List[SpectralIndex]: The requested indices in enumeration order.

    Raises:
        InvalidIndexNameError: If any identifier is not in the catalog.
        MissingRequiredBandError: If a requested index needs absent bands.
        MissingParameterError: If a required parameter (L) is None.
        RasterValidationError: If an output layer name already exists in the stack.
    """
    catalog = catalog or IndexCatalog()
    requested = set(_normalize_request(indices))

    unknown = [name for name in requested if name not in catalog]
    if unknown:
        raise InvalidIndexNameError(unknown, catalog.names())

    params = {"L": L}
    lookup = raster.lookup
    resolved = []

    for key in catalog.names():
        if key not in requested:
            continue
        index = catalog.get(key)

        missing = [band for band in index.bands if band not in lookup]
        if missing:
            raise MissingRequiredBandError(index.key, missing, raster.names)

        for param in index.params:
            if params.get(param) is None:
                raise MissingParameterError(param, index.key)

        if index.name.lower() in lookup:
            raise RasterValidationError(
                f"Raster already has a layer named '{index.name}'; cannot append {index.key}"
            )

        resolved.append(index)

    return resolved

def calculate_index_block(
    raster: Raster,
    formula: str,
    band_mapping: Dict[str, int],
    params: Optional[Dict[str, float]] = None
) -> np.ndarray:
    """
    Evaluate one formula over the bands of a raster.

    Integer bands are promoted to float64 so divisions follow IEEE-754 rules
    (division by zero gives inf/NaN). Pixels where any input band equals the
    raster nodata value are NaN in the result.

    Args:
        raster: Source raster.
        formula: numexpr expression.
        band_mapping: Formula variable -> 1-based band index.
        params: Scalar variables of the formula.

    Returns:
        np.ndarray: 2D float array.
    """
    local_dict = {}
    for var_name, band_idx in band_mapping.items():
        band = raster.get_band(band_idx)
        if not np.issubdtype(band.dtype, np.floating):
            band = band.astype(np.float64)
        local_dict[var_name] = band

    mask = None
    if raster.nodata is not None and not np.isnan(raster.nodata):
        mask = np.ones(raster.data.shape[1:], dtype=bool)
        for arr in local_dict.values():
            mask &= (arr != raster.nodata)

        for var_name in local_dict:
            local_dict[var_name] = np.where(mask, local_dict[var_name], 1.0)

    for name, value in (params or {}).items():
        local_dict[name] = float(value)

    result_array = ne.evaluate(formula, local_dict=local_dict)

    if mask is not None:
        result_array = np.where(mask, result_array, np.nan)

    return result_array

def compute_indices(
    raster: Raster,
    indices: Union[str, Iterable[str], None] = ("ndvi", "ndwi", "ndbi", "ndmi"),
    L: Optional[float] = None,
    catalog: Optional[IndexCatalog] = None
) -> Raster:
    """
    Compute spectral indices and append them to the band stack.

    Band roles are matched case-insensitively ('nir', 'NIR' and 'Nir' are the same
    band). Every request is validated before any index is computed, so a failure
    never leaves a partially extended stack behind.

    Args:
        raster: Band stack with role-named bands (see apply_band_roles).
        indices: Identifiers from ndvi, ndwi, ndbi, ndmi, ndsi, ewi, sr, savi (any casing).
        L: Soil adjustment factor. Required when savi is requested.
        catalog: Index registry. Defaults to the built-in catalog.

    Returns:
        Raster: The input layers followed by one layer per index, named with the
        uppercase identifier, in the order ndvi, ndwi, ndbi, ndmi, ndsi, ewi, sr, savi.
        Integer stacks are promoted to float64 to hold the index values. If the
        input has a nodata value, its no-data pixels become NaN and the result
        has nodata=NaN.
    """
    if raster is None:
        raise MissingInputError("raster input missing")

    resolved = resolve_indices(raster, indices, L=L, catalog=catalog)
    if not resolved:
        return raster

    lookup = raster.lookup
    out_dtype = raster.dtype if np.issubdtype(raster.dtype, np.floating) else np.dtype(np.float64)

    layers = []
    for index in resolved:
        log.info(f"Calculating {index.name}")
        band_mapping = {band: lookup[band] for band in index.bands}
        params = {param: L for param in index.params}
        layers.append(calculate_index_block(raster, index.formula, band_mapping, params).astype(out_dtype))

    # Index layers mark no-data with NaN; band layers follow the same marker
    base = raster
    if raster.nodata is not None and not np.isnan(raster.nodata):
        base = nodata_to_nan(raster, out_dtype)

    stacked = np.concatenate(
        [base.data.astype(out_dtype, copy=False), np.stack(layers)],
        axis=0
    )

    return Raster(
        data=stacked,
        transform=raster.transform,
        crs=raster.crs,
        nodata=base.nodata,
        band_names=raster.names + [index.name for index in resolved]
    )

calc_indices = compute_indices
