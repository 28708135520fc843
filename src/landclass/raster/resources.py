# src/landclass/raster/resources.py

"""
This module checks whether a raster file fits in system memory before it is loaded.

Classification works on whole band stacks, so every stage holds the full
raster (plus index layers and the flattened feature matrix) in RAM.
"""

import logging
import psutil
from pathlib import Path
from typing import Union, Optional, List
from dataclasses import dataclass

import numpy as np
import rasterio

from .utils import resolve_envi_path

log = logging.getLogger(__name__)

__all__ = [
    "MemoryEstimate",
    "estimate_memory"
]

DEFAULT_SAFETY_FACTOR = 3.0
MIN_FREE_GB = 0.5

@dataclass(frozen=True)
class MemoryEstimate:
    """Estimation of memory requirements and safety for loading a raster.

    Args:
        total_required_bytes: Total bytes required to load raster (with overhead)
        available_system_bytes: Currently available system memory in bytes
        is_safe: Boolean indicating if loading is considered safe
        reason: Explanation for the safety assessment (e.g. "Req: 10GB, Avail: 8GB")
    """
    total_required_bytes: int
    available_system_bytes: int
    is_safe: bool
    reason: str

def estimate_memory(
    path: Union[str, Path],
    bands: Optional[List[int]] = None,
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
    min_free_gb: float = MIN_FREE_GB
) -> MemoryEstimate:
    """
    Checks if a raster fits in RAM safely, summing the dtype size of every band read.

    Args:
        path: Path to the raster file.
        bands: Optional 1-based band indices to consider (default all).
        safety_factor: Multiplier to account for processing overhead. Index layers
                       and the per-pixel feature matrix roughly triple the raw size.
        min_free_gb: Minimum free GB to leave available after loading.

    Returns:
        MemoryEstimate: Contains total required bytes, available bytes, safety boolean, and reason.
    """
    path = resolve_envi_path(Path(path))

    with rasterio.open(path) as src:
        indices = bands if bands is not None else list(src.indexes)
        bytes_per_pixel = sum(np.dtype(src.dtypes[i - 1]).itemsize for i in indices)
        raw_bytes = src.width * src.height * bytes_per_pixel

    total_required = int(raw_bytes * safety_factor)

    mem = psutil.virtual_memory()
    min_free_bytes = int(min_free_gb * (1024**3))
    is_safe = (total_required + min_free_bytes) <= mem.available

    reason = f"Req: {total_required/1e9:.2f}GB, Avail: {mem.available/1e9:.2f}GB"

    return MemoryEstimate(total_required, mem.available, is_safe, reason)
