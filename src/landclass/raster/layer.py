# src/landclass/raster/layer.py

import copy
import logging
from typing import Union, Optional, Dict, Any, Tuple, List, Sequence

import numpy as np
import rasterio
from rasterio.transform import Affine
from rasterio.crs import CRS

from landclass.exceptions import RasterValidationError

log = logging.getLogger(__name__)

__all__ = ["Raster", "BandNames"]

BandNames = Union[Dict[str, int], Sequence[str]]

class Raster:
    """
    The fundamental unit of the landclass pipeline: an in-memory band stack.

    A Raster is an "Envelope" that synchronizes:
    1. The 'Heavy' Data: A NumPy array of pixels in (Bands, Height, Width) format.
    2. The 'Light' Context: Geospatial metadata (CRS, Transform) and layer names.

    Rasters are treated as values. Every landclass operation returns a new Raster
    and leaves its input untouched; the pixel array may be shared between a Raster
    and its renamed copies, so it should be considered read-only.

    Attributes:
        data (np.ndarray): The pixel array in (Bands, Height, Width) format.
        transform (Affine): The affine transform matrix.
        crs (CRS): The Coordinate Reference System.
        nodata (float | int | None): The value representing missing data.
        band_names (Dict[str, int]): Mapping of layer names to 1-based band indices.
            Every band carries exactly one unique name.
    """

    def __init__(
        self,
        data: np.ndarray,
        transform: Affine,
        crs: Optional[CRS],
        nodata: Optional[Union[float, int]] = None,
        band_names: Optional[BandNames] = None
    ):
        """
        Initialize a Raster object.

        Args:
            data: Input array. Must be 2D (Height, Width) or 3D (Bands, Height, Width).
                  2D arrays are automatically promoted to 3D (1, Height, Width).
            transform: Geospatial transform (maps pixels to coordinates).
            crs: Coordinate Reference System.
            nodata: Value indicating no data.
            band_names: Either a mapping of names to 1-based band indices ('Red': 1)
                        or a sequence holding one name per band. Bands left unnamed
                        receive the default name 'Band_<i>'.

        Raises:
            RasterValidationError: If dimensions mismatch or band names are not unique.
        """
        self.validate_inputs(data, transform)

        # Enforce 3D structure (Bands, Height, Width)
        if data.ndim == 2:
            data = data[np.newaxis, :, :]

        self._data = data
        self.transform = transform
        self.crs = CRS.from_user_input(crs) if isinstance(crs, (str, int)) else crs
        self.nodata = nodata
        self._band_names = _normalize_band_names(band_names, data.shape[0])

    @staticmethod
    def validate_inputs(data: np.ndarray, transform: Affine):
        """Internal validation logic."""
        if not isinstance(data, np.ndarray):
            raise TypeError(f"Data must be numpy.ndarray, got {type(data)}")

        if data.ndim not in (2, 3):
            raise RasterValidationError(f"Data must be 2D or 3D, got shape {data.shape}")

        if not isinstance(transform, Affine):
            raise TypeError(f"Transform must be rasterio.Affine, got {type(transform)}")

    # Dynamic metadata properties

    @property
    def data(self) -> np.ndarray:
        """Access the raw pixel data."""
        return self._data

    @property
    def band_names(self) -> Dict[str, int]:
        """Copy of the name -> 1-based index mapping."""
        return dict(self._band_names)

    @property
    def names(self) -> List[str]:
        """Layer names in band order."""
        ordered = sorted(self._band_names.items(), key=lambda item: item[1])
        return [name for name, _ in ordered]

    @property
    def lookup(self) -> Dict[str, int]:
        """Case-insensitive view of the band names (lowercased name -> 1-based index)."""
        return {name.lower(): idx for name, idx in self._band_names.items()}

    @property
    def width(self) -> int:
        return self._data.shape[2]

    @property
    def height(self) -> int:
        return self._data.shape[1]

    @property
    def count(self) -> int:
        return self._data.shape[0]

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Returns (Bands, Height, Width)."""
        return self._data.shape

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (left, bottom, right, top) in CRS units."""
        return rasterio.transform.array_bounds(self.height, self.width, self.transform)

    @property
    def profile(self) -> Dict[str, Any]:
        """
        Generates a Rasterio-compliant profile based on current state.
        Properties like compression and tiling can be overridden in kwargs by passing
        rasterio profile parameters.
        """
        return {
            'driver': 'GTiff',
            'dtype': self._data.dtype,
            'nodata': self.nodata,
            'width': self.width,
            'height': self.height,
            'count': self.count,
            'crs': self.crs,
            'transform': self.transform,
            'compress': 'lzw',
        }

    def find_band(self, name: str) -> Optional[int]:
        """Return the 1-based index of a band matched case-insensitively, or None."""
        return self.lookup.get(name.lower())

    def get_band(self, identifier: Union[int, str]) -> np.ndarray:
        """
        Retrieve a specific band by 1-based index or name (case-insensitive).

        Returns:
            np.ndarray: 2D array of the band.
        """
        if isinstance(identifier, str):
            idx = self.find_band(identifier)
            if idx is None:
                raise KeyError(f"Band name '{identifier}' not found in {self.names}")
        else:
            idx = identifier

        if not (1 <= idx <= self.count):
            raise IndexError(f"Band index {idx} out of range (1-{self.count})")

        return self._data[idx - 1]

    def with_names(self, names: BandNames) -> 'Raster':
        """Returns a new Raster sharing this pixel array under different layer names."""
        return Raster(
            data=self._data,
            transform=self.transform,
            crs=self.crs,
            nodata=self.nodata,
            band_names=names
        )

    def select(self, indices: Sequence[int], names: Optional[Sequence[str]] = None) -> 'Raster':
        """
        Returns a new Raster holding only the given 1-based bands, in the given order.

        Args:
            indices: Bands to keep.
            names: Optional replacement names (one per kept band). Defaults to the
                   current names of the kept bands.
        """
        for idx in indices:
            if not (1 <= idx <= self.count):
                raise IndexError(f"Band index {idx} out of range (1-{self.count})")

        current = self.names
        if names is None:
            names = [current[idx - 1] for idx in indices]
        elif len(names) != len(indices):
            raise RasterValidationError(
                f"Got {len(names)} names for {len(indices)} selected bands"
            )

        return Raster(
            data=self._data[[idx - 1 for idx in indices]],
            transform=self.transform,
            crs=self.crs,
            nodata=self.nodata,
            band_names=list(names)
        )

    def same_grid(self, other: 'Raster') -> bool:
        """True if both rasters share CRS, dimensions and transform."""
        return (
            self.crs == other.crs and
            self.height == other.height and
            self.width == other.width and
            np.allclose(np.array(self.transform), np.array(other.transform), atol=1e-9)
        )

    def copy(self) -> 'Raster':
        """Returns a deep copy of the Raster."""
        return Raster(
            data=self._data.copy(),
            transform=copy.deepcopy(self.transform),
            crs=copy.deepcopy(self.crs),
            nodata=self.nodata,
            band_names=self.band_names
        )

    def __repr__(self) -> str:
        """Returns a string representation of the Raster object based on its metadata."""
        return (f"<Raster shape={self.shape} dtype={self._data.dtype} "
                f"bands={self.names} crs={self.crs}>")

    def __eq__(self, other: object) -> bool:
        """Checks equality based on metadata, layer names and pixel data."""
        if not isinstance(other, Raster):
            return NotImplemented

        # Check metadata first (cheap)
        meta_eq = (
            self.transform == other.transform and
            self.crs == other.crs and
            self.nodata == other.nodata and
            self.shape == other.shape and
            self.names == other.names
        )
        if not meta_eq:
            return False

        # Check data only if necessary (expensive)
        return np.array_equal(self._data, other.data, equal_nan=True)

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        """Allows np.array(raster_obj) to work directly."""
        if dtype is not None:
            return self._data.astype(dtype)
        if copy:
            return self._data.copy()
        return self._data

def _normalize_band_names(band_names: Optional[BandNames], count: int) -> Dict[str, int]:
    """
    Builds a complete, unique name -> index mapping for a stack of 'count' bands.

    Uniqueness is checked case-insensitively because every band lookup is.
    """
    if band_names is None:
        band_names = {}
    elif not isinstance(band_names, dict):
        band_names = list(band_names)
        if len(band_names) != count:
            raise RasterValidationError(
                f"Got {len(band_names)} band names for a raster with {count} bands"
            )
        duplicates = sorted({name for name in band_names if band_names.count(name) > 1})
        if duplicates:
            raise RasterValidationError(f"Band names must be unique, got duplicates {duplicates}")
        band_names = {name: i + 1 for i, name in enumerate(band_names)}

    by_index = {}
    for name, idx in band_names.items():
        if not isinstance(name, str) or not name:
            raise RasterValidationError(f"Band names must be non-empty strings, got {name!r}")
        if not (1 <= idx <= count):
            raise RasterValidationError(f"Band '{name}' points to index {idx} outside 1-{count}")
        if idx in by_index:
            raise RasterValidationError(
                f"Band {idx} is named twice ('{by_index[idx]}' and '{name}')"
            )
        by_index[idx] = name

    for idx in range(1, count + 1):
        by_index.setdefault(idx, f"Band_{idx}")

    seen = {}
    for idx in sorted(by_index):
        key = by_index[idx].lower()
        if key in seen:
            raise RasterValidationError(
                f"Duplicate band name '{by_index[idx]}' (bands {seen[key]} and {idx})"
            )
        seen[key] = idx

    return {by_index[idx]: idx for idx in sorted(by_index)}
