"""Grayscale image sources consumed by the compositor."""

import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from .io import load_image, to_grayscale

logger = logging.getLogger("mask_packer.sources")


@runtime_checkable
class ImageSource(Protocol):
    """Read-only grayscale image with random-access sampling.

    ``sample(x, y)`` returns an intensity in [0, 1]. ``identifier`` names
    the asset (a file stem for file-backed sources) and may be None.
    """

    width: int
    height: int
    identifier: Optional[str]

    def sample(self, x: int, y: int) -> float:
        ...


class ArrayImageSource:
    """ImageSource backed by a 2-D float32 numpy array indexed ``[y, x]``."""

    def __init__(self, data: np.ndarray, identifier: Optional[str] = None,
                 path: Optional[str] = None):
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim == 3:
            arr = to_grayscale(arr)
        if arr.ndim != 2:
            raise ValueError(f"source data must be HxW or HxWxC, got shape {arr.shape}")
        self._data = np.clip(arr, 0.0, 1.0)
        self._data.setflags(write=False)
        self.identifier = identifier
        self.path = path

    @classmethod
    def constant(cls, width: int, height: int, value: float,
                 identifier: Optional[str] = None) -> "ArrayImageSource":
        """Build a uniform source, mostly useful for tests and previews."""
        return cls(np.full((height, width), value, dtype=np.float32), identifier)

    @property
    def width(self) -> int:
        return int(self._data.shape[1])

    @property
    def height(self) -> int:
        return int(self._data.shape[0])

    def sample(self, x: int, y: int) -> float:
        return float(self._data[y, x])

    def as_array(self) -> np.ndarray:
        """Return the read-only ``(height, width)`` intensity plane."""
        return self._data

    def __repr__(self) -> str:
        return (
            f"ArrayImageSource({self.identifier!r}, {self.width}x{self.height})"
        )


def load_source(path: str, max_pixels: int = 0) -> ArrayImageSource:
    """Open an image file and expose it as a grayscale source.

    The identifier is the file name without extension.
    """
    arr = load_image(path, max_pixels=max_pixels)
    gray = to_grayscale(arr)
    logger.debug("Loaded source %s (%dx%d)", path, gray.shape[1], gray.shape[0])
    return ArrayImageSource(gray, identifier=Path(path).stem, path=str(path))
