"""Core utilities -- re-exports all public symbols for convenience."""

from .slots import Slot, SLOT_ORDER
from .errors import InvalidDimensionsError, PackingError, SizeMismatch
from .io import load_image, save_image, to_grayscale, make_preview
from .sources import ArrayImageSource, ImageSource, load_source
from .naming import DEFAULT_NAME, MASK_SUFFIX, derive_name, remove_last_word
from .paths import get_output_path, source_directory, unique_path
from .logging import setup_logging

__all__ = [
    "Slot", "SLOT_ORDER",
    "InvalidDimensionsError", "PackingError", "SizeMismatch",
    "load_image", "save_image", "to_grayscale", "make_preview",
    "ArrayImageSource", "ImageSource", "load_source",
    "DEFAULT_NAME", "MASK_SUFFIX", "derive_name", "remove_last_word",
    "get_output_path", "source_directory", "unique_path",
    "setup_logging",
]
