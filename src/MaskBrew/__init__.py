"""Provide package metadata and the public packing API for `MaskBrew`."""

__version__ = "1.0.0"

from .core import (  # noqa: E402
    ArrayImageSource,
    ImageSource,
    InvalidDimensionsError,
    PackingError,
    SizeMismatch,
    Slot,
    derive_name,
    load_source,
)
from .packing import (  # noqa: E402
    DEFAULT_SIZE,
    ChannelSpec,
    PackedImage,
    PackRequest,
    SizeResolution,
    composite,
    pack,
    resolve,
)

__all__ = [
    "__version__",
    "ArrayImageSource", "ImageSource", "load_source",
    "InvalidDimensionsError", "PackingError", "SizeMismatch",
    "Slot", "ChannelSpec", "PackRequest", "PackedImage", "SizeResolution",
    "DEFAULT_SIZE", "resolve", "composite", "pack", "derive_name",
]
