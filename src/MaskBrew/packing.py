"""Pack up to four grayscale maps into one RGBA mask map.

Three pure operations make up the core:

* :func:`resolve` picks the output size from the present sources and reports
  which slots must be dropped for disagreeing with it.
* :func:`composite` fills the RGBA buffer, one channel per slot, using each
  slot's fallback value where no source is assigned.
* :func:`~MaskBrew.core.naming.derive_name` (re-exported here) names the
  result after its first present source.

``resolve`` and ``composite`` never log, prompt or touch the filesystem;
warnings about dropped slots are up to the caller. :func:`pack` is the
logging convenience wrapper used by the CLI.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

import numpy as np

from .core.errors import InvalidDimensionsError, PackingError, SizeMismatch
from .core.naming import DEFAULT_NAME, MASK_SUFFIX, derive_name
from .core.paths import source_directory
from .core.slots import SLOT_ORDER, Slot
from .core.sources import ImageSource

logger = logging.getLogger("mask_packer.packing")

DEFAULT_SIZE: Tuple[int, int] = (512, 512)

DEFAULT_FALLBACKS: Dict[Slot, float] = {
    Slot.METALLIC: 0.5,
    Slot.AMBIENT_OCCLUSION: 1.0,
    Slot.DETAIL_MASK: 0.5,
    Slot.SMOOTHNESS: 0.5,
}


@dataclass(frozen=True)
class ChannelSpec:
    """Source, fallback and inversion for one slot."""

    source: Optional[ImageSource] = None
    fallback: float = 0.5
    invert: bool = False

    def __post_init__(self) -> None:
        if not (0.0 <= float(self.fallback) <= 1.0):
            raise ValueError(f"fallback must be in [0, 1], got {self.fallback}")

    @property
    def present(self) -> bool:
        return self.source is not None


@dataclass(frozen=True)
class PackRequest:
    """Immutable per-call packing configuration, one ChannelSpec per slot.

    ``invert`` is only read from the Smoothness spec; on other slots it is
    ignored.
    """

    metallic: ChannelSpec = field(
        default_factory=lambda: ChannelSpec(fallback=DEFAULT_FALLBACKS[Slot.METALLIC]))
    ambient_occlusion: ChannelSpec = field(
        default_factory=lambda: ChannelSpec(fallback=DEFAULT_FALLBACKS[Slot.AMBIENT_OCCLUSION]))
    detail_mask: ChannelSpec = field(
        default_factory=lambda: ChannelSpec(fallback=DEFAULT_FALLBACKS[Slot.DETAIL_MASK]))
    smoothness: ChannelSpec = field(
        default_factory=lambda: ChannelSpec(fallback=DEFAULT_FALLBACKS[Slot.SMOOTHNESS]))

    @classmethod
    def defaults(cls) -> "PackRequest":
        """Return a request with no sources and the stock fallback values."""
        return cls()

    @classmethod
    def from_sources(
        cls,
        metallic: Optional[ImageSource] = None,
        ambient_occlusion: Optional[ImageSource] = None,
        detail_mask: Optional[ImageSource] = None,
        smoothness: Optional[ImageSource] = None,
        *,
        fallbacks: Optional[Mapping[Slot, float]] = None,
        invert_smoothness: bool = False,
    ) -> "PackRequest":
        """Build a request from optional sources and per-slot fallbacks."""
        values = dict(DEFAULT_FALLBACKS)
        if fallbacks:
            values.update(fallbacks)
        return cls(
            metallic=ChannelSpec(metallic, values[Slot.METALLIC]),
            ambient_occlusion=ChannelSpec(
                ambient_occlusion, values[Slot.AMBIENT_OCCLUSION]),
            detail_mask=ChannelSpec(detail_mask, values[Slot.DETAIL_MASK]),
            smoothness=ChannelSpec(
                smoothness, values[Slot.SMOOTHNESS], invert_smoothness),
        )

    def channel(self, slot: Slot) -> ChannelSpec:
        if slot is Slot.METALLIC:
            return self.metallic
        if slot is Slot.AMBIENT_OCCLUSION:
            return self.ambient_occlusion
        if slot is Slot.DETAIL_MASK:
            return self.detail_mask
        if slot is Slot.SMOOTHNESS:
            return self.smoothness
        raise KeyError(slot)

    def channels(self) -> Tuple[Tuple[Slot, ChannelSpec], ...]:
        """Return ``(slot, spec)`` pairs in priority order."""
        return tuple((slot, self.channel(slot)) for slot in SLOT_ORDER)

    def sources(self) -> Dict[Slot, Optional[ImageSource]]:
        return {slot: spec.source for slot, spec in self.channels()}

    @property
    def invert_smoothness(self) -> bool:
        return self.smoothness.invert

    def base_source(self) -> Optional[ImageSource]:
        """First present source in Metallic > AO > Detail > Smoothness order."""
        for _, spec in self.channels():
            if spec.present:
                return spec.source
        return None

    def with_dropped(self, slots: Iterable[Slot]) -> "PackRequest":
        """Return a copy with the given slots' sources cleared."""
        changes = {}
        for slot in slots:
            spec = self.channel(slot)
            changes[_SLOT_FIELDS[slot]] = dataclasses.replace(spec, source=None)
        return dataclasses.replace(self, **changes) if changes else self


_SLOT_FIELDS: Dict[Slot, str] = {
    Slot.METALLIC: "metallic",
    Slot.AMBIENT_OCCLUSION: "ambient_occlusion",
    Slot.DETAIL_MASK: "detail_mask",
    Slot.SMOOTHNESS: "smoothness",
}


@dataclass(frozen=True, eq=False)
class PackedImage:
    """RGBA result of one composite call.

    ``pixels`` has shape ``(height, width, 4)``, float32 in [0, 1], row 0 first.
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.shape != (self.height, self.width, 4):
            raise PackingError(
                f"pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        self.pixels.setflags(write=False)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def pixel(self, x: int, y: int) -> Tuple[float, float, float, float]:
        r, g, b, a = self.pixels[y, x]
        return float(r), float(g), float(b), float(a)

    def channel(self, slot: Slot) -> np.ndarray:
        return self.pixels[:, :, slot.index]

    def to_bytes(self) -> bytes:
        """Raw little-endian float32 RGBA buffer, rows in order."""
        return self.pixels.astype("<f4", copy=False).tobytes()

    def to_uint8(self) -> np.ndarray:
        """Quantize to 8-bit RGBA for export."""
        return np.round(np.clip(self.pixels, 0.0, 1.0) * 255.0).astype(np.uint8)

    def describe(self) -> str:
        return f"{self.width}x{self.height} RGBA"


@dataclass(frozen=True)
class SizeResolution:
    """Output size plus the slots dropped to reach it."""

    width: int
    height: int
    dropped: FrozenSet[Slot] = frozenset()
    mismatches: Tuple[SizeMismatch, ...] = ()
    used_default: bool = False

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


SourcesLike = Union[PackRequest, Mapping[Slot, Optional[ImageSource]]]


def resolve(sources: SourcesLike,
            default_size: Tuple[int, int] = DEFAULT_SIZE) -> SizeResolution:
    """Determine the output size for a set of optional sources.

    The first present source in Metallic-first order sets the size; every
    other present source of a different size is dropped. With no source at
    all, ``default_size`` is returned. A present source with a non-positive
    width or height raises :class:`InvalidDimensionsError`.
    """
    if isinstance(sources, PackRequest):
        sources = sources.sources()

    present = [
        (slot, sources[slot]) for slot in SLOT_ORDER
        if sources.get(slot) is not None
    ]
    for slot, src in present:
        if src.width <= 0 or src.height <= 0:
            raise InvalidDimensionsError(src.width, src.height, f"{slot.label} source")

    if not present:
        width, height = default_size
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(width, height, "default")
        return SizeResolution(width, height, used_default=True)

    first = present[0][1]
    expected = (first.width, first.height)
    mismatches = tuple(
        SizeMismatch(slot, (src.width, src.height), expected)
        for slot, src in present[1:]
        if (src.width, src.height) != expected
    )
    return SizeResolution(
        expected[0],
        expected[1],
        dropped=frozenset(m.slot for m in mismatches),
        mismatches=mismatches,
    )


def _channel_plane(slot: Slot, spec: ChannelSpec, width: int, height: int) -> np.ndarray:
    if spec.source is None:
        return np.full((height, width), spec.fallback, dtype=np.float32)

    src = spec.source
    if (src.width, src.height) != (width, height):
        raise PackingError(
            f"{slot.label} source is {src.width}x{src.height} but output is "
            f"{width}x{height}; resolve() the request and drop mismatches first"
        )

    as_array = getattr(src, "as_array", None)
    if callable(as_array):
        return np.asarray(as_array(), dtype=np.float32)

    plane = np.empty((height, width), dtype=np.float32)
    for y in range(height):
        plane[y] = [src.sample(x, y) for x in range(width)]
    return plane


def composite(request: PackRequest, width: int, height: int) -> PackedImage:
    """Fill a ``width`` x ``height`` RGBA buffer from a pack request.

    R, G and B come from Metallic, AO and Detail Mask; A from Smoothness,
    inverted to ``1 - value`` when the request asks for it. Absent slots use
    their fallback (the Smoothness fallback is inverted too).
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(width, height)

    pixels = np.empty((height, width, 4), dtype=np.float32)
    for slot, spec in request.channels():
        plane = _channel_plane(slot, spec, width, height)
        if slot is Slot.SMOOTHNESS and spec.invert:
            plane = 1.0 - plane
        pixels[:, :, slot.index] = plane
    return PackedImage(width, height, pixels)


def pack(request: PackRequest,
         default_size: Tuple[int, int] = DEFAULT_SIZE) -> Tuple[PackedImage, SizeResolution]:
    """Resolve, drop mismatched slots and composite in one go."""
    resolution = resolve(request, default_size)
    if resolution.used_default:
        logger.info(
            "No mask map sources assigned. Using default size: %dx%d",
            resolution.width, resolution.height,
        )
    for mismatch in resolution.mismatches:
        logger.warning(mismatch.message())

    packed = composite(request.with_dropped(resolution.dropped),
                       resolution.width, resolution.height)
    logger.debug("Packed mask map: %s", packed.describe())
    return packed, resolution


def default_output_name(request: PackRequest, default: str = DEFAULT_NAME,
                        suffix: str = MASK_SUFFIX) -> str:
    """Name the output after the first present source."""
    base = request.base_source()
    identifier = getattr(base, "identifier", None) if base is not None else None
    return derive_name(identifier, default=default, suffix=suffix)


def default_output_dir(request: PackRequest, fallback_dir: str = ".") -> str:
    """Folder of the first present file-backed source, else ``fallback_dir``."""
    base = request.base_source()
    folder = source_directory(getattr(base, "path", None)) if base is not None else None
    return folder or fallback_dir
