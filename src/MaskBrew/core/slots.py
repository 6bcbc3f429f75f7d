"""Logical channel slots of a mask map."""

from enum import Enum
from typing import Dict


class Slot(Enum):
    """Enumerate the four mask-map slots in Metallic-first priority order.

    Iteration order is meaningful: the first present source in this order
    sets the output size and names the output file.
    """

    METALLIC = "metallic"
    AMBIENT_OCCLUSION = "ambient_occlusion"
    DETAIL_MASK = "detail_mask"
    SMOOTHNESS = "smoothness"

    @property
    def channel(self) -> str:
        """Output channel letter (R, G, B or A)."""
        return SLOT_CHANNELS[self]

    @property
    def index(self) -> int:
        """Component index in an RGBA pixel."""
        return "RGBA".index(SLOT_CHANNELS[self])

    @property
    def label(self) -> str:
        """Human-readable slot name."""
        return SLOT_LABELS[self]


SLOT_CHANNELS: Dict[Slot, str] = {
    Slot.METALLIC: "R",
    Slot.AMBIENT_OCCLUSION: "G",
    Slot.DETAIL_MASK: "B",
    Slot.SMOOTHNESS: "A",
}

SLOT_LABELS: Dict[Slot, str] = {
    Slot.METALLIC: "Metallic",
    Slot.AMBIENT_OCCLUSION: "Ambient Occlusion",
    Slot.DETAIL_MASK: "Detail Mask",
    Slot.SMOOTHNESS: "Smoothness/Roughness",
}

SLOT_ORDER = tuple(Slot)
