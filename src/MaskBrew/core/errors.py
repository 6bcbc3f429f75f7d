"""Error types raised or reported by the packing core."""

from dataclasses import dataclass
from typing import Tuple

from .slots import Slot


class PackingError(ValueError):
    """Base class for packing failures."""


class InvalidDimensionsError(PackingError):
    """Raised when a source or output size is zero or negative.

    Fatal for the current call; no partial image is produced.
    """

    def __init__(self, width: int, height: int, what: str = "output"):
        self.width = width
        self.height = height
        self.what = what
        super().__init__(
            f"Invalid {what} dimensions {width}x{height}: width and height must be > 0"
        )


@dataclass(frozen=True)
class SizeMismatch:
    """Non-fatal record of a source dropped for disagreeing with the resolved size."""

    slot: Slot
    actual: Tuple[int, int]
    expected: Tuple[int, int]

    def message(self) -> str:
        """Return a user-facing warning line."""
        return (
            f"{self.slot.label}: size {self.actual[0]}x{self.actual[1]} does not "
            f"match required size {self.expected[0]}x{self.expected[1]}. "
            "It will be ignored."
        )
