"""Default output naming for packed mask maps."""

import re
from typing import Optional

DEFAULT_NAME = "LitMask"
MASK_SUFFIX = "Mask"
WORD_DELIMITERS = ("_", "-", " ")

_PASCAL_WORD_RE = re.compile(r"[A-Z][a-z]*")


def remove_last_word(name: str) -> str:
    """Strip the trailing word from ``name``.

    Words are split on the right-most ``_``, ``-`` or space (the delimiter
    itself is kept). Without a delimiter, PascalCase words are used; with
    fewer than two of those the last character is dropped. Names of length
    one or less come back unchanged.
    """
    if not name:
        return name

    cut = max(name.rfind(d) for d in WORD_DELIMITERS)
    if cut != -1:
        return name[:cut + 1]

    words = _PASCAL_WORD_RE.findall(name)
    if len(words) > 1:
        return "".join(words[:-1])

    return name[:-1] if len(name) > 1 else name


def derive_name(identifier: Optional[str], default: str = DEFAULT_NAME,
                suffix: str = MASK_SUFFIX) -> str:
    """Derive the default output base name from a source identifier.

    >>> derive_name("Rock_Albedo")
    'Rock_Mask'
    >>> derive_name("RockAlbedo")
    'RockMask'
    >>> derive_name(None)
    'LitMask'
    """
    if not identifier:
        return default
    if identifier.endswith(suffix):
        return identifier
    if len(identifier) == 1 and identifier not in WORD_DELIMITERS:
        # Single-character names without a delimiter get no suffix.
        return identifier
    return remove_last_word(identifier) + suffix
