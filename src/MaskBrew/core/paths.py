"""Output path helpers."""

import os
from pathlib import Path
from typing import Optional


def source_directory(source_path: Optional[str]) -> Optional[str]:
    """Return the folder holding ``source_path`` with forward slashes, or None."""
    if not source_path:
        return None
    parent = os.path.dirname(str(source_path).replace("\\", "/"))
    return parent or "."


def get_output_path(output_dir: str, name: str, ext: str = ".png") -> str:
    """Join an output folder, base name and extension.

    Rejects names that would escape ``output_dir``.
    """
    if not name or name in (".", ".."):
        raise ValueError(f"Output name is empty or invalid: {name!r}")
    if any(sep in name for sep in ("/", "\\")):
        raise ValueError(f"Output name must not contain path separators: {name!r}")
    if ext and not ext.startswith("."):
        ext = "." + ext
    return os.path.join(output_dir or ".", name + (ext or ""))


def unique_path(path: str) -> str:
    """Return ``path`` or the first free ``stem_N.ext`` variant next to it."""
    if not os.path.exists(path):
        return path
    p = Path(path)
    i = 2
    while True:
        candidate = p.with_name(f"{p.stem}_{i}{p.suffix}")
        if not candidate.exists():
            return str(candidate)
        i += 1
