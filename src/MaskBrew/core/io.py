"""Image I/O utilities -- load/save numpy arrays with explicit bit-depth handling."""

import logging
import os
import threading
from pathlib import Path

import numpy as np
from PIL import Image

# Pixel-count validation happens per call in load_image().
Image.MAX_IMAGE_PIXELS = None

logger = logging.getLogger("mask_packer.io")

# Color.grayscale weights used by the editor tool the masks come from.
_GRAY_WEIGHTS = (0.299, 0.587, 0.114)


def _infer_integer_mode_bit_depth(img: Image.Image, ext: str) -> int:
    """Infer bit depth for Pillow mode ``I`` images.

    Prefers explicit metadata over guessing from the file type.
    """
    bits_info = img.info.get("bits")
    if isinstance(bits_info, int) and bits_info > 0:
        return bits_info

    # TIFF BitsPerSample tag
    tag_v2 = getattr(img, "tag_v2", None)
    if tag_v2 is not None:
        bits_tag = tag_v2.get(258)
        if isinstance(bits_tag, tuple) and bits_tag:
            bits_tag = bits_tag[0]
        if isinstance(bits_tag, int) and bits_tag > 0:
            return bits_tag

    # PNG and TIFF "I" are almost always promoted 16-bit data.
    if ext in (".png", ".tif", ".tiff"):
        return 16
    return 32


def load_image(path: str, max_pixels: int = 0) -> np.ndarray:
    """Load an image as a float32 array normalized to [0, 1].

    Single-band images come back as ``(H, W)``; everything else as
    ``(H, W, C)`` with C in 3 or 4.
    """
    ext = Path(path).suffix.lower()
    try:
        with Image.open(path) as img:
            if max_pixels > 0 and img.width * img.height > max_pixels:
                raise ValueError(
                    f"Image too large: {img.width}x{img.height} = "
                    f"{img.width * img.height:,} pixels (max {max_pixels:,})."
                )

            if img.mode in ("I;16", "I;16B", "I;16L", "I;16N"):
                logger.debug("Loading %s as 16-bit integer mode %s", path, img.mode)
                arr = np.asarray(img, dtype=np.float32) / 65535.0
                return arr.astype(np.float32, copy=False)

            if img.mode == "I":
                arr = np.asarray(img, dtype=np.float32)
                bit_depth = _infer_integer_mode_bit_depth(img, ext)
                max_value = float((1 << min(bit_depth, 32)) - 1)
                logger.debug("Loading %s in mode I with bit depth %d", path, bit_depth)
                return np.clip(arr / max_value, 0.0, 1.0).astype(np.float32)

            if img.mode == "F":
                arr = np.asarray(img, dtype=np.float32)
                amin, amax = float(arr.min()), float(arr.max())
                if amin < 0.0 or amax > 1.0:
                    logger.warning(
                        "Float image '%s' has range [%.6f, %.6f]; clipping to [0, 1].",
                        path, amin, amax,
                    )
                return np.clip(arr, 0.0, 1.0).astype(np.float32)

            if img.mode == "L":
                arr = np.asarray(img, dtype=np.float32) / 255.0
            elif img.mode in ("RGB", "RGBA"):
                arr = np.asarray(img, dtype=np.float32) / 255.0
            elif img.mode in ("P", "LA", "PA"):
                logger.debug("Converting %s image '%s' to RGBA", img.mode, path)
                with img.convert("RGBA") as converted:
                    arr = np.asarray(converted, dtype=np.float32) / 255.0
            else:
                logger.debug("Converting %s image '%s' to RGB", img.mode, path)
                with img.convert("RGB") as converted:
                    arr = np.asarray(converted, dtype=np.float32) / 255.0
            return arr.astype(np.float32, copy=False)
    except ValueError:
        raise
    except Exception as e:
        logger.error("Failed to open image '%s' (ext=%s): %s", path, ext, e)
        raise IOError(f"Failed to open image: {path} ({ext}): {e}") from e


def to_grayscale(arr: np.ndarray) -> np.ndarray:
    """Reduce an image array to a single ``(H, W)`` intensity plane.

    Color inputs use the 0.299/0.587/0.114 weighting; alpha is ignored.
    """
    if arr.ndim == 2:
        return arr.astype(np.float32, copy=False)
    if arr.ndim == 3 and arr.shape[-1] >= 3:
        r, g, b = _GRAY_WEIGHTS
        gray = r * arr[:, :, 0] + g * arr[:, :, 1] + b * arr[:, :, 2]
        return np.clip(gray, 0.0, 1.0).astype(np.float32)
    if arr.ndim == 3:
        return arr[:, :, 0].astype(np.float32)
    raise ValueError(f"Cannot reduce array of shape {arr.shape} to grayscale")


def save_image(arr: np.ndarray, path: str, bits: int = 8):
    """Save a float32 [0,1] array as an image.

    Uses an atomic write (temp file + ``os.replace``) so a crash never leaves
    a truncated file behind. ``bits=16`` is supported for PNG; multi-channel
    16-bit output goes through OpenCV.
    """
    arr = np.clip(arr, 0, 1)
    if arr.size == 0 or arr.ndim < 2:
        raise ValueError(
            f"Cannot save empty or degenerate array (shape={arr.shape}) to {path}"
        )
    if bits not in (8, 16):
        raise ValueError(f"bits must be 8 or 16, got {bits}")

    ext = Path(path).suffix.lower()
    use_16bit = bits == 16 and ext == ".png"
    if bits == 16 and not use_16bit:
        logger.warning("16-bit output is only supported for PNG; saving %s as 8-bit", path)

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"

    try:
        if use_16bit:
            arr_16 = np.round(arr * 65535.0).astype(np.uint16)
            if arr_16.ndim == 2:
                with Image.fromarray(arr_16) as img:
                    img.save(tmp_path)
            else:
                import cv2

                if arr_16.shape[-1] == 4:
                    png_data = arr_16[:, :, [2, 1, 0, 3]]  # RGBA -> BGRA
                else:
                    png_data = arr_16[:, :, :3][:, :, ::-1]  # RGB -> BGR
                if not cv2.imwrite(tmp_path, np.ascontiguousarray(png_data)):
                    raise IOError(f"cv2.imwrite failed for 16-bit PNG: {path}")
            os.replace(tmp_path, path)
            logger.debug("Saved: %s (%s, 16bit)", path, arr.shape)
            return

        arr_out = np.round(arr * 255).astype(np.uint8)
        with Image.fromarray(arr_out) as img:
            if ext in (".jpg", ".jpeg") and img.mode == "RGBA":
                logger.warning("JPEG has no alpha channel; dropping A for %s", path)
                with img.convert("RGB") as converted:
                    converted.save(tmp_path, quality=95)
            elif ext == ".png":
                img.save(tmp_path, optimize=True)
            else:
                img.save(tmp_path)
        os.replace(tmp_path, path)
        logger.debug("Saved: %s (%s, 8bit)", path, arr_out.shape)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass


def make_preview(arr: np.ndarray, size: int = 128) -> np.ndarray:
    """Return a uint8 thumbnail no larger than ``size`` on either side."""
    if size < 1:
        raise ValueError(f"preview size must be >= 1, got {size}")
    arr_u8 = np.round(np.clip(arr, 0, 1) * 255).astype(np.uint8)
    with Image.fromarray(arr_u8) as img:
        img.thumbnail((size, size), Image.Resampling.BILINEAR)
        return np.asarray(img).copy()
